"""Ordered, append-only log of conversation turns."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class TranscriptError(RuntimeError):
    """Base exception for transcript failures."""


class InvalidStateError(TranscriptError):
    """Raised when an operation violates the single-flight discipline."""


class UnknownTurnError(InvalidStateError):
    """Raised when a turn id is not present in the transcript."""


class TurnRole(Enum):
    """Author of a turn."""

    USER = "user"
    ASSISTANT = "assistant"


class TurnStatus(Enum):
    """Lifecycle of a turn; everything except ``ACTIVE`` is terminal."""

    ACTIVE = "active"
    FINALIZED = "finalized"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not TurnStatus.ACTIVE


def _new_turn_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Turn:
    """One user or assistant message with a stable identity."""

    role: TurnRole
    text: str = ""
    status: TurnStatus = TurnStatus.FINALIZED
    id: str = field(default_factory=_new_turn_id)
    created_at: float = field(default_factory=time.monotonic)

    @property
    def is_active(self) -> bool:
        return self.status is TurnStatus.ACTIVE

    @classmethod
    def user(cls, text: str) -> "Turn":
        return cls(role=TurnRole.USER, text=text, status=TurnStatus.FINALIZED)

    @classmethod
    def placeholder(cls) -> "Turn":
        return cls(role=TurnRole.ASSISTANT, text="", status=TurnStatus.ACTIVE)


TranscriptListener = Callable[[tuple[Turn, ...]], None]


class TranscriptStore:
    """Single source of truth for the rendered conversation.

    Turns are only ever appended. The one permitted mutation is growing the
    text of the active assistant placeholder and then finalizing it. Every
    read returns an immutable snapshot, and listeners receive a fresh
    snapshot after each mutation.
    """

    def __init__(self) -> None:
        self._turns: list[Turn] = []
        self._index: dict[str, int] = {}
        self._lock = threading.RLock()
        self._listeners: list[TranscriptListener] = []

    # ------------------------------------------------------------------
    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)

    def snapshot(self) -> tuple[Turn, ...]:
        with self._lock:
            return tuple(self._turns)

    @property
    def active_turn(self) -> Turn | None:
        with self._lock:
            for turn in reversed(self._turns):
                if turn.is_active:
                    return turn
        return None

    def get(self, turn_id: str) -> Turn:
        with self._lock:
            position = self._index.get(turn_id)
            if position is None:
                raise UnknownTurnError(f"Unknown turn {turn_id!r}")
            return self._turns[position]

    # ------------------------------------------------------------------
    def add_listener(self, listener: TranscriptListener) -> Callable[[], None]:
        """Subscribe to transcript mutations and return an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    def append(self, turn: Turn) -> Turn:
        with self._lock:
            if turn.id in self._index:
                raise InvalidStateError(f"Turn {turn.id!r} already exists")
            if turn.is_active:
                if turn.role is not TurnRole.ASSISTANT:
                    raise InvalidStateError("Only assistant turns can be active")
                if self.active_turn is not None:
                    raise InvalidStateError("An assistant reply is already in progress")
            self._index[turn.id] = len(self._turns)
            self._turns.append(turn)
            snapshot = tuple(self._turns)
        logger.debug(
            "Appended turn",
            extra={"turn_id": turn.id, "role": turn.role.value, "status": turn.status.value},
        )
        self._notify(snapshot)
        return turn

    def append_user(self, text: str) -> Turn:
        return self.append(Turn.user(text))

    def append_placeholder(self) -> Turn:
        return self.append(Turn.placeholder())

    def fold_fragment(self, turn_id: str, fragment: str) -> Turn:
        """Append ``fragment`` to the active turn ``turn_id``.

        Fragments that arrive after the turn became terminal are dropped.
        """

        with self._lock:
            position = self._index.get(turn_id)
            if position is None:
                raise UnknownTurnError(f"Unknown turn {turn_id!r}")
            current = self._turns[position]
            if current.role is not TurnRole.ASSISTANT:
                raise InvalidStateError("Fragments can only be folded into assistant turns")
            if not current.is_active:
                logger.debug(
                    "Dropped late fragment",
                    extra={"turn_id": turn_id, "status": current.status.value},
                )
                return current
            if not fragment:
                return current
            updated = dataclasses.replace(current, text=current.text + fragment)
            self._turns[position] = updated
            snapshot = tuple(self._turns)
        self._notify(snapshot)
        return updated

    def finalize(
        self,
        turn_id: str,
        final_text: str | None = None,
        *,
        status: TurnStatus = TurnStatus.FINALIZED,
    ) -> Turn:
        """Mark ``turn_id`` terminal, optionally replacing its text."""

        if not status.is_terminal:
            raise ValueError("finalize requires a terminal status")
        with self._lock:
            position = self._index.get(turn_id)
            if position is None:
                raise UnknownTurnError(f"Unknown turn {turn_id!r}")
            current = self._turns[position]
            if not current.is_active:
                raise InvalidStateError(f"Turn {turn_id!r} is already {current.status.value}")
            text = current.text if final_text is None else final_text
            updated = dataclasses.replace(current, text=text, status=status)
            self._turns[position] = updated
            snapshot = tuple(self._turns)
        logger.debug(
            "Finalized turn",
            extra={"turn_id": turn_id, "status": status.value, "text_length": len(text)},
        )
        self._notify(snapshot)
        return updated

    # ------------------------------------------------------------------
    def _notify(self, snapshot: tuple[Turn, ...]) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Transcript listener failed")


__all__ = [
    "InvalidStateError",
    "TranscriptError",
    "TranscriptListener",
    "TranscriptStore",
    "Turn",
    "TurnRole",
    "TurnStatus",
    "UnknownTurnError",
]
