"""Drive one streamed request/response exchange at a time."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from ..config import DEFAULT_MODEL
from ..logging import log_call
from .chat_client import StreamFragment, StreamRequest
from .history import project_history
from .research_mode import ModeController
from .transcript import InvalidStateError, TranscriptStore, Turn, TurnStatus


logger = logging.getLogger(__name__)


APOLOGY_TEXT = "Sorry, I encountered an error. Please try again."


class SessionState(Enum):
    """Where the session is in the current exchange."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    STREAMING = "streaming"
    FINALIZED = "finalized"
    FAILED = "failed"


class EmptyMessageError(ValueError):
    """Raised when a submission is blank after trimming."""


class CancellationToken:
    """Cooperative stop signal checked between fragments."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ChatSession:
    """Turn user submissions into a live, incrementally updated transcript.

    ``backend`` is anything with an ``open_stream(StreamRequest)`` method
    returning an iterable of :class:`StreamFragment` (or plain strings).
    Only one exchange may be in flight; :meth:`submit` blocks until the
    reply is terminal, so UI callers run it on a worker thread.
    """

    def __init__(
        self,
        backend: Any,
        *,
        mode: ModeController | None = None,
        model: str = DEFAULT_MODEL,
        base_instruction: str = "",
        transcript: TranscriptStore | None = None,
    ) -> None:
        self.backend = backend
        self.mode = mode or ModeController()
        self.model = model
        self.base_instruction = base_instruction
        self.transcript = transcript or TranscriptStore()
        self._state = SessionState.IDLE
        self._state_lock = threading.Lock()
        self._state_listeners: list[Callable[[SessionState], None]] = []
        self._cancel_token: CancellationToken | None = None
        self._last_request: StreamRequest | None = None
        self._closed = False

    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state is SessionState.IDLE and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_request(self) -> StreamRequest | None:
        return self._last_request

    def add_state_listener(
        self, listener: Callable[[SessionState], None]
    ) -> Callable[[], None]:
        """Subscribe to state transitions and return an unsubscribe callable."""

        self._state_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._state_listeners:
                self._state_listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    @log_call(logger=logger, level=logging.DEBUG, include_args=False)
    def submit(
        self,
        text: str,
        *,
        base_instruction: str | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> Turn:
        """Send ``text`` and stream the reply into the transcript.

        Returns the terminal assistant turn. Backend failures are converted
        into an apology turn and never raised.
        """

        if not text or not text.strip():
            raise EmptyMessageError("Message must not be blank")
        token = cancel_token or CancellationToken()
        with self._state_lock:
            if self._closed:
                raise InvalidStateError("Session is closed")
            if self._state is not SessionState.IDLE:
                raise InvalidStateError(
                    f"Cannot submit while session is {self._state.value}"
                )
            self._cancel_token = token
            # History must come from the transcript as it was before this
            # exchange is appended.
            history = project_history(self.transcript.snapshot())
            decorated = self.mode.decorate(
                self.base_instruction if base_instruction is None else base_instruction,
                text,
            )
            self.transcript.append_user(text)
            placeholder = self.transcript.append_placeholder()
            stream_request = StreamRequest(
                model=self.model,
                system_instruction=decorated.instruction,
                message=decorated.augmented_prompt,
                web_search=decorated.tools_enabled,
                history=tuple(history),
            )
            self._last_request = stream_request
            self._set_state(SessionState.SUBMITTING)

        logger.info(
            "Submitting message",
            extra={
                "turn_id": placeholder.id,
                "history_length": len(history),
                "research_mode": decorated.tools_enabled,
                "message_preview": text.strip()[:120],
            },
        )
        try:
            return self._run_exchange(placeholder.id, stream_request, token)
        finally:
            with self._state_lock:
                self._cancel_token = None
                self._set_state(SessionState.IDLE)

    def cancel(self) -> None:
        """Stop consuming the in-flight reply, keeping what has arrived."""

        token = self._cancel_token
        if token is not None:
            logger.info("Cancelling in-flight exchange")
            token.cancel()

    def close(self) -> None:
        """Discard the session; no further submissions are accepted."""

        self._closed = True
        self.cancel()

    # ------------------------------------------------------------------
    def _run_exchange(
        self,
        placeholder_id: str,
        stream_request: StreamRequest,
        token: CancellationToken,
    ) -> Turn:
        fragment_count = 0
        try:
            stream = self.backend.open_stream(stream_request)
            for fragment in self._iterate(stream):
                if token.cancelled:
                    break
                if fragment_count == 0:
                    self._set_state(SessionState.STREAMING)
                fragment_count += 1
                self.transcript.fold_fragment(placeholder_id, fragment)
            else:
                if not token.cancelled:
                    turn = self.transcript.finalize(placeholder_id)
                    self._set_state(SessionState.FINALIZED)
                    logger.info(
                        "Exchange finalized",
                        extra={
                            "turn_id": placeholder_id,
                            "fragment_count": fragment_count,
                            "answer_length": len(turn.text),
                        },
                    )
                    return turn
            _close_stream(stream)
        except InvalidStateError:
            # The placeholder must not outlive the exchange, or the next
            # submit would find an active turn still in the transcript.
            if self.transcript.get(placeholder_id).is_active:
                self.transcript.finalize(
                    placeholder_id, APOLOGY_TEXT, status=TurnStatus.FAILED
                )
                self._set_state(SessionState.FAILED)
            raise
        except Exception:
            logger.exception(
                "Exchange failed",
                extra={"turn_id": placeholder_id, "fragment_count": fragment_count},
            )
            turn = self.transcript.finalize(
                placeholder_id, APOLOGY_TEXT, status=TurnStatus.FAILED
            )
            self._set_state(SessionState.FAILED)
            return turn

        turn = self.transcript.finalize(placeholder_id, status=TurnStatus.CANCELLED)
        logger.info(
            "Exchange cancelled",
            extra={"turn_id": placeholder_id, "fragment_count": fragment_count},
        )
        return turn

    @staticmethod
    def _iterate(stream: Iterable[Any]) -> Iterable[str]:
        for item in stream:
            if isinstance(item, StreamFragment):
                yield item.text
            elif isinstance(item, str):
                yield item
            else:
                yield str(getattr(item, "text", "") or "")

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        self._state = state
        logger.debug("Session state changed", extra={"state": state.value})
        for listener in list(self._state_listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session state listener failed")


def _close_stream(stream: Any) -> None:
    close = getattr(stream, "close", None)
    if callable(close):
        close()


__all__ = [
    "APOLOGY_TEXT",
    "CancellationToken",
    "ChatSession",
    "EmptyMessageError",
    "SessionState",
]
