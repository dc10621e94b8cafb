"""Research-mode toggle and the request decoration it implies."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from .prompts import RESEARCH_INSTRUCTION_SUFFIX, build_research_prompt


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecoratedRequest:
    """Instruction, prompt and tooling frozen for one exchange."""

    instruction: str
    augmented_prompt: str
    tools_enabled: bool


class ModeController:
    """Track whether research mode is active for a session."""

    def __init__(self, research_mode: bool = False) -> None:
        self._research_mode = bool(research_mode)
        self._listeners: list[Callable[[bool], None]] = []

    @property
    def research_mode(self) -> bool:
        return self._research_mode

    def set_research_mode(self, enabled: bool) -> None:
        value = bool(enabled)
        if value == self._research_mode:
            return
        self._research_mode = value
        logger.info("Research mode toggled", extra={"enabled": value})
        for listener in list(self._listeners):
            listener(value)

    def toggle(self) -> bool:
        self.set_research_mode(not self._research_mode)
        return self._research_mode

    def add_listener(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        """Subscribe to mode changes and return an unsubscribe callable."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def decorate(self, base_instruction: str, user_text: str) -> DecoratedRequest:
        """Shape the outgoing request for the current mode.

        The result is a value; later toggles do not affect it.
        """

        if not self._research_mode:
            return DecoratedRequest(
                instruction=base_instruction,
                augmented_prompt=user_text,
                tools_enabled=False,
            )
        return DecoratedRequest(
            instruction=base_instruction + RESEARCH_INSTRUCTION_SUFFIX,
            augmented_prompt=build_research_prompt(user_text),
            tools_enabled=True,
        )


__all__ = ["DecoratedRequest", "ModeController"]
