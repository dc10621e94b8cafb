"""Project transcript turns into the message history sent to the backend."""

from __future__ import annotations

from collections.abc import Iterable

from .transcript import Turn


def project_history(turns: Iterable[Turn]) -> list[dict[str, str]]:
    """Return ``{"role", "content"}`` pairs for every terminal turn in order.

    Active placeholders are skipped. Callers take the snapshot *before*
    appending the message being answered, so that message is never part of
    its own history.
    """

    return [
        {"role": turn.role.value, "content": turn.text}
        for turn in turns
        if not turn.is_active
    ]


__all__ = ["project_history"]
