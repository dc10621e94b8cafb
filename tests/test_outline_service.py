from __future__ import annotations

import pytest

pytest.importorskip("PyQt6", reason="PyQt6 is required for project services", exc_type=ImportError)

from scholarflow.services.outline_service import (
    OUTLINE_RESPONSE_FORMAT,
    OutlineGenerationError,
    OutlineService,
)
from scholarflow.services.project_service import Project, ProjectType


class StubClient:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.calls: list[dict[str, object]] = []

    def complete(self, messages, *, response_format=None, extra_options=None) -> str:
        self.calls.append({"messages": list(messages), "response_format": response_format})
        return self.reply


def test_generate_builds_prompt_and_parses_items() -> None:
    client = StubClient(
        '[{"title": "Introduction", "level": 1}, {"title": "Prior Work", "level": 2}]'
    )
    project = Project(title="Coral Reefs", type=ProjectType.PAPER, description="Bleaching")

    items = OutlineService(client).generate(project)

    assert [(item.title, item.level) for item in items] == [
        ("Introduction", 1),
        ("Prior Work", 2),
    ]
    call = client.calls[0]
    assert call["response_format"] is OUTLINE_RESPONSE_FORMAT
    prompt = call["messages"][0]["content"]  # type: ignore[index]
    assert 'paper titled "Coral Reefs"' in prompt
    assert 'Description: "Bleaching"' in prompt


def test_parse_accepts_fenced_and_wrapped_json() -> None:
    fenced = '```json\n[{"title": "Methods", "level": 2}]\n```'
    wrapped = '{"outline": [{"title": "Results"}]}'

    assert [item.title for item in OutlineService.parse_outline(fenced)] == ["Methods"]
    results = OutlineService.parse_outline(wrapped)
    assert [(item.title, item.level) for item in results] == [("Results", 1)]


def test_parse_clamps_levels_and_skips_untitled_entries() -> None:
    items = OutlineService.parse_outline(
        '[{"title": "Deep", "level": 7}, {"title": "", "level": 1}, {"title": "Top", "level": 0}]'
    )

    assert [(item.title, item.level) for item in items] == [("Deep", 3), ("Top", 1)]


def test_parse_empty_reply_is_empty_outline() -> None:
    assert OutlineService.parse_outline("") == []


@pytest.mark.parametrize("reply", ["not json", '{"title": "x"}', '["plain"]', '[{"title": "x", "level": "deep"}]'])
def test_parse_rejects_malformed_replies(reply: str) -> None:
    with pytest.raises(OutlineGenerationError):
        OutlineService.parse_outline(reply)
