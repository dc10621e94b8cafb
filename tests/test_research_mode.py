from __future__ import annotations

from scholarflow.services import ModeController
from scholarflow.services.prompts import (
    CONTENT_EXCERPT_CHARS,
    RESEARCH_INSTRUCTION_SUFFIX,
    build_base_instruction,
    build_research_prompt,
)


def test_inactive_mode_passes_text_through() -> None:
    mode = ModeController()

    decorated = mode.decorate("Base.", "What is entropy?")

    assert decorated.instruction == "Base."
    assert decorated.augmented_prompt == "What is entropy?"
    assert decorated.tools_enabled is False


def test_active_mode_wraps_prompt_and_enables_search() -> None:
    mode = ModeController(research_mode=True)

    decorated = mode.decorate("Base.", "quantum dots")

    assert decorated.instruction == "Base." + RESEARCH_INSTRUCTION_SUFFIX
    assert decorated.augmented_prompt == build_research_prompt("quantum dots")
    assert decorated.augmented_prompt.startswith("RESEARCH REQUEST: quantum dots")
    assert "**Key Findings**" in decorated.augmented_prompt
    assert "**Research Gaps**" in decorated.augmented_prompt
    assert decorated.tools_enabled is True


def test_decorated_request_is_unaffected_by_later_toggle() -> None:
    mode = ModeController(research_mode=True)
    decorated = mode.decorate("Base.", "topic")

    assert mode.toggle() is False

    assert decorated.tools_enabled is True
    assert mode.decorate("Base.", "topic").tools_enabled is False


def test_listeners_fire_only_on_change() -> None:
    mode = ModeController()
    seen: list[bool] = []
    unsubscribe = mode.add_listener(seen.append)

    mode.set_research_mode(False)
    mode.set_research_mode(True)
    mode.toggle()
    unsubscribe()
    mode.toggle()

    assert seen == [True, False]
    assert mode.research_mode is True


def test_base_instruction_uses_document_excerpt() -> None:
    content = "x" * (CONTENT_EXCERPT_CHARS + 50)

    instruction = build_base_instruction(
        project_type="dissertation",
        title="Coral Reefs",
        description="Bleaching events",
        content=content,
    )

    assert instruction.startswith(
        "You are a helpful academic research assistant helping a student write their dissertation."
    )
    assert 'Title: "Coral Reefs"' in instruction
    assert 'Description: "Bleaching events"' in instruction
    assert "x" * CONTENT_EXCERPT_CHARS + '..."' in instruction
    assert "x" * (CONTENT_EXCERPT_CHARS + 1) not in instruction
