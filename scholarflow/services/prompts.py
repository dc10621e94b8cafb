"""Instruction and prompt text sent to the generative backend."""

from __future__ import annotations

import textwrap

CONTENT_EXCERPT_CHARS = 1000

RESEARCH_INSTRUCTION_SUFFIX = (
    " You have access to web search. Use it to find academic sources."
    " Always cite your sources."
)

RESEARCH_PROMPT_TEMPLATE = textwrap.dedent(
    """\
    RESEARCH REQUEST: {topic}

    Please search for academic papers, journals, and credible sources regarding this topic. Prioritize sources like PubMed, IEEE Xplore, and JSTOR where available via web search.

    Output Format:
    1. **Key Findings**: Concise summaries of relevant papers.
    2. **Sources**: List the papers/articles found.
    3. **Research Gaps**: Identify areas needing further research."""
)

OUTLINE_PROMPT_TEMPLATE = (
    'Generate a detailed academic outline for a {project_type} titled "{title}". '
    'Description: "{description}". Return a list of chapters and sections as a JSON '
    'array of objects with a "title" string and a "level" integer '
    "(1 for main chapters, 2 for sections, 3 for subsections)."
)


def build_research_prompt(topic: str) -> str:
    return RESEARCH_PROMPT_TEMPLATE.format(topic=topic)


def build_base_instruction(
    *,
    project_type: str = "thesis",
    title: str = "",
    description: str = "",
    content: str = "",
) -> str:
    """Describe the open document to the assistant.

    Only the first :data:`CONTENT_EXCERPT_CHARS` characters of the document
    are included.
    """

    excerpt = content[:CONTENT_EXCERPT_CHARS]
    return (
        "You are a helpful academic research assistant helping a student write "
        f"their {project_type or 'thesis'}. "
        f'Context: Title: "{title}", Description: "{description}". '
        f'Current Content: "{excerpt}..."'
    )


def build_outline_prompt(*, project_type: str, title: str, description: str) -> str:
    return OUTLINE_PROMPT_TEMPLATE.format(
        project_type=project_type,
        title=title,
        description=description,
    )


__all__ = [
    "CONTENT_EXCERPT_CHARS",
    "RESEARCH_INSTRUCTION_SUFFIX",
    "RESEARCH_PROMPT_TEMPLATE",
    "build_base_instruction",
    "build_outline_prompt",
    "build_research_prompt",
]
