"""One-shot outline generation for a project."""

from __future__ import annotations

import json
import logging
from typing import Any

from ..logging import log_call
from .chat_client import ChatClient
from .project_service import OutlineItem, Project
from .prompts import build_outline_prompt


logger = logging.getLogger(__name__)

MIN_LEVEL = 1
MAX_LEVEL = 3

OUTLINE_RESPONSE_FORMAT: dict[str, Any] = {
    "type": "json_schema",
    "json_schema": {
        "name": "outline",
        "schema": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "level": {
                        "type": "integer",
                        "description": "1 for main chapters, 2 for sections, 3 for subsections",
                    },
                },
                "required": ["title", "level"],
            },
        },
    },
}


class OutlineGenerationError(RuntimeError):
    """Raised when the backend reply cannot be turned into an outline."""


class OutlineService:
    """Ask the backend for a chapter/section outline."""

    def __init__(self, client: ChatClient) -> None:
        self.client = client

    @log_call(logger=logger, include_args=False)
    def generate(self, project: Project) -> list[OutlineItem]:
        prompt = build_outline_prompt(
            project_type=project.type.value,
            title=project.title,
            description=project.description,
        )
        text = self.client.complete(
            [{"role": "user", "content": prompt}],
            response_format=OUTLINE_RESPONSE_FORMAT,
        )
        outline = self.parse_outline(text)
        logger.info(
            "Generated outline",
            extra={"project_id": project.id, "item_count": len(outline)},
        )
        return outline

    @staticmethod
    def parse_outline(text: str) -> list[OutlineItem]:
        """Convert a JSON array of ``{title, level}`` objects into items."""

        cleaned = (text or "").strip()
        if cleaned.startswith("```"):
            cleaned = cleaned.strip("`")
            if cleaned.lower().startswith("json"):
                cleaned = cleaned[4:]
        if not cleaned:
            return []
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise OutlineGenerationError("Outline response is not valid JSON") from exc
        if isinstance(data, dict):
            data = data.get("outline", data.get("items"))
        if not isinstance(data, list):
            raise OutlineGenerationError("Outline response must be a list")

        items: list[OutlineItem] = []
        for entry in data:
            if not isinstance(entry, dict):
                raise OutlineGenerationError("Outline entries must be objects")
            title = str(entry.get("title") or "").strip()
            if not title:
                continue
            try:
                level = int(entry.get("level", MIN_LEVEL))
            except (TypeError, ValueError) as exc:
                raise OutlineGenerationError(f"Invalid level for {title!r}") from exc
            items.append(OutlineItem(title=title, level=max(MIN_LEVEL, min(MAX_LEVEL, level))))
        return items


__all__ = ["OutlineGenerationError", "OutlineService"]
