"""Project management backed by the SQLite project store."""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any

from PyQt6.QtCore import QObject, pyqtSignal

from ..config import get_user_config_dir
from ..logging import log_call
from ..storage import DatabaseManager, ProjectRepository


logger = logging.getLogger(__name__)

DATABASE_FILENAME = "scholarflow.db"


class ProjectType(Enum):
    THESIS = "thesis"
    DISSERTATION = "dissertation"
    PAPER = "paper"


class ProjectStatus(Enum):
    DRAFT = "draft"
    REVIEW = "review"
    PUBLISHED = "published"


@dataclass(frozen=True)
class OutlineItem:
    """One heading of a document outline."""

    title: str
    level: int = 1
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "title": self.title, "level": self.level}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OutlineItem":
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            title=str(data.get("title", "")),
            level=int(data.get("level", 1)),
        )


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Project:
    """A writing project as shown in the editor."""

    title: str
    type: ProjectType = ProjectType.THESIS
    description: str = ""
    content: str = ""
    outline: list[OutlineItem] = field(default_factory=list)
    status: ProjectStatus = ProjectStatus.DRAFT
    progress: int = 0
    last_modified: int = field(default_factory=_now_ms)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type.value,
            "description": self.description,
            "content": self.content,
            "outline": json.dumps([item.to_dict() for item in self.outline]),
            "status": self.status.value,
            "progress": int(self.progress),
            "last_modified": int(self.last_modified),
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Project":
        try:
            raw_outline = json.loads(row.get("outline") or "[]")
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable outline", extra={"project_id": row.get("id")})
            raw_outline = []
        outline = [
            OutlineItem.from_dict(entry) for entry in raw_outline if isinstance(entry, dict)
        ]
        return cls(
            id=str(row["id"]),
            title=str(row.get("title", "")),
            type=ProjectType(row.get("type") or ProjectType.THESIS.value),
            description=str(row.get("description") or ""),
            content=str(row.get("content") or ""),
            outline=outline,
            status=ProjectStatus(row.get("status") or ProjectStatus.DRAFT.value),
            progress=int(row.get("progress") or 0),
            last_modified=int(row.get("last_modified") or 0),
        )


_UPDATABLE_FIELDS = frozenset(
    f.name for f in fields(Project) if f.name not in {"id", "last_modified"}
)


class ProjectService(QObject):
    """Create, load and save projects; one database per user."""

    projects_changed = pyqtSignal(object)

    def __init__(self, *, storage_root: str | Path | None = None) -> None:
        super().__init__()
        if storage_root is None:
            storage_root = get_user_config_dir() / "storage"
        self._storage_root = Path(storage_root)
        self._storage_root.mkdir(parents=True, exist_ok=True)
        self._db = DatabaseManager(self._storage_root / DATABASE_FILENAME)
        self._db.initialize()
        self.projects = ProjectRepository(self._db)
        self._lock = threading.RLock()

    def shutdown(self) -> None:
        """Close resources held by the service."""

        with self._lock:
            self._db.close()

    @property
    def database_path(self) -> Path:
        return self._db.path

    # ------------------------------------------------------------------
    def list_projects(self) -> list[Project]:
        return [Project.from_row(entry) for entry in self.projects.list() if entry]

    def get_project(self, project_id: str) -> Project | None:
        entry = self.projects.get(project_id)
        if not entry:
            return None
        return Project.from_row(entry)

    @log_call(logger=logger)
    def add_project(
        self,
        title: str,
        description: str = "",
        type: ProjectType = ProjectType.THESIS,
    ) -> Project:
        cleaned = title.strip()
        if not cleaned:
            raise ValueError("Project title must not be blank")
        project = Project(title=cleaned, description=description, type=ProjectType(type))
        with self._lock:
            self.projects.create(**project.to_row())
            logger.info("Created project", extra={"project_id": project.id})
            self._emit_projects_changed()
        return project

    @log_call(logger=logger, include_args=False)
    def update_project(self, project_id: str, **updates: Any) -> Project:
        """Apply ``updates`` to ``project_id`` and bump its modification time."""

        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown project fields: {sorted(unknown)}")
        if "type" in updates:
            updates["type"] = ProjectType(updates["type"])
        if "status" in updates:
            updates["status"] = ProjectStatus(updates["status"])
        if "outline" in updates:
            updates["outline"] = [
                item if isinstance(item, OutlineItem) else OutlineItem.from_dict(item)
                for item in updates["outline"]
            ]
        if "progress" in updates:
            updates["progress"] = max(0, min(100, int(updates["progress"])))
        with self._lock:
            current = self.get_project(project_id)
            if current is None:
                raise LookupError(f"Unknown project id {project_id}")
            updated = replace(current, **updates, last_modified=_now_ms())
            row = updated.to_row()
            row.pop("id")
            self.projects.update(project_id, **row)
            self._emit_projects_changed()
        return updated

    @log_call(logger=logger)
    def delete_project(self, project_id: str) -> None:
        with self._lock:
            self.projects.delete(project_id)
            self._emit_projects_changed()

    # ------------------------------------------------------------------
    def load_project(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        if project is None:
            raise KeyError(project_id)
        return project

    @log_call(logger=logger, include_args=False)
    def save_project(self, project: Project) -> Project:
        """Persist ``project`` as a whole, creating it when new."""

        saved = replace(project, last_modified=_now_ms())
        with self._lock:
            self.projects.upsert(**saved.to_row())
            logger.info(
                "Saved project",
                extra={"project_id": saved.id, "content_length": len(saved.content)},
            )
            self._emit_projects_changed()
        return saved

    def _emit_projects_changed(self) -> None:
        self.projects_changed.emit(self.list_projects())


__all__ = [
    "OutlineItem",
    "Project",
    "ProjectService",
    "ProjectStatus",
    "ProjectType",
]
