"""SQLite connection management and repositories for the storage layer."""

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Iterable

SCHEMA_VERSION = 1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'thesis',
    description TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL DEFAULT '',
    outline TEXT NOT NULL DEFAULT '[]',
    status TEXT NOT NULL DEFAULT 'draft',
    progress INTEGER NOT NULL DEFAULT 0,
    last_modified INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_projects_last_modified
    ON projects (last_modified DESC);
"""

logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """Raised when database bootstrap or queries fail."""


class DatabaseManager:
    """Manage per-thread SQLite connections and the schema version."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.parent.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
        self._connection_lock = threading.RLock()
        self._connections: dict[int, sqlite3.Connection] = {}

    def connect(self) -> sqlite3.Connection:
        """Return the connection owned by the calling thread."""
        thread_id = threading.get_ident()
        with self._connection_lock:
            connection = self._connections.get(thread_id)
            if connection is None:
                connection = sqlite3.connect(self.path, check_same_thread=False)
                connection.row_factory = sqlite3.Row
                self._connections[thread_id] = connection
            return connection

    def close(self) -> None:
        """Close every connection opened through this manager."""
        with self._connection_lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for connection in connections:
            connection.close()

    def initialize(self) -> None:
        """Create the schema on first use."""
        connection = self.connect()
        try:
            with connection:
                version = self._get_user_version(connection)
                if version > SCHEMA_VERSION:
                    raise DatabaseError(
                        "Database schema version is newer than this application supports"
                    )
                if version < SCHEMA_VERSION:
                    connection.executescript(SCHEMA_SQL)
                    self._set_user_version(connection, SCHEMA_VERSION)
                    logger.info(
                        "Installed database schema",
                        extra={"path": str(self.path), "version": SCHEMA_VERSION},
                    )
        except sqlite3.DatabaseError as exc:
            raise DatabaseError(str(exc)) from exc

    @staticmethod
    def _get_user_version(connection: sqlite3.Connection) -> int:
        cursor = connection.execute("PRAGMA user_version")
        row = cursor.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _set_user_version(connection: sqlite3.Connection, version: int) -> None:
        connection.execute(f"PRAGMA user_version = {int(version)}")

    @contextlib.contextmanager
    def transaction(self) -> Iterable[sqlite3.Connection]:
        """Context manager that wraps operations in a transaction."""
        connection = self.connect()
        try:
            with connection:
                yield connection
        except sqlite3.DatabaseError as exc:
            raise DatabaseError(str(exc)) from exc


class BaseRepository:
    """Common utilities shared by repository implementations."""

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    @contextlib.contextmanager
    def transaction(self) -> Iterable[sqlite3.Connection]:
        with self.db.transaction() as connection:
            yield connection

    @staticmethod
    def _row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
        if row is None:
            return None
        return {key: row[key] for key in row.keys()}


class ProjectRepository(BaseRepository):
    """CRUD helpers for project rows."""

    COLUMNS = (
        "id",
        "title",
        "type",
        "description",
        "content",
        "outline",
        "status",
        "progress",
        "last_modified",
    )

    def create(self, **fields: Any) -> dict[str, Any]:
        self._check_columns(fields)
        columns = ", ".join(fields.keys())
        placeholders = ", ".join("?" for _ in fields)
        with self.transaction() as connection:
            connection.execute(
                f"INSERT INTO projects ({columns}) VALUES ({placeholders})",
                list(fields.values()),
            )
        return self.get(fields["id"])  # type: ignore[return-value]

    def get(self, project_id: str) -> dict[str, Any] | None:
        connection = self.db.connect()
        row = connection.execute(
            "SELECT * FROM projects WHERE id = ?", (project_id,)
        ).fetchone()
        return self._row_to_dict(row)

    def list(self) -> list[dict[str, Any]]:
        connection = self.db.connect()
        rows = connection.execute(
            "SELECT * FROM projects ORDER BY last_modified DESC, rowid DESC"
        ).fetchall()
        return [self._row_to_dict(row) for row in rows if row is not None]  # type: ignore[list-item]

    def update(self, project_id: str, **fields: Any) -> dict[str, Any] | None:
        if not fields:
            return self.get(project_id)
        self._check_columns(fields)
        columns = ", ".join(f"{key} = ?" for key in fields.keys())
        values = list(fields.values()) + [project_id]
        with self.transaction() as connection:
            connection.execute(f"UPDATE projects SET {columns} WHERE id = ?", values)
        return self.get(project_id)

    def upsert(self, **fields: Any) -> dict[str, Any]:
        self._check_columns(fields)
        if self.get(fields["id"]) is None:
            return self.create(**fields)
        project_id = fields.pop("id")
        return self.update(project_id, **fields)  # type: ignore[return-value]

    def delete(self, project_id: str) -> None:
        with self.transaction() as connection:
            connection.execute("DELETE FROM projects WHERE id = ?", (project_id,))

    @classmethod
    def _check_columns(cls, fields: dict[str, Any]) -> None:
        unknown = set(fields) - set(cls.COLUMNS)
        if unknown:
            raise ValueError(f"Unknown project columns: {sorted(unknown)}")


__all__ = [
    "BaseRepository",
    "DatabaseError",
    "DatabaseManager",
    "ProjectRepository",
    "SCHEMA_VERSION",
]
