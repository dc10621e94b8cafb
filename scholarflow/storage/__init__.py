"""Storage interfaces for the ScholarFlow application."""

from .database import (
    BaseRepository,
    DatabaseError,
    DatabaseManager,
    ProjectRepository,
)

__all__ = [
    "BaseRepository",
    "DatabaseError",
    "DatabaseManager",
    "ProjectRepository",
]
