from __future__ import annotations

import sqlite3
import time
from pathlib import Path

import pytest

pytest.importorskip("PyQt6", reason="PyQt6 is required for project services", exc_type=ImportError)

from scholarflow.services.project_service import (
    OutlineItem,
    Project,
    ProjectService,
    ProjectStatus,
    ProjectType,
)
from scholarflow.storage import DatabaseError, DatabaseManager


@pytest.fixture()
def project_service(tmp_path: Path) -> ProjectService:
    service = ProjectService(storage_root=tmp_path / "storage")
    yield service
    service.shutdown()


def test_add_and_list_projects(project_service: ProjectService) -> None:
    emitted: list[list[Project]] = []
    project_service.projects_changed.connect(emitted.append)

    first = project_service.add_project("  Coral Reefs ", "Bleaching", ProjectType.DISSERTATION)
    second = project_service.add_project("Neural Nets")

    assert first.title == "Coral Reefs"
    assert first.type is ProjectType.DISSERTATION
    assert first.status is ProjectStatus.DRAFT
    listed = project_service.list_projects()
    assert {project.id for project in listed} == {first.id, second.id}
    assert len(emitted) == 2


def test_blank_title_rejected(project_service: ProjectService) -> None:
    with pytest.raises(ValueError):
        project_service.add_project("   ")


def test_save_round_trips_outline_and_content(project_service: ProjectService) -> None:
    project = project_service.add_project("Thesis")
    project.content = "Chapter one text."
    project.outline = [OutlineItem("Introduction", 1), OutlineItem("Background", 2)]

    saved = project_service.save_project(project)
    loaded = project_service.load_project(project.id)

    assert loaded.content == "Chapter one text."
    assert [(item.title, item.level) for item in loaded.outline] == [
        ("Introduction", 1),
        ("Background", 2),
    ]
    assert loaded.outline[0].id == project.outline[0].id
    assert saved.last_modified >= project.last_modified


def test_save_creates_unknown_project(project_service: ProjectService) -> None:
    project = Project(title="Imported", type=ProjectType.PAPER)

    project_service.save_project(project)

    assert project_service.get_project(project.id).type is ProjectType.PAPER


def test_update_coerces_fields(project_service: ProjectService) -> None:
    project = project_service.add_project("Thesis")

    updated = project_service.update_project(
        project.id,
        status="review",
        progress=140,
        outline=[{"title": "Methods", "level": 2}],
    )

    assert updated.status is ProjectStatus.REVIEW
    assert updated.progress == 100
    assert updated.outline[0].title == "Methods"
    assert project_service.get_project(project.id).progress == 100


def test_update_rejects_unknown_fields_and_ids(project_service: ProjectService) -> None:
    project = project_service.add_project("Thesis")

    with pytest.raises(ValueError):
        project_service.update_project(project.id, colour="red")
    with pytest.raises(LookupError):
        project_service.update_project("missing", title="x")


def test_delete_and_missing_load(project_service: ProjectService) -> None:
    project = project_service.add_project("Short lived")

    project_service.delete_project(project.id)

    assert project_service.get_project(project.id) is None
    with pytest.raises(KeyError):
        project_service.load_project(project.id)


def test_most_recent_project_listed_first(project_service: ProjectService) -> None:
    older = project_service.add_project("Older")
    project_service.add_project("Newer")
    time.sleep(0.01)

    project_service.update_project(older.id, description="touched")

    assert project_service.list_projects()[0].id == older.id


def test_newer_schema_version_is_refused(tmp_path: Path) -> None:
    path = tmp_path / "future.db"
    connection = sqlite3.connect(path)
    connection.execute("PRAGMA user_version = 99")
    connection.close()

    manager = DatabaseManager(path)
    try:
        with pytest.raises(DatabaseError):
            manager.initialize()
    finally:
        manager.close()
