"""Document dashboard: list, search, create and delete projects."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QAction, QCloseEvent
from PyQt6.QtWidgets import (
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ..services.project_service import Project, ProjectService, ProjectType


LOGGER = logging.getLogger(__name__)

PROJECT_TYPE_LABELS = {
    ProjectType.THESIS: "Thesis",
    ProjectType.DISSERTATION: "Dissertation",
    ProjectType.PAPER: "Research Paper",
}

EMPTY_LIST_TEXT = (
    "No documents found.\nGet started by creating a new document for your research."
)


def filter_projects(projects: Iterable[Project], query: str) -> list[Project]:
    """Keep projects whose title or description contains ``query``, ignoring case."""

    needle = query.strip().lower()
    if not needle:
        return list(projects)
    return [
        project
        for project in projects
        if needle in project.title.lower() or needle in project.description.lower()
    ]


def describe_last_modified(timestamp_ms: int, *, now: float | None = None) -> str:
    elapsed = max(0.0, (time.time() if now is None else now) - timestamp_ms / 1000)
    for seconds, unit in ((86400, "day"), (3600, "hour"), (60, "minute")):
        if elapsed >= seconds:
            count = int(elapsed // seconds)
            if unit == "day" and count > 30:
                stamp = datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d")
                return f"Edited {stamp}"
            return f"Edited {count} {unit}{'' if count == 1 else 's'} ago"
    return "Edited just now"


def project_summary(project: Project, *, now: float | None = None) -> str:
    """Two-line card text: title, then type, status, progress and age."""

    details = " · ".join(
        (
            PROJECT_TYPE_LABELS.get(project.type, project.type.value),
            project.status.value.capitalize(),
            f"{project.progress}%",
            describe_last_modified(project.last_modified, now=now),
        )
    )
    return f"{project.title}\n{details}"


class NewProjectDialog(QDialog):
    """Collect the title, type and description of a new document."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Create New Document")
        self.setMinimumWidth(420)

        layout = QVBoxLayout(self)
        layout.addWidget(
            QLabel("Start a new thesis, dissertation, or research paper.", self)
        )
        form = QFormLayout()
        layout.addLayout(form)

        self.title_edit = QLineEdit(self)
        self.title_edit.setPlaceholderText("e.g., The Impact of AI on Education")
        form.addRow("Document Title", self.title_edit)

        self.type_combo = QComboBox(self)
        for project_type, label in PROJECT_TYPE_LABELS.items():
            self.type_combo.addItem(label, project_type.value)
        form.addRow("Type", self.type_combo)

        self.description_edit = QPlainTextEdit(self)
        self.description_edit.setPlaceholderText("Brief summary of your research topic...")
        self.description_edit.setMaximumHeight(100)
        form.addRow("Description (Optional)", self.description_edit)

        self.buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel,
            parent=self,
        )
        self.create_button = self.buttons.button(QDialogButtonBox.StandardButton.Ok)
        self.create_button.setText("Create Document")
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        layout.addWidget(self.buttons)

        self.title_edit.textChanged.connect(self._update_create_button)
        self._update_create_button()

    def values(self) -> tuple[str, str, ProjectType]:
        return (
            self.title_edit.text().strip(),
            self.description_edit.toPlainText().strip(),
            ProjectType(self.type_combo.currentData()),
        )

    def _update_create_button(self) -> None:
        self.create_button.setEnabled(bool(self.title_edit.text().strip()))


class ProjectDashboard(QMainWindow):
    """Searchable list of documents; opening one shows its editor."""

    project_opened = pyqtSignal(object)

    def __init__(
        self,
        project_service: ProjectService,
        *,
        editor_factory: Callable[[Project], QWidget],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.project_service = project_service
        self._editor_factory = editor_factory
        self._editors: dict[str, QWidget] = {}
        self._projects: list[Project] = []

        self.setWindowTitle("Documents - ScholarFlow")
        self.resize(900, 640)
        self._build_ui()

        self.project_service.projects_changed.connect(self._on_projects_changed)
        self.refresh()

    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        self.new_project_action = QAction("New Document…", self)
        self.new_project_action.triggered.connect(self._prompt_new_project)
        self.delete_project_action = QAction("Delete Document", self)
        self.delete_project_action.triggered.connect(self._delete_selected_project)
        file_menu = self.menuBar().addMenu("&File")
        file_menu.addAction(self.new_project_action)
        file_menu.addAction(self.delete_project_action)

        container = QWidget(self)
        layout = QVBoxLayout(container)
        layout.setContentsMargins(16, 16, 16, 16)

        header = QHBoxLayout()
        title = QLabel("<h2>Documents</h2>", container)
        header.addWidget(title)
        header.addStretch(1)
        self.search_edit = QLineEdit(container)
        self.search_edit.setPlaceholderText("Search documents...")
        self.search_edit.setClearButtonEnabled(True)
        self.search_edit.textChanged.connect(self._apply_filter)
        header.addWidget(self.search_edit)
        self.new_button = QPushButton("New Document", container)
        self.new_button.clicked.connect(self._prompt_new_project)
        header.addWidget(self.new_button)
        layout.addLayout(header)

        self.project_list = QListWidget(container)
        self.project_list.setAlternatingRowColors(True)
        self.project_list.itemActivated.connect(self._on_item_activated)
        self.project_list.currentItemChanged.connect(self._update_actions)
        layout.addWidget(self.project_list, 1)

        self.empty_label = QLabel(EMPTY_LIST_TEXT, container)
        self.empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.empty_label, 1)

        buttons = QHBoxLayout()
        buttons.addStretch(1)
        self.delete_button = QPushButton("Delete", container)
        self.delete_button.clicked.connect(self._delete_selected_project)
        buttons.addWidget(self.delete_button)
        self.open_button = QPushButton("Open", container)
        self.open_button.setDefault(True)
        self.open_button.clicked.connect(self._open_selected_project)
        buttons.addWidget(self.open_button)
        layout.addLayout(buttons)

        self.setCentralWidget(container)

    # ------------------------------------------------------------------
    def refresh(self, projects: list[Project] | None = None) -> None:
        if projects is None:
            projects = self.project_service.list_projects()
        self._projects = list(projects)
        self._apply_filter()

    def visible_projects(self) -> list[Project]:
        return filter_projects(self._projects, self.search_edit.text())

    def selected_project(self) -> Project | None:
        item = self.project_list.currentItem()
        if item is None:
            return None
        return self._find(item.data(Qt.ItemDataRole.UserRole))

    def create_project(
        self,
        title: str,
        description: str = "",
        project_type: ProjectType = ProjectType.THESIS,
    ) -> Project:
        project = self.project_service.add_project(title, description, project_type)
        self._select(project.id)
        self.statusBar().showMessage(f"Document '{project.title}' created.", 2500)
        return project

    def open_project(self, project_id: str) -> QWidget:
        """Show the editor for ``project_id``, reusing one that is already open."""

        editor = self._editors.get(project_id)
        if editor is None:
            project = self.project_service.load_project(project_id)
            LOGGER.info("Opening project", extra={"project_id": project_id})
            editor = self._editor_factory(project)
            closed = getattr(editor, "closed", None)
            if closed is not None:
                closed.connect(self._on_editor_closed)
            self._editors[project_id] = editor
            self.project_opened.emit(project)
        editor.show()
        editor.raise_()
        editor.activateWindow()
        return editor

    def open_editors(self) -> dict[str, QWidget]:
        return dict(self._editors)

    def delete_project(self, project_id: str) -> bool:
        """Delete ``project_id`` unless its editor is still open."""

        if project_id in self._editors:
            QMessageBox.information(
                self,
                "Delete Document",
                "Close the document's editor before deleting it.",
            )
            return False
        self.project_service.delete_project(project_id)
        LOGGER.info("Deleted project", extra={"project_id": project_id})
        self.statusBar().showMessage("Document deleted.", 2500)
        return True

    # ------------------------------------------------------------------
    def _apply_filter(self, *_args) -> None:
        current = self.selected_project()
        visible = self.visible_projects()
        self.project_list.clear()
        for project in visible:
            item = QListWidgetItem(project_summary(project))
            item.setData(Qt.ItemDataRole.UserRole, project.id)
            item.setToolTip(project.description or project.title)
            self.project_list.addItem(item)
        self.project_list.setVisible(bool(visible))
        self.empty_label.setVisible(not visible)
        if current is not None:
            self._select(current.id)
        self._update_actions()

    def _select(self, project_id: str) -> None:
        for row in range(self.project_list.count()):
            item = self.project_list.item(row)
            if item.data(Qt.ItemDataRole.UserRole) == project_id:
                self.project_list.setCurrentItem(item)
                return

    def _find(self, project_id: str | None) -> Project | None:
        for project in self._projects:
            if project.id == project_id:
                return project
        return None

    def _update_actions(self, *_args) -> None:
        has_selection = self.project_list.currentItem() is not None
        self.open_button.setEnabled(has_selection)
        self.delete_button.setEnabled(has_selection)
        self.delete_project_action.setEnabled(has_selection)

    def _on_projects_changed(self, projects: list[Project]) -> None:
        self.refresh(projects)

    def _on_item_activated(self, item: QListWidgetItem) -> None:
        self.open_project(item.data(Qt.ItemDataRole.UserRole))

    def _open_selected_project(self) -> None:
        project = self.selected_project()
        if project is not None:
            self.open_project(project.id)

    def _prompt_new_project(self) -> None:
        dialog = NewProjectDialog(self)
        if dialog.exec() != QDialog.DialogCode.Accepted:
            return
        title, description, project_type = dialog.values()
        if not title:
            return
        self.create_project(title, description, project_type)

    def _delete_selected_project(self) -> None:
        project = self.selected_project()
        if project is None:
            return
        reply = QMessageBox.question(
            self,
            "Delete Document",
            f"Delete '{project.title}'? This action cannot be undone.",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
            QMessageBox.StandardButton.No,
        )
        if reply != QMessageBox.StandardButton.Yes:
            return
        self.delete_project(project.id)

    def _on_editor_closed(self, project_id: str) -> None:
        self._editors.pop(project_id, None)

    def closeEvent(self, event: QCloseEvent) -> None:  # type: ignore[override]
        for editor in list(self._editors.values()):
            editor.close()
        super().closeEvent(event)


__all__ = [
    "NewProjectDialog",
    "ProjectDashboard",
    "describe_last_modified",
    "filter_projects",
    "project_summary",
]
