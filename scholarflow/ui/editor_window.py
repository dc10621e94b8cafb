"""Main editor window for a ScholarFlow project."""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from pathlib import Path

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QAction, QCloseEvent, QKeySequence
from PyQt6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QSplitter,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from ..services.chat_client import ChatClient, ChatClientError
from ..services.chat_session import ChatSession, SessionState
from ..services.export_service import ExportError, ExportFormat, ExportService, document_stats
from ..services.outline_service import OutlineGenerationError, OutlineService
from ..services.project_service import OutlineItem, Project, ProjectService, ProjectStatus
from ..services.prompts import build_base_instruction
from ..services.research_mode import ModeController
from ..services.session_runner import SessionRunner
from .assistant_panel import AssistantPanel
from .citation_dialog import CitationDialog


LOGGER = logging.getLogger(__name__)

EXPORT_FILTERS = {
    "PDF Document (*.pdf)": ExportFormat.PDF,
    "Word Document (*.docx)": ExportFormat.DOCX,
    "LaTeX Source (*.tex)": ExportFormat.LATEX,
    "Markdown (*.md)": ExportFormat.MARKDOWN,
}


class EditorWindow(QMainWindow):
    """Outline, editor and research assistant side by side."""

    _outline_ready = pyqtSignal(object)
    _outline_failed = pyqtSignal(str)
    closed = pyqtSignal(str)

    def __init__(
        self,
        *,
        project_service: ProjectService,
        chat_client: ChatClient,
        project: Project,
        outline_service: OutlineService | None = None,
        export_service: ExportService | None = None,
        mode: ModeController | None = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.project_service = project_service
        self.chat_client = chat_client
        self.outline_service = outline_service or OutlineService(chat_client)
        self.export_service = export_service or ExportService()
        self.mode = mode or ModeController()
        self.project = project
        self._dirty = False

        self.session = ChatSession(chat_client, mode=self.mode, model=chat_client.model)
        self.runner = SessionRunner(self.session)

        self._build_ui()
        self._connect_signals()
        self._load_project(project)
        if not chat_client.has_credentials:
            self.assistant_panel.set_status_message(
                "No API key configured. Set SCHOLARFLOW_API_KEY to enable the assistant."
            )

    # ------------------------------------------------------------------
    def _build_ui(self) -> None:
        self.resize(1280, 800)

        toolbar = QToolBar("Main", self)
        toolbar.setMovable(False)
        self.addToolBar(toolbar)
        self.save_action = QAction("Save", self)
        self.save_action.setShortcut(QKeySequence.StandardKey.Save)
        toolbar.addAction(self.save_action)
        self.citations_action = QAction("Citations", self)
        toolbar.addAction(self.citations_action)
        self.export_action = QAction("Export", self)
        toolbar.addAction(self.export_action)
        toolbar.addSeparator()
        self.status_combo = QComboBox(toolbar)
        for status in ProjectStatus:
            self.status_combo.addItem(status.value.capitalize(), status.value)
        self.status_combo.setToolTip("Document status")
        toolbar.addWidget(self.status_combo)
        self.progress_spin = QSpinBox(toolbar)
        self.progress_spin.setRange(0, 100)
        self.progress_spin.setSuffix("%")
        self.progress_spin.setToolTip("Completion")
        toolbar.addWidget(self.progress_spin)

        outline_container = QWidget(self)
        outline_layout = QVBoxLayout(outline_container)
        outline_layout.setContentsMargins(8, 8, 8, 8)
        outline_layout.addWidget(QLabel("OUTLINE", outline_container))
        self.outline_list = QListWidget(outline_container)
        outline_layout.addWidget(self.outline_list, 1)
        self.generate_outline_button = QPushButton("Auto-Generate", outline_container)
        outline_layout.addWidget(self.generate_outline_button)

        self.editor = QPlainTextEdit(self)
        self.editor.setPlaceholderText("Start writing...")

        self.assistant_panel = AssistantPanel(self)

        splitter = QSplitter(Qt.Orientation.Horizontal, self)
        splitter.addWidget(outline_container)
        splitter.addWidget(self.editor)
        splitter.addWidget(self.assistant_panel)
        splitter.setStretchFactor(0, 1)
        splitter.setStretchFactor(1, 3)
        splitter.setStretchFactor(2, 2)
        self.setCentralWidget(splitter)

        self.stats_label = QLabel(self)
        self.statusBar().addPermanentWidget(self.stats_label)

    def _connect_signals(self) -> None:
        self.save_action.triggered.connect(self.save)
        self.citations_action.triggered.connect(self._open_citations)
        self.export_action.triggered.connect(self._export)
        self.generate_outline_button.clicked.connect(self.generate_outline)
        self.editor.textChanged.connect(self._on_text_changed)
        self.status_combo.activated.connect(self._on_status_selected)
        self.progress_spin.editingFinished.connect(self._on_progress_edited)

        self.assistant_panel.submit_requested.connect(self.submit_message)
        self.assistant_panel.research_mode_toggled.connect(self.mode.set_research_mode)
        self.assistant_panel.stop_requested.connect(self.runner.cancel)
        self.assistant_panel.set_research_mode(self.mode.research_mode)

        self.runner.transcript_changed.connect(self.assistant_panel.render_transcript)
        self.runner.busy_changed.connect(self.assistant_panel.set_busy)
        self.runner.state_changed.connect(self._on_session_state)

        self._outline_ready.connect(self._apply_outline)
        self._outline_failed.connect(self._on_outline_failed)

    def _load_project(self, project: Project) -> None:
        self.project = project
        self.setWindowTitle(f"{project.title} - ScholarFlow")
        self.editor.blockSignals(True)
        self.editor.setPlainText(project.content)
        self.editor.blockSignals(False)
        self.status_combo.setCurrentIndex(self.status_combo.findData(project.status.value))
        self.progress_spin.setValue(project.progress)
        self._render_outline(project.outline)
        self._update_stats()
        self._dirty = False

    # ------------------------------------------------------------------
    def current_project(self) -> Project:
        return replace(self.project, content=self.editor.toPlainText())

    def submit_message(self, text: str) -> bool:
        project = self.current_project()
        instruction = build_base_instruction(
            project_type=project.type.value,
            title=project.title,
            description=project.description,
            content=project.content,
        )
        accepted = self.runner.submit(text, base_instruction=instruction)
        if accepted:
            self.assistant_panel.clear_input()
        else:
            self.statusBar().showMessage("The assistant is still answering.", 3000)
        return accepted

    def save(self) -> Project:
        saved = self.project_service.save_project(self.current_project())
        self.project = saved
        self._dirty = False
        self.statusBar().showMessage("Saved", 2000)
        return saved

    def set_status(self, status: ProjectStatus) -> Project:
        return self._update_metadata(status=ProjectStatus(status))

    def set_progress(self, progress: int) -> Project:
        return self._update_metadata(progress=progress)

    def _update_metadata(self, **updates) -> Project:
        stored = self.project_service.update_project(self.project.id, **updates)
        # Only the metadata is taken over; unsaved text stays in the editor.
        self.project = replace(
            self.project,
            status=stored.status,
            progress=stored.progress,
            last_modified=stored.last_modified,
        )
        self.status_combo.setCurrentIndex(self.status_combo.findData(stored.status.value))
        if self.progress_spin.value() != stored.progress:
            self.progress_spin.setValue(stored.progress)
        return self.project

    def generate_outline(self) -> None:
        self.generate_outline_button.setEnabled(False)
        self.generate_outline_button.setText("Generating...")
        project = self.current_project()

        def worker() -> None:
            try:
                items = self.outline_service.generate(project)
            except (OutlineGenerationError, ChatClientError) as exc:
                LOGGER.warning("Outline generation failed", extra={"error": str(exc)})
                self._outline_failed.emit(str(exc))
            except Exception as exc:
                LOGGER.exception("Outline generation crashed")
                self._outline_failed.emit(str(exc) or type(exc).__name__)
            else:
                self._outline_ready.emit(items)

        threading.Thread(target=worker, name="outline-generation", daemon=True).start()

    # ------------------------------------------------------------------
    def _render_outline(self, outline: list[OutlineItem]) -> None:
        self.outline_list.clear()
        for item in outline:
            entry = QListWidgetItem("    " * (item.level - 1) + item.title)
            entry.setData(Qt.ItemDataRole.UserRole, item.id)
            self.outline_list.addItem(entry)

    def _apply_outline(self, items: list[OutlineItem]) -> None:
        self._reset_outline_button()
        if not items:
            self.statusBar().showMessage("The assistant returned an empty outline.", 4000)
            return
        self.project = replace(self.current_project(), outline=list(items))
        self._render_outline(self.project.outline)
        self._dirty = True

    def _on_outline_failed(self, message: str) -> None:
        self._reset_outline_button()
        QMessageBox.warning(self, "Outline", f"Could not generate an outline.\n\n{message}")

    def _reset_outline_button(self) -> None:
        self.generate_outline_button.setEnabled(True)
        self.generate_outline_button.setText("Auto-Generate")

    def _on_status_selected(self, index: int) -> None:
        value = self.status_combo.itemData(index)
        if value and value != self.project.status.value:
            self.set_status(ProjectStatus(value))

    def _on_progress_edited(self) -> None:
        if self.progress_spin.value() != self.project.progress:
            self.set_progress(self.progress_spin.value())

    def _on_text_changed(self) -> None:
        self._dirty = True
        self._update_stats()

    def _update_stats(self) -> None:
        stats = document_stats(self.editor.toPlainText())
        self.stats_label.setText(f"{stats.words} words · {stats.reading_minutes} min read")

    def _on_session_state(self, state: SessionState) -> None:
        if state is SessionState.FAILED:
            self.statusBar().showMessage("The assistant request failed.", 4000)

    def _open_citations(self) -> None:
        CitationDialog(self).exec()

    def _export(self) -> None:
        path, selected = QFileDialog.getSaveFileName(
            self,
            "Export Document",
            str(Path.home() / self.project.title),
            ";;".join(EXPORT_FILTERS),
        )
        if not path:
            return
        fmt = EXPORT_FILTERS.get(selected, ExportFormat.MARKDOWN)
        destination = Path(path)
        if destination.suffix != fmt.suffix:
            destination = destination.with_suffix(fmt.suffix)
        try:
            written = self.export_service.export_project(self.current_project(), destination, fmt)
        except (ExportError, OSError) as exc:
            LOGGER.exception("Export failed", extra={"destination": str(destination)})
            QMessageBox.critical(self, "Export", f"Export failed: {exc}")
            return
        self.statusBar().showMessage(f"Exported to {written}", 4000)

    def closeEvent(self, event: QCloseEvent) -> None:  # type: ignore[override]
        if self._dirty:
            self.save()
        self.runner.shutdown()
        super().closeEvent(event)
        self.closed.emit(self.project.id)


__all__ = ["EditorWindow", "EXPORT_FILTERS"]
