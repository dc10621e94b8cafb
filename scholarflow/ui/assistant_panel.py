"""Sidebar hosting the research assistant conversation."""

from __future__ import annotations

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QTextBrowser,
    QTextEdit,
    QVBoxLayout,
)

from ..services.transcript import Turn, TurnRole, TurnStatus


EMPTY_STATE_MARKDOWN = (
    "**How can I help you today?**\n\n"
    "Ask me to brainstorm, outline, or proofread your document. "
    "Toggle Research Mode to search academic sources."
)


class _ChatInput(QTextEdit):
    """Text edit that submits on Enter and inserts a newline on Shift+Enter."""

    submit_requested = pyqtSignal()

    def keyPressEvent(self, event) -> None:  # type: ignore[override]
        if event.key() in {Qt.Key.Key_Return, Qt.Key.Key_Enter} and not (
            event.modifiers() & Qt.KeyboardModifier.ShiftModifier
        ):
            event.accept()
            self.submit_requested.emit()
            return
        super().keyPressEvent(event)


def transcript_to_markdown(turns: tuple[Turn, ...] | list[Turn]) -> str:
    """Render turns as one Markdown document, newest last."""

    if not turns:
        return EMPTY_STATE_MARKDOWN
    blocks: list[str] = []
    for turn in turns:
        if turn.role is TurnRole.USER:
            quoted = "\n".join(f"> {line}" for line in turn.text.splitlines() or [""])
            blocks.append(f"**You**\n\n{quoted}")
            continue
        body = turn.text
        if turn.status is TurnStatus.ACTIVE and not body:
            body = "_Thinking…_"
        elif turn.status is TurnStatus.CANCELLED:
            body = f"{body}\n\n_(stopped)_" if body else "_(stopped)_"
        blocks.append(f"**Assistant**\n\n{body}")
    return "\n\n---\n\n".join(blocks)


class AssistantPanel(QFrame):
    """Transcript view, research toggle and message input."""

    submit_requested = pyqtSignal(str)
    research_mode_toggled = pyqtSignal(bool)
    stop_requested = pyqtSignal()

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setObjectName("assistantPanel")
        self._busy = False

        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)

        header = QLabel("RESEARCH ASSISTANT", self)
        header.setObjectName("assistantHeader")
        layout.addWidget(header)

        self.research_button = QPushButton("Enable Research Mode", self)
        self.research_button.setCheckable(True)
        self.research_button.toggled.connect(self._on_research_toggled)
        layout.addWidget(self.research_button)

        self.transcript_view = QTextBrowser(self)
        self.transcript_view.setOpenExternalLinks(True)
        layout.addWidget(self.transcript_view, 1)

        self.status_label = QLabel("", self)
        self.status_label.setVisible(False)
        layout.addWidget(self.status_label)

        self.input = _ChatInput(self)
        self.input.setAcceptRichText(False)
        self.input.setMaximumHeight(120)
        self.input.textChanged.connect(self._update_button_state)
        self.input.submit_requested.connect(self._trigger_submit)
        layout.addWidget(self.input)

        buttons = QHBoxLayout()
        buttons.addStretch(1)
        self.stop_button = QPushButton("Stop", self)
        self.stop_button.setVisible(False)
        self.stop_button.clicked.connect(self.stop_requested.emit)
        buttons.addWidget(self.stop_button)
        self.send_button = QPushButton("Send", self)
        self.send_button.setDefault(True)
        self.send_button.clicked.connect(self._trigger_submit)
        buttons.addWidget(self.send_button)
        layout.addLayout(buttons)

        self._apply_research_labels(False)
        self.render_transcript(())
        self._update_button_state()

    # ------------------------------------------------------------------
    def text(self) -> str:
        return self.input.toPlainText().strip()

    def clear_input(self) -> None:
        self.input.clear()

    @property
    def research_mode(self) -> bool:
        return self.research_button.isChecked()

    def set_research_mode(self, enabled: bool) -> None:
        self.research_button.setChecked(bool(enabled))

    def set_busy(self, busy: bool) -> None:
        self._busy = bool(busy)
        self.input.setReadOnly(self._busy)
        self.stop_button.setVisible(self._busy)
        self._update_button_state()

    def set_status_message(self, message: str | None) -> None:
        display = (message or "").strip()
        self.status_label.setText(display)
        self.status_label.setVisible(bool(display))

    def render_transcript(self, turns) -> None:
        self.transcript_view.setMarkdown(transcript_to_markdown(tuple(turns)))
        scrollbar = self.transcript_view.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    # ------------------------------------------------------------------
    def _trigger_submit(self) -> None:
        if self._busy:
            return
        text = self.input.toPlainText()
        if not text.strip():
            return
        self.submit_requested.emit(text.strip())

    def _on_research_toggled(self, enabled: bool) -> None:
        self._apply_research_labels(enabled)
        self.research_mode_toggled.emit(enabled)

    def _apply_research_labels(self, enabled: bool) -> None:
        if enabled:
            self.research_button.setText("Research Mode Active")
            self.input.setPlaceholderText("Enter research topic...")
        else:
            self.research_button.setText("Enable Research Mode")
            self.input.setPlaceholderText("Ask AI...")

    def _update_button_state(self) -> None:
        self.send_button.setEnabled(bool(self.text()) and not self._busy)


__all__ = ["AssistantPanel", "transcript_to_markdown"]
