"""Dialog for generating formatted citations."""

from __future__ import annotations

from PyQt6.QtWidgets import (
    QApplication,
    QComboBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QHBoxLayout,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
)

from ..services.citation_service import (
    CitationSource,
    CitationStyle,
    SourceType,
    format_citation,
)


class CitationDialog(QDialog):
    """Collect source details and render them in the chosen style."""

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Citation Generator")
        self.setMinimumWidth(480)

        layout = QVBoxLayout(self)
        form = QFormLayout()
        layout.addLayout(form)

        self.type_combo = QComboBox(self)
        for label, value in (
            ("Website", SourceType.WEBSITE),
            ("Book", SourceType.BOOK),
            ("Journal Article", SourceType.JOURNAL),
        ):
            self.type_combo.addItem(label, value)
        form.addRow("Source Type", self.type_combo)

        self.style_combo = QComboBox(self)
        for label, value in (
            ("APA 7th Edition", CitationStyle.APA),
            ("MLA 9th Edition", CitationStyle.MLA),
            ("Chicago", CitationStyle.CHICAGO),
        ):
            self.style_combo.addItem(label, value)
        form.addRow("Citation Style", self.style_combo)

        self.author_edit = QLineEdit(self)
        self.author_edit.setPlaceholderText("Smith, J.")
        form.addRow("Author", self.author_edit)
        self.title_edit = QLineEdit(self)
        form.addRow("Title", self.title_edit)
        self.year_edit = QLineEdit(self)
        self.year_edit.setPlaceholderText("2024")
        form.addRow("Year", self.year_edit)
        self.url_edit = QLineEdit(self)
        self.url_edit.setPlaceholderText("https://...")
        form.addRow("URL", self.url_edit)

        self.output = QLineEdit(self)
        self.output.setReadOnly(True)
        row = QHBoxLayout()
        row.addWidget(self.output, 1)
        self.copy_button = QPushButton("Copy", self)
        self.copy_button.setEnabled(False)
        self.copy_button.clicked.connect(self._copy)
        row.addWidget(self.copy_button)

        self.generate_button = QPushButton("Generate Citation", self)
        self.generate_button.clicked.connect(self.generate)
        layout.addWidget(self.generate_button)
        layout.addLayout(row)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close, self)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def source(self) -> CitationSource:
        return CitationSource(
            type=self.type_combo.currentData(),
            author=self.author_edit.text(),
            title=self.title_edit.text(),
            year=self.year_edit.text(),
            url=self.url_edit.text(),
        )

    def generate(self) -> str:
        citation = format_citation(self.source(), self.style_combo.currentData())
        self.output.setText(citation)
        self.copy_button.setEnabled(True)
        return citation

    def _copy(self) -> None:
        clipboard = QApplication.clipboard()
        if clipboard is not None:
            clipboard.setText(self.output.text())


__all__ = ["CitationDialog"]
