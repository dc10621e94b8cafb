from __future__ import annotations

from pathlib import Path

import pytest

pytest.importorskip("PyQt6", reason="PyQt6 is required for project services", exc_type=ImportError)

from scholarflow.services.export_service import (
    ExportFormat,
    ExportService,
    document_stats,
    escape_latex,
)
from scholarflow.services.project_service import OutlineItem, Project, ProjectType


@pytest.fixture()
def project() -> Project:
    return Project(
        title="Coral Reefs",
        type=ProjectType.THESIS,
        description="Bleaching & recovery",
        content="First paragraph.\n\nSecond paragraph with 50% more.",
        outline=[OutlineItem("Introduction", 1), OutlineItem("Background", 2)],
    )


def test_document_stats_rounds_reading_time_up() -> None:
    assert document_stats("").words == 0
    assert document_stats("").reading_minutes == 0
    stats = document_stats("word " * 201)
    assert stats.words == 201
    assert stats.reading_minutes == 2


def test_markdown_export(project: Project) -> None:
    text = ExportService().project_to_markdown(project)

    assert text.startswith("# Coral Reefs\n")
    assert "_Bleaching & recovery_" in text
    assert "- Introduction\n  - Background" in text
    assert text.rstrip().endswith("Second paragraph with 50% more.")


def test_latex_export_escapes_specials(project: Project) -> None:
    text = ExportService().project_to_latex(project)

    assert text.startswith(r"\documentclass{report}")
    assert r"\begin{abstract}" in text
    assert r"Bleaching \& recovery" in text
    assert r"\section{Introduction}" in text
    assert r"\subsection{Background}" in text
    assert r"50\% more." in text
    assert text.rstrip().endswith(r"\end{document}")
    assert escape_latex("a_b{c}") == r"a\_b\{c\}"


def test_export_to_directory_names_file_after_title(project: Project, tmp_path: Path) -> None:
    path = ExportService().export_project(project, tmp_path, ExportFormat.MARKDOWN)

    assert path == tmp_path / "Coral_Reefs.md"
    assert path.read_text(encoding="utf-8").startswith("# Coral Reefs")


def test_export_accepts_format_names(project: Project, tmp_path: Path) -> None:
    path = ExportService().export_project(project, tmp_path / "out" / "paper.tex", "latex")

    assert path.exists()
    assert r"\maketitle" in path.read_text(encoding="utf-8")


def test_docx_export(project: Project, tmp_path: Path) -> None:
    docx = pytest.importorskip("docx")

    path = ExportService().export_project(project, tmp_path / "thesis.docx", ExportFormat.DOCX)

    document = docx.Document(str(path))
    texts = [paragraph.text for paragraph in document.paragraphs]
    assert "Coral Reefs" in texts
    assert "Second paragraph with 50% more." in texts


def test_pdf_export(project: Project, tmp_path: Path) -> None:
    fitz = pytest.importorskip("fitz")

    path = ExportService().export_project(project, tmp_path / "thesis.pdf", ExportFormat.PDF)

    with fitz.open(str(path)) as document:
        text = "".join(page.get_text() for page in document)
    assert "Coral Reefs" in text
    assert "First paragraph." in text
