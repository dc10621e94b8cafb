"""Document statistics and project export to Markdown, LaTeX, DOCX and PDF."""

from __future__ import annotations

import logging
import math
import re
import textwrap
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..logging import log_call
from .project_service import Project


logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200

_PDF_PAGE_WIDTH = 595
_PDF_PAGE_HEIGHT = 842
_PDF_MARGIN = 72

_LATEX_SPECIALS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}
_LATEX_SPECIALS_RE = re.compile("|".join(re.escape(key) for key in _LATEX_SPECIALS))
_LATEX_HEADINGS = {1: "section", 2: "subsection", 3: "subsubsection"}


class ExportError(RuntimeError):
    """Raised when a project cannot be exported."""


class ExportFormat(Enum):
    PDF = "pdf"
    DOCX = "docx"
    LATEX = "latex"
    MARKDOWN = "markdown"

    @property
    def suffix(self) -> str:
        return {
            ExportFormat.PDF: ".pdf",
            ExportFormat.DOCX: ".docx",
            ExportFormat.LATEX: ".tex",
            ExportFormat.MARKDOWN: ".md",
        }[self]


@dataclass(frozen=True)
class DocumentStats:
    words: int
    reading_minutes: int


def document_stats(text: str) -> DocumentStats:
    """Count words and estimate reading time at 200 words per minute."""

    words = len(text.split())
    return DocumentStats(words=words, reading_minutes=math.ceil(words / WORDS_PER_MINUTE))


def _paragraphs(text: str) -> list[str]:
    return [block.strip() for block in re.split(r"\n\s*\n", text) if block.strip()]


def escape_latex(text: str) -> str:
    return _LATEX_SPECIALS_RE.sub(lambda match: _LATEX_SPECIALS[match.group(0)], text)


class ExportService:
    """Render a project for download."""

    def project_to_markdown(self, project: Project) -> str:
        lines: list[str] = [f"# {project.title}", ""]
        if project.description:
            lines.extend([f"_{project.description}_", ""])
        if project.outline:
            lines.extend(["## Outline", ""])
            for item in project.outline:
                indent = "  " * (item.level - 1)
                lines.append(f"{indent}- {item.title}")
            lines.append("")
        if project.content.strip():
            lines.append(project.content.strip())
        return "\n".join(lines).strip() + "\n"

    def project_to_latex(self, project: Project) -> str:
        document_class = "article" if project.type.value == "paper" else "report"
        parts: list[str] = [
            rf"\documentclass{{{document_class}}}",
            r"\usepackage[utf8]{inputenc}",
            rf"\title{{{escape_latex(project.title)}}}",
            r"\begin{document}",
            r"\maketitle",
        ]
        if project.description:
            parts.extend([r"\begin{abstract}", escape_latex(project.description), r"\end{abstract}"])
        for item in project.outline:
            command = _LATEX_HEADINGS.get(item.level, "subsubsection")
            parts.append(rf"\{command}{{{escape_latex(item.title)}}}")
        for paragraph in _paragraphs(project.content):
            parts.extend(["", escape_latex(paragraph)])
        parts.append(r"\end{document}")
        return "\n".join(parts) + "\n"

    @log_call(logger=logger, include_args=False, include_result=True)
    def export_project(
        self,
        project: Project,
        destination: str | Path,
        fmt: ExportFormat | str = ExportFormat.MARKDOWN,
    ) -> Path:
        """Write ``project`` to ``destination`` in ``fmt`` and return the path.

        A directory destination gets a file named after the project title.
        """

        export_format = ExportFormat(fmt)
        path = Path(destination)
        if path.is_dir():
            stem = re.sub(r"[^\w\-]+", "_", project.title).strip("_") or "document"
            path = path / f"{stem}{export_format.suffix}"
        if not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)

        if export_format is ExportFormat.MARKDOWN:
            path.write_text(self.project_to_markdown(project), encoding="utf-8")
        elif export_format is ExportFormat.LATEX:
            path.write_text(self.project_to_latex(project), encoding="utf-8")
        elif export_format is ExportFormat.DOCX:
            self._write_docx(project, path)
        else:
            self._write_pdf(project, path)
        logger.info(
            "Wrote export",
            extra={
                "destination": str(path),
                "format": export_format.value,
                "bytes": path.stat().st_size,
            },
        )
        return path

    # ------------------------------------------------------------------
    @staticmethod
    def _write_docx(project: Project, path: Path) -> None:
        try:
            from docx import Document  # type: ignore[import-untyped]
        except ImportError as exc:  # pragma: no cover - defensive
            raise ExportError("python-docx is required to export DOCX files") from exc

        document = Document()
        document.core_properties.title = project.title
        document.add_heading(project.title, level=0)
        if project.description:
            document.add_paragraph(project.description).runs[0].italic = True
        for item in project.outline:
            document.add_heading(item.title, level=item.level)
        for paragraph in _paragraphs(project.content):
            document.add_paragraph(paragraph)
        document.save(str(path))

    @staticmethod
    def _write_pdf(project: Project, path: Path) -> None:
        try:
            import fitz  # type: ignore[import-untyped]
        except ImportError as exc:  # pragma: no cover - defensive
            raise ExportError("PyMuPDF is required to export PDF files") from exc

        blocks: list[tuple[str, float]] = [(project.title, 20.0)]
        if project.description:
            blocks.append((project.description, 11.0))
        for item in project.outline:
            blocks.append((item.title, 16.0 - 2 * (item.level - 1)))
        for paragraph in _paragraphs(project.content):
            blocks.append((paragraph, 11.0))

        document = fitz.open()
        try:
            page = None
            y = 0.0
            usable_width = _PDF_PAGE_WIDTH - 2 * _PDF_MARGIN
            for text, size in blocks:
                width = max(20, int(usable_width / (size * 0.5)))
                for line in textwrap.wrap(text, width=width) or [""]:
                    if page is None or y + size > _PDF_PAGE_HEIGHT - _PDF_MARGIN:
                        page = document.new_page(width=_PDF_PAGE_WIDTH, height=_PDF_PAGE_HEIGHT)
                        y = _PDF_MARGIN
                    page.insert_text((_PDF_MARGIN, y + size), line, fontsize=size, fontname="helv")
                    y += size * 1.4
                y += size * 0.6
            document.save(str(path))
        finally:
            document.close()


__all__ = [
    "DocumentStats",
    "ExportError",
    "ExportFormat",
    "ExportService",
    "document_stats",
    "escape_latex",
]
