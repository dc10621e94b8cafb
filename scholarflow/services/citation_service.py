"""Reference formatting in APA, MLA and Chicago styles."""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from enum import Enum


class SourceType(Enum):
    WEBSITE = "website"
    BOOK = "book"
    JOURNAL = "journal"


class CitationStyle(Enum):
    APA = "apa"
    MLA = "mla"
    CHICAGO = "chicago"


@dataclass(frozen=True)
class CitationSource:
    """Fields entered by the user; any of them may be blank."""

    type: SourceType = SourceType.WEBSITE
    author: str = ""
    title: str = ""
    year: str = ""
    url: str = ""


def _or(value: str, fallback: str) -> str:
    cleaned = value.strip()
    return cleaned or fallback


def format_citation(
    source: CitationSource,
    style: CitationStyle,
    *,
    accessed: _dt.date | None = None,
) -> str:
    """Render ``source`` in ``style``, filling blanks with style placeholders."""

    date = (accessed or _dt.date.today()).strftime("%B %d, %Y").replace(" 0", " ")
    is_website = source.type is SourceType.WEBSITE

    if style is CitationStyle.APA:
        author = _or(source.author, "Author, A. A.")
        title = _or(source.title, "Title of work")
        if is_website:
            return (
                f"{author} ({_or(source.year, 'n.d.')}). {title}. "
                f"Retrieved {date}, from {_or(source.url, 'URL')}"
            )
        return f"{author} ({_or(source.year, 'Year')}). {title}. Publisher."

    if style is CitationStyle.MLA:
        author = _or(source.author, "Author, Last Name")
        title = _or(source.title, "Title of Work")
        if is_website:
            return (
                f'{author}. "{title}." Website Name, {_or(source.year, "Date")}, '
                f"{_or(source.url, 'URL')}. Accessed {date}."
            )
        return f"{author}. {title}. Publisher, {_or(source.year, 'Year')}."

    author = _or(source.author, "Last Name, First Name")
    title = _or(source.title, "Title of Work")
    if is_website:
        return (
            f'{author}. "{title}." Website Name. Last modified {_or(source.year, "n.d.")}. '
            f"Accessed {date}. {_or(source.url, 'URL')}."
        )
    if source.type is SourceType.JOURNAL:
        return f'{author}. "{title}." Journal Name ({_or(source.year, "Year")}).'
    return f"{author}. {title}. Place of Publication: Publisher, {_or(source.year, 'Year')}."


__all__ = ["CitationSource", "CitationStyle", "SourceType", "format_citation"]
