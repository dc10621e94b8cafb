from __future__ import annotations

import datetime as dt

from scholarflow.services import CitationSource, CitationStyle, SourceType, format_citation


ACCESSED = dt.date(2024, 3, 5)


def test_apa_website() -> None:
    source = CitationSource(
        type=SourceType.WEBSITE,
        author="Smith, J.",
        title="Reef Health",
        year="2021",
        url="https://example.org/reefs",
    )

    assert format_citation(source, CitationStyle.APA, accessed=ACCESSED) == (
        "Smith, J. (2021). Reef Health. Retrieved March 5, 2024, from https://example.org/reefs"
    )


def test_apa_book_placeholders() -> None:
    source = CitationSource(type=SourceType.BOOK, author="Doe, A.", title="Oceans")

    assert format_citation(source, CitationStyle.APA) == "Doe, A. (Year). Oceans. Publisher."


def test_apa_website_without_year_uses_nd() -> None:
    source = CitationSource(title="Untitled page", url="https://example.org")

    citation = format_citation(source, CitationStyle.APA, accessed=ACCESSED)

    assert citation.startswith("Author, A. A. (n.d.). Untitled page.")


def test_mla_website_and_book() -> None:
    website = CitationSource(author="Smith, John", title="Reef Health", year="2021", url="u")
    book = CitationSource(type=SourceType.BOOK, author="Smith, John", title="Oceans", year="1999")

    assert format_citation(website, CitationStyle.MLA, accessed=ACCESSED) == (
        'Smith, John. "Reef Health." Website Name, 2021, u. Accessed March 5, 2024.'
    )
    assert format_citation(book, CitationStyle.MLA) == "Smith, John. Oceans. Publisher, 1999."


def test_chicago_journal() -> None:
    source = CitationSource(type=SourceType.JOURNAL, author="Lee, K.", title="Tides", year="2010")

    assert format_citation(source, CitationStyle.CHICAGO) == 'Lee, K. "Tides." Journal Name (2010).'
