"""
Citation formatting (APA, MLA, Chicago, BibTeX) for repository documents.
"""
import enum
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from thesis_repository.core.config import settings
from thesis_repository.core.exceptions import ValidationError


class CitationStyle(str, enum.Enum):
    APA = "apa"
    MLA = "mla"
    CHICAGO = "chicago"
    BIBTEX = "bibtex"


@dataclass(frozen=True)
class CitationSource:
    title: str
    authors: Sequence[str]
    year: Optional[int]
    program: Optional[str] = None
    adviser_name: Optional[str] = None
    published_at: Optional[datetime] = None
    university: Optional[str] = None

    @classmethod
    def from_document(cls, doc, university: Optional[str] = None) -> "CitationSource":
        return cls(
            title=doc.title,
            authors=list(doc.authors or []),
            year=doc.year,
            program=doc.program,
            adviser_name=doc.adviser_name,
            published_at=doc.published_at,
            university=university,
        )

    @property
    def publication_year(self):
        if self.published_at is not None:
            return self.published_at.year
        return self.year or "n.d."

    @property
    def school(self) -> str:
        return self.university or settings.DEFAULT_UNIVERSITY


MASTERS_WORDS = {"master", "masters", "ms", "ma", "msc", "mba", "mphil"}
DOCTORAL_WORDS = {"phd", "doctoral", "doctorate", "dphil", "edd"}


def degree_type(program: Optional[str]) -> str:
    words = set(re.findall(r"[a-z]+", (program or "").lower().replace("'", "")))
    if words & MASTERS_WORDS:
        return "Master's thesis"
    if words & DOCTORAL_WORDS:
        return "Doctoral dissertation"
    return "Bachelor's thesis"


def format_name(name: str) -> str:
    return " ".join(part[:1].upper() + part[1:].lower() for part in name.split())


def clean_authors(authors: Sequence[str]) -> List[str]:
    names = [format_name(a) for a in authors if a and a.strip()]
    return names or ["Unknown Author"]


def last_first(name: str) -> str:
    """'John Ronald Doe' -> 'Doe, John Ronald'"""
    parts = name.split()
    if len(parts) < 2:
        return name
    return f"{parts[-1]}, {' '.join(parts[:-1])}"


def last_initials(name: str) -> str:
    """'John Ronald Doe' -> 'Doe, J. R.'"""
    parts = name.split()
    if len(parts) < 2:
        return name
    initials = " ".join(f"{p[0].upper()}." for p in parts[:-1])
    return f"{parts[-1]}, {initials}"


def sentence_case(title: str) -> str:
    """First word capitalised, acronyms kept, everything else lower case"""
    words = title.split()
    out = []
    for i, word in enumerate(words):
        if i == 0:
            out.append(word[:1].upper() + word[1:].lower())
        elif len(word) > 1 and word.isupper():
            out.append(word)
        else:
            out.append(word.lower())
    return " ".join(out)


def _join_apa(authors: List[str]) -> str:
    formatted = [last_initials(a) for a in authors]
    if len(formatted) == 1:
        return formatted[0]
    return f"{', '.join(formatted[:-1])}, & {formatted[-1]}"


def _join_humanities(authors: List[str]) -> str:
    """MLA/Chicago: first author inverted, the rest as written"""
    if len(authors) == 1:
        return last_first(authors[0])
    head = [last_first(authors[0])] + authors[1:-1]
    return f"{', '.join(head)}, and {authors[-1]}"


def _strip_period(text: str) -> str:
    return text[:-1] if text.endswith(".") else text


def apa(source: CitationSource) -> str:
    authors = clean_authors(source.authors)
    return f"{_join_apa(authors)} ({source.publication_year}). {source.title}. {source.school}."


def mla(source: CitationSource) -> str:
    authors = clean_authors(source.authors)
    adviser = f", supervised by {source.adviser_name}" if source.adviser_name else ""
    return (
        f'{_strip_period(_join_humanities(authors))}. "{sentence_case(source.title)}." '
        f"{source.publication_year}. {source.school}, {degree_type(source.program)}{adviser}."
    )


def chicago(source: CitationSource) -> str:
    authors = clean_authors(source.authors)
    adviser = f" Supervised by {source.adviser_name}." if source.adviser_name else ""
    return (
        f'{_strip_period(_join_humanities(authors))}. "{sentence_case(source.title)}." '
        f"{degree_type(source.program)}, {source.school}, {source.publication_year}.{adviser}"
    )


def cite_key(first_author: str, year) -> str:
    last = first_author.split(",")[0] if "," in first_author else (first_author.split() or ["unknown"])[-1]
    return f"{re.sub(r'[^a-z]', '', last.lower()) or 'unknown'}{year}"


def bibtex(source: CitationSource) -> str:
    authors = clean_authors(source.authors)
    degree = degree_type(source.program)
    if degree.startswith("Master"):
        entry_type = "mastersthesis"
    elif degree.startswith("Doctoral"):
        entry_type = "phdthesis"
    else:
        entry_type = "thesis"

    fields = [
        ("title", re.sub(r"[{}]", "", source.title)),
        ("author", " and ".join(authors)),
        ("year", str(source.publication_year)),
        ("school", source.school),
        ("type", degree),
    ]
    if source.adviser_name:
        fields.append(("note", f"Supervised by {source.adviser_name}"))

    body = ",\n".join(f"  {name} = {{{value}}}" for name, value in fields)
    return f"@{entry_type}{{{cite_key(authors[0], source.publication_year)},\n{body}\n}}"


_FORMATTERS = {
    CitationStyle.APA: apa,
    CitationStyle.MLA: mla,
    CitationStyle.CHICAGO: chicago,
    CitationStyle.BIBTEX: bibtex,
}


def generate_citation(source: CitationSource, style: str = "apa") -> str:
    try:
        citation_style = CitationStyle(style.lower())
    except ValueError:
        raise ValidationError(
            f"Unknown citation style '{style}'. Use one of: {', '.join(s.value for s in CitationStyle)}",
            field="style",
        )
    return _FORMATTERS[citation_style](source)
