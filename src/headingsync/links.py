"""
Heading link scanning.

Four link syntaxes reference headings:

- internal wiki: `[[#Heading]]` or `[[#Heading|Alias]]`
- internal Markdown: `[label](#Heading)`
- cross-file wiki: `[[Note#Heading]]` or `[[Note#Heading|Alias]]`
- cross-file Markdown: `[label](Note.md#Heading)`

Each syntax is matched by its own pass over the text. Heading text ends at the
first `]`, `)` or `|` (whichever applies to the syntax), so headings containing
those characters cannot be linked.

Markdown link destinations may be percent-encoded (`My%20Note.md#Getting%20Started`).
Their note names and headings are decoded before resolution and comparison, so
they compare equal to the headings a document actually has.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol
from urllib.parse import unquote


class LinkKind(str, Enum):
    """The closed set of heading link syntaxes."""

    internal_wiki = "internal-wiki"
    internal_markdown = "internal-markdown"
    cross_wiki = "cross-wiki"
    cross_markdown = "cross-markdown"

    @property
    def is_internal(self) -> bool:
        return self in (LinkKind.internal_wiki, LinkKind.internal_markdown)

    @property
    def is_wiki(self) -> bool:
        return self in (LinkKind.internal_wiki, LinkKind.cross_wiki)


class NoteResolver(Protocol):
    """Resolves a note reference, as written in a link, to a document path."""

    def __call__(self, note_name: str, source_path: str) -> str | None: ...


@dataclass(frozen=True)
class LinkOccurrence:
    """A heading link found in a document."""

    kind: LinkKind
    heading: str
    """The referenced heading text, percent-decoded for Markdown links."""

    raw: str
    """The full matched link text."""

    start: int
    end: int
    """Span of `raw` within the scanned content."""

    target_path: str | None
    """The linked document. For internal kinds, the scanned document itself.
    `None` when a cross-file note name could not be resolved."""

    alias: str | None = None
    """Display text after `|` (wiki links only)."""

    note_name: str | None = None
    """The note reference, percent-decoded and without `.md` (cross-file kinds only)."""

    written_heading: str = ""
    """The heading exactly as it appears in the link. Markdown links may
    percent-encode it, e.g. `Getting%20Started`."""

    written_note: str | None = None
    """The note reference exactly as it appears in the link (cross-file kinds only)."""

    @property
    def resolved(self) -> bool:
        return self.target_path is not None


INTERNAL_WIKI_PATTERN = re.compile(r"\[\[#([^\]|]+)(?:\|([^\]]+))?\]\]")
INTERNAL_MARKDOWN_PATTERN = re.compile(r"\[([^\]]*)\]\(#([^)]+)\)")
CROSS_WIKI_PATTERN = re.compile(r"\[\[([^\[\]|#]+)#([^\]|]+)(?:\|([^\]]+))?\]\]")
CROSS_MARKDOWN_PATTERN = re.compile(r"\[([^\]]*)\]\(([^()#\s]+?)\.md#([^)]+)\)")

_URL_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


def decode_heading(kind: LinkKind, written: str) -> str:
    """Heading text of a link fragment. Markdown fragments are percent-decoded."""
    return written if kind.is_wiki else unquote(written)


def decode_note_name(kind: LinkKind, written: str) -> str:
    """
    Note name of a cross-file link target, as the resolver expects it:
    wiki targets are trimmed and lose a trailing `.md`, Markdown targets
    (already without `.md`) are percent-decoded.
    """
    if kind is LinkKind.cross_markdown:
        return unquote(written)
    name = written.strip()
    if name.endswith(".md"):
        name = name[:-3]
    return name


def scan_links(content: str, source_path: str, resolver: NoteResolver) -> list[LinkOccurrence]:
    """
    Find every heading link in `content`.

    Cross-file note names are resolved with `resolver`; unresolved links are
    still reported, with `target_path=None`.

    Args:
        content: The document text.
        source_path: Path of the document being scanned.
        resolver: Note name resolver.

    Returns:
        Link occurrences ordered by position in the document.
    """
    found: list[LinkOccurrence] = []

    for m in INTERNAL_WIKI_PATTERN.finditer(content):
        found.append(
            LinkOccurrence(
                kind=LinkKind.internal_wiki,
                heading=m.group(1),
                raw=m.group(0),
                start=m.start(),
                end=m.end(),
                target_path=source_path,
                alias=m.group(2),
                written_heading=m.group(1),
            )
        )

    for m in INTERNAL_MARKDOWN_PATTERN.finditer(content):
        found.append(
            LinkOccurrence(
                kind=LinkKind.internal_markdown,
                heading=decode_heading(LinkKind.internal_markdown, m.group(2)),
                raw=m.group(0),
                start=m.start(),
                end=m.end(),
                target_path=source_path,
                written_heading=m.group(2),
            )
        )

    for m in CROSS_WIKI_PATTERN.finditer(content):
        note_name = decode_note_name(LinkKind.cross_wiki, m.group(1))
        found.append(
            LinkOccurrence(
                kind=LinkKind.cross_wiki,
                heading=m.group(2),
                raw=m.group(0),
                start=m.start(),
                end=m.end(),
                target_path=resolver(note_name, source_path),
                alias=m.group(3),
                note_name=note_name,
                written_heading=m.group(2),
                written_note=m.group(1),
            )
        )

    for m in CROSS_MARKDOWN_PATTERN.finditer(content):
        if _URL_SCHEME.match(m.group(2)):
            continue
        note_name = decode_note_name(LinkKind.cross_markdown, m.group(2))
        found.append(
            LinkOccurrence(
                kind=LinkKind.cross_markdown,
                heading=decode_heading(LinkKind.cross_markdown, m.group(3)),
                raw=m.group(0),
                start=m.start(),
                end=m.end(),
                target_path=resolver(note_name, source_path),
                note_name=note_name,
                written_heading=m.group(3),
                written_note=m.group(2),
            )
        )

    found.sort(key=lambda occ: occ.start)
    return found
