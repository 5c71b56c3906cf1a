"""Broken heading link detection."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from headingsync.links import LinkOccurrence, NoteResolver, scan_links

HeadingLookup = Callable[[str], list[str]]
"""Returns the current headings of the document at the given path."""


class BrokenReason(str, Enum):
    missing_file = "missing-file"
    missing_heading = "missing-heading"


@dataclass(frozen=True)
class BrokenLink:
    """A heading link whose target file or heading does not exist."""

    occurrence: LinkOccurrence
    reason: BrokenReason
    target_headings: list[str] = field(default_factory=list)
    """Headings of the resolved target, kept so suggestions need no re-read."""

    def describe(self) -> str:
        """One-line, human-readable description of the problem."""
        occ = self.occurrence
        if self.reason is BrokenReason.missing_file:
            return f"Missing file '{occ.note_name}': {occ.raw}"
        if occ.kind.is_internal:
            return f"Missing heading '{occ.heading}': {occ.raw}"
        return f"Missing heading '{occ.heading}' in {occ.target_path}: {occ.raw}"


def find_broken_links(
    content: str,
    source_path: str,
    resolver: NoteResolver,
    headings_of: HeadingLookup,
) -> list[BrokenLink]:
    """
    Find every heading link in `content` that points nowhere.

    A cross-file link whose note cannot be resolved is `missing_file`. A link
    whose target exists but lacks the heading is `missing_heading`. Internal
    links are checked against `headings_of(source_path)`.

    Args:
        content: The document text.
        source_path: Path of the document being checked.
        resolver: Note name resolver for cross-file links.
        headings_of: Heading lookup for link targets.

    Returns:
        Broken links in document order, or an empty list.
    """
    broken: list[BrokenLink] = []
    for occ in scan_links(content, source_path, resolver):
        if occ.target_path is None:
            broken.append(BrokenLink(occ, BrokenReason.missing_file))
            continue
        headings = headings_of(occ.target_path)
        if occ.heading not in headings:
            broken.append(BrokenLink(occ, BrokenReason.missing_heading, list(headings)))
    return broken
