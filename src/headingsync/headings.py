"""
Heading extraction and rename detection for Markdown documents.

Headings are identified purely by their text: the `#` level is discarded, since
links only ever reference the heading text. Rename detection compares two
heading snapshots of the same document and infers which old heading became
which new one.

Rename inference is a heuristic. When the same number of headings disappeared
as appeared, they are paired in document order. Otherwise headings are paired
by position. Swapping the text of two headings is indistinguishable from two
unrelated renames.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

# 1-6 hashes at line start, then at least one whitespace character.
_HEADING_PATTERN = re.compile(r"^#{1,6}[ \t]+(.*)$", re.MULTILINE)


@dataclass(frozen=True)
class HeadingChange:
    """A single inferred heading rename."""

    old_heading: str
    """The heading text before the edit."""

    new_heading: str
    """The heading text after the edit."""

    def __str__(self) -> str:
        return f"{self.old_heading} -> {self.new_heading}"


def extract_headings(content: str) -> list[str]:
    """
    Extract the text of every ATX heading in `content`, in document order.

    Duplicates are kept. Headings inside code fences are not special-cased.

    Args:
        content: Raw Markdown text.

    Returns:
        Heading texts with surrounding whitespace removed.
    """
    headings: list[str] = []
    for match in _HEADING_PATTERN.finditer(content):
        text = match.group(1).strip()
        if text:
            headings.append(text)
    return headings


def diff_headings(old: Sequence[str], new: Sequence[str]) -> list[HeadingChange]:
    """
    Infer heading renames between two snapshots of the same document.

    1. Collect headings removed from `old` and added in `new`, each in
       document order.
    2. If both lists have the same length, pair them by index.
    3. Otherwise fall back to positional pairing: every index where both
       snapshots have a heading and the texts differ is a rename.

    Headings that only moved produce no change. A heading appended at the end
    produces no change either.
    """
    old_set = set(old)
    new_set = set(new)

    removed = [h for h in old if h not in new_set]
    added = [h for h in new if h not in old_set]

    changes: list[HeadingChange] = []
    if len(removed) == len(added):
        for old_heading, new_heading in zip(removed, added):
            changes.append(HeadingChange(old_heading, new_heading))
        return changes

    for i in range(max(len(old), len(new))):
        old_heading = old[i] if i < len(old) else ""
        new_heading = new[i] if i < len(new) else ""
        if old_heading and new_heading and old_heading != new_heading:
            changes.append(HeadingChange(old_heading, new_heading))
    return changes


def rename_heading(content: str, old_heading: str, new_heading: str) -> tuple[str, int]:
    """
    Change the text of every heading line reading exactly `old_heading`.

    Only the heading lines are edited; links are left for the sync engine.

    Returns:
        The updated content and the number of headings renamed.
    """
    pattern = re.compile(
        rf"^(#{{1,6}}[ \t]+){re.escape(old_heading)}([ \t\r]*)$",
        re.MULTILINE,
    )
    return pattern.subn(lambda m: m.group(1) + new_heading + m.group(2), content)
