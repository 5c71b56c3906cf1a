"""
Heading link rewriting.

All rewrites are built from one table of link syntaxes: each `LinkKind` maps to
the regex text that precedes and follows the heading. Old heading text is always
escaped, so headings like `a.b` or `Setup (old)` match literally.

A batch of renames is compiled into a single pattern (longest old heading
first) and applied in one left-to-right pass. Each link is rewritten at most
once, which makes swaps (`A -> B` together with `B -> A`) safe, and makes the
result independent of the order the renames were supplied in.

Markdown links are matched in their percent-encoded forms too. A new heading
is written the way the old one was: a fragment without spaces gets an encoded
heading (`#Getting%20Started`), one with literal spaces keeps them.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from urllib.parse import quote

from headingsync.headings import HeadingChange
from headingsync.links import LinkKind, LinkOccurrence, decode_heading, decode_note_name

# Regex text before and after the heading, per syntax. `{note}` marks where
# the note reference of cross-file kinds is captured.
_SYNTAX: dict[LinkKind, tuple[str, str]] = {
    LinkKind.internal_wiki: (r"\[\[#", r"(?:\|[^\]]+)?\]\]"),
    LinkKind.internal_markdown: (r"\[[^\]]*\]\(#", r"\)"),
    LinkKind.cross_wiki: (r"\[\[{note}#", r"(?:\|[^\]]+)?\]\]"),
    LinkKind.cross_markdown: (r"\[[^\]]*\]\({note}\.md#", r"\)"),
}

# Any note reference, as written. Compared after decoding.
_NOTE_TEXT: dict[LinkKind, str] = {
    LinkKind.cross_wiki: r"[^\[\]|#]+",
    LinkKind.cross_markdown: r"[^()#\s]+?",
}

# Characters that cannot appear unencoded in a Markdown link destination.
_FRAGMENT_UNSAFE = re.compile(r"[%\s()<>]")


def encode_fragment(heading: str) -> str:
    """Percent-encode the characters of `heading` that would break a Markdown link."""
    return _FRAGMENT_UNSAFE.sub(lambda m: quote(m.group(0), safe=""), heading)


def _write_heading(kind: LinkKind, written: str, heading: str) -> str:
    if kind.is_wiki or any(c.isspace() for c in written):
        return heading
    return encode_fragment(heading)


def _heading_forms(kind: LinkKind, heading: str) -> set[str]:
    if kind.is_wiki:
        return {heading}
    return {heading, encode_fragment(heading), quote(heading, safe="")}


def _alternation(texts: Iterable[str]) -> str:
    """Escaped alternation of `texts`, longest first."""
    unique = sorted(set(texts), key=len, reverse=True)
    return "|".join(re.escape(text) for text in unique)


def _compile(branches: Sequence[tuple[LinkKind, str]]) -> re.Pattern[str]:
    """
    Compile one pattern covering several link syntaxes, given as
    (kind, heading regex) pairs. Branch `i` exposes groups `p{i}` (text
    before the heading), `n{i}` (note reference, cross-file kinds only),
    `h{i}` (heading) and `s{i}` (text after it).
    """
    parts: list[str] = []
    for i, (kind, heading_re) in enumerate(branches):
        prefix, suffix = _SYNTAX[kind]
        if kind in _NOTE_TEXT:
            prefix = prefix.replace("{note}", f"(?P<n{i}>{_NOTE_TEXT[kind]})")
        parts.append(f"(?P<p{i}>{prefix})(?P<h{i}>{heading_re})(?P<s{i}>{suffix})")
    return re.compile("|".join(parts))


def _branch(m: re.Match[str], kinds: Sequence[LinkKind]) -> int:
    return next(i for i in range(len(kinds)) if m.group(f"h{i}") is not None)


def _rename_map(changes: Iterable[HeadingChange]) -> dict[str, str]:
    """Map old heading to new heading. The first rename of a heading wins."""
    mapping: dict[str, str] = {}
    for change in changes:
        if not change.old_heading or change.old_heading == change.new_heading:
            continue
        mapping.setdefault(change.old_heading, change.new_heading)
    return mapping


def _rewrite(
    content: str,
    kinds: Sequence[LinkKind],
    mapping: dict[str, str],
    note_name: str | None = None,
) -> tuple[str, int]:
    """
    Apply `mapping` to links of the given kinds in one pass. With `note_name`,
    only links whose decoded note reference equals it are touched.
    """
    branches = [
        (kind, _alternation(form for old in mapping for form in _heading_forms(kind, old)))
        for kind in kinds
    ]
    pattern = _compile(branches)
    count = 0

    def replace(m: re.Match[str]) -> str:
        nonlocal count
        i = _branch(m, kinds)
        kind, written = kinds[i], m.group(f"h{i}")
        if note_name is not None and decode_note_name(kind, m.group(f"n{i}")) != note_name:
            return m.group(0)
        new_heading = mapping.get(decode_heading(kind, written))
        if new_heading is None:
            return m.group(0)
        count += 1
        return m.group(f"p{i}") + _write_heading(kind, written, new_heading) + m.group(f"s{i}")

    return pattern.sub(replace, content), count


def rewrite_links(content: str, changes: Sequence[HeadingChange]) -> str:
    """
    Rewrite same-document heading links (`[[#Old]]`, `[[#Old|Alias]]` and
    `[label](#Old)`) according to `changes`. Aliases and labels are kept as is.
    """
    mapping = _rename_map(changes)
    if not mapping:
        return content
    updated, _count = _rewrite(
        content, (LinkKind.internal_wiki, LinkKind.internal_markdown), mapping
    )
    return updated


def rewrite_cross_file_links(
    content: str, target_base_name: str, changes: Sequence[HeadingChange]
) -> tuple[str, bool]:
    """
    Rewrite links from another document into the renamed document, i.e.
    `[[Target#Old]]`, `[[Target#Old|Alias]]` and `[label](Target.md#Old)`.

    Only links whose note name equals `target_base_name` are touched. Note
    references in Markdown links are compared percent-decoded, so
    `[x](Tom's%20Notes.md#Old)` links to `Tom's Notes`.

    Returns:
        The updated content and whether any link was replaced.
    """
    mapping = _rename_map(changes)
    if not mapping or not target_base_name:
        return content, False
    updated, count = _rewrite(
        content, (LinkKind.cross_wiki, LinkKind.cross_markdown), mapping, target_base_name
    )
    return updated, count > 0


def replace_link(content: str, occurrence: LinkOccurrence, new_heading: str) -> str:
    """
    Retarget exactly one link to `new_heading`.

    If the occurrence's recorded span still holds its text, that span is
    rewritten. Otherwise (the content shifted since scanning) the first link
    of the same kind, note and heading is rewritten. Content without such a
    link is returned unchanged.
    """
    kind = occurrence.kind
    written = occurrence.written_heading or occurrence.heading
    pattern = _compile([(kind, re.escape(written))])

    def retarget(m: re.Match[str]) -> str:
        replacement = m.group("p0") + _write_heading(kind, written, new_heading) + m.group("s0")
        return content[: m.start()] + replacement + content[m.end() :]

    start, end = occurrence.start, occurrence.end
    if content[start:end] == occurrence.raw:
        m = pattern.fullmatch(content, start, end)
        if m:
            return retarget(m)

    for m in pattern.finditer(content):
        if kind.is_internal or decode_note_name(kind, m.group("n0")) == occurrence.note_name:
            return retarget(m)
    return content
