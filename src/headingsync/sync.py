"""
Heading link synchronization engine.

`HeadingLinkSync` ties the pieces together behind four entry points that a host
(an editor plugin, a file watcher, the CLI) calls on events:

- `on_document_opened`: report broken heading links.
- `on_document_modified`: detect heading renames since the last snapshot,
  rewrite links in the document itself and in every other document, then
  re-validate.
- `collect_repair_candidates`: broken links with ranked replacement headings.
- `apply_repair`: retarget one link to a chosen heading.

The engine never writes files. Updated content is returned and persisting it
is the caller's job. All work is synchronous; cross-file propagation reads
candidate documents one at a time.

Two modification events for the same document processed concurrently can both
see the same stale snapshot. Hosts that dispatch events concurrently must
serialize them per document.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Protocol

from headingsync.broken_links import BrokenLink, BrokenReason, HeadingLookup, find_broken_links
from headingsync.headings import HeadingChange, diff_headings, extract_headings
from headingsync.links import LinkOccurrence, NoteResolver
from headingsync.rewriting import replace_link, rewrite_cross_file_links, rewrite_links
from headingsync.snapshots import HeadingSnapshotStore
from headingsync.suggestions import Suggestion, rank_suggestions


class DocumentStore(Protocol):
    """Read access to the documents of a vault, addressed by path."""

    def list_documents(self) -> Iterable[str]: ...

    def read(self, path: str) -> str:
        """Document text. Raises `OSError` or `UnicodeDecodeError` when unreadable."""
        ...


BacklinkIndex = Callable[[str], Iterable[str]]
"""Returns the documents that may link to the given path."""


@dataclass
class SyncSettings:
    """Runtime settings for the sync engine."""

    enabled: bool = True
    cross_file: bool = True
    """Propagate renames to links in other documents."""

    check_on_open: bool = True
    use_backlinks: bool = False
    """Only scan documents reported by the backlink index, instead of all."""

    max_suggestions: int = 5
    """Suggestions per repair candidate (0 = all)."""


@dataclass
class SyncResult:
    """
    Outcome of processing one document modification.

    Collects all results and warnings; reporting them is up to the caller.
    """

    content: str
    """The document content, with links updated if any heading was renamed."""

    content_changed: bool = False
    updated_documents: dict[str, str] = field(default_factory=dict)
    """Other documents whose links were rewritten: path -> new content."""

    changes: list[HeadingChange] = field(default_factory=list)
    broken_links: list[BrokenLink] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)
    seeded: bool = False
    """True if there was no prior snapshot and the call only recorded one."""


@dataclass(frozen=True)
class RepairCandidate:
    """A broken link together with ranked replacement headings."""

    broken: BrokenLink
    suggestions: list[Suggestion]

    @property
    def occurrence(self) -> LinkOccurrence:
        return self.broken.occurrence

    @property
    def raw(self) -> str:
        return self.broken.occurrence.raw

    @property
    def target_path(self) -> str | None:
        return self.broken.occurrence.target_path


class HeadingLinkSync:
    """
    Keeps heading links consistent as headings are renamed.

    The snapshot store is injected so its lifetime is owned by the caller;
    one store should be shared across all events for the same vault.
    """

    def __init__(
        self,
        store: DocumentStore,
        resolver: NoteResolver,
        snapshots: HeadingSnapshotStore | None = None,
        settings: SyncSettings | None = None,
        backlinks: BacklinkIndex | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.snapshots = snapshots if snapshots is not None else HeadingSnapshotStore()
        self.settings = settings if settings is not None else SyncSettings()
        self.backlinks = backlinks

    def on_document_opened(self, path: str, content: str) -> list[str]:
        """Describe the broken heading links in a freshly opened document."""
        if not self.settings.enabled or not self.settings.check_on_open:
            return []
        return [broken.describe() for broken in self.find_broken(path, content)]

    def on_document_modified(self, path: str, new_content: str) -> SyncResult:
        """
        Process an edit of the document at `path`.

        Compares the document's headings with its snapshot. Renamed headings
        have their links rewritten in this document and (unless disabled) in
        every other document. The snapshot is then replaced with the new
        headings. The first modification seen for a document only records
        the snapshot.
        """
        new_headings = extract_headings(new_content)
        old_headings = self.snapshots.get(path)
        self.snapshots.put(path, new_headings)

        result = SyncResult(content=new_content)
        if not self.settings.enabled:
            return result
        if old_headings is None:
            result.seeded = True
            return result

        result.changes = diff_headings(old_headings, new_headings)
        if result.changes:
            result.content = rewrite_links(new_content, result.changes)
            result.content_changed = result.content != new_content
            if result.content_changed:
                for change in result.changes:
                    result.messages.append(
                        f"Updated links in {path}: [[#{change.old_heading}]] -> "
                        f"[[#{change.new_heading}]]"
                    )
            if self.settings.cross_file:
                self._propagate(path, result)

        result.broken_links = self.find_broken(path, result.content, result.updated_documents)
        return result

    def collect_repair_candidates(self, path: str, content: str) -> list[RepairCandidate]:
        """Missing-heading links in a document, each with ranked suggestions."""
        candidates: list[RepairCandidate] = []
        for broken in self.find_broken(path, content):
            if broken.reason is not BrokenReason.missing_heading:
                continue
            suggestions = rank_suggestions(
                broken.occurrence.heading,
                broken.target_headings,
                limit=self.settings.max_suggestions,
            )
            candidates.append(RepairCandidate(broken, suggestions))
        return candidates

    def apply_repair(
        self, path: str, content: str, occurrence: LinkOccurrence, chosen_heading: str
    ) -> str:
        """Retarget a single link occurrence in `content` to `chosen_heading`."""
        return replace_link(content, occurrence, chosen_heading)

    def auto_repair(
        self, path: str, content: str, min_score: float
    ) -> tuple[str, list[tuple[BrokenLink, Suggestion]]]:
        """
        Retarget every missing-heading link whose best suggestion scores at
        least `min_score`.

        Returns:
            The repaired content and the (broken link, applied suggestion) pairs.
        """
        applied: list[tuple[BrokenLink, Suggestion]] = []
        # Work from the end of the document so earlier spans stay valid.
        candidates = self.collect_repair_candidates(path, content)
        for candidate in sorted(candidates, key=lambda c: c.occurrence.start, reverse=True):
            if not candidate.suggestions:
                continue
            best = candidate.suggestions[0]
            if best.score < min_score:
                continue
            content = replace_link(content, candidate.occurrence, best.heading)
            applied.append((candidate.broken, best))
        applied.reverse()
        return content, applied

    def find_broken(
        self, path: str, content: str, overrides: dict[str, str] | None = None
    ) -> list[BrokenLink]:
        """Broken heading links in `content`, checked against current documents."""
        return find_broken_links(
            content, path, self.resolver, self._heading_lookup(path, content, overrides)
        )

    def _heading_lookup(
        self, path: str, content: str, overrides: dict[str, str] | None
    ) -> HeadingLookup:
        """
        Heading lookup for one detection pass. `path` maps to the in-memory
        `content`; other documents are read through the store (or taken from
        `overrides`) at most once per pass.
        """
        memo: dict[str, list[str]] = {path: extract_headings(content)}

        def headings_of(target: str) -> list[str]:
            if target not in memo:
                if overrides and target in overrides:
                    memo[target] = extract_headings(overrides[target])
                else:
                    try:
                        memo[target] = extract_headings(self.store.read(target))
                    except (OSError, UnicodeDecodeError):
                        memo[target] = []
            return memo[target]

        return headings_of

    def _candidate_documents(self, path: str) -> Iterable[str]:
        if self.settings.use_backlinks and self.backlinks is not None:
            return self.backlinks(path)
        return self.store.list_documents()

    def _propagate(self, path: str, result: SyncResult) -> None:
        """Rewrite links to `path` in every other candidate document."""
        base_name = PurePosixPath(path).stem
        for other in self._candidate_documents(path):
            if other == path:
                continue
            try:
                content = self.store.read(other)
            except (OSError, UnicodeDecodeError) as e:
                result.warnings.append(f"Skipped {other}: {e}")
                continue
            updated, changed = rewrite_cross_file_links(content, base_name, result.changes)
            if changed:
                result.updated_documents[other] = updated
                result.messages.append(f"Updated links to {base_name} in {other}")
