from headingsync.broken_links import BrokenLink, BrokenReason, find_broken_links
from headingsync.headings import HeadingChange, diff_headings, extract_headings, rename_heading
from headingsync.links import LinkKind, LinkOccurrence, NoteResolver, scan_links
from headingsync.rewriting import replace_link, rewrite_cross_file_links, rewrite_links
from headingsync.snapshots import HeadingSnapshotStore
from headingsync.suggestions import Suggestion, rank_suggestions, similarity
from headingsync.sync import (
    DocumentStore,
    HeadingLinkSync,
    RepairCandidate,
    SyncResult,
    SyncSettings,
)
from headingsync.vault import Vault, VaultConfig

__all__ = [
    "BrokenLink",
    "BrokenReason",
    "DocumentStore",
    "HeadingChange",
    "HeadingLinkSync",
    "HeadingSnapshotStore",
    "LinkKind",
    "LinkOccurrence",
    "NoteResolver",
    "RepairCandidate",
    "Suggestion",
    "SyncResult",
    "SyncSettings",
    "Vault",
    "VaultConfig",
    "diff_headings",
    "extract_headings",
    "find_broken_links",
    "rank_suggestions",
    "rename_heading",
    "replace_link",
    "rewrite_cross_file_links",
    "rewrite_links",
    "scan_links",
    "similarity",
]
