"""In-memory heading snapshots, used to detect renames between edits."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class HeadingSnapshotStore:
    """
    Most recently observed headings of each document, keyed by path.

    The store is owned by the caller and passed to the sync engine. It is not
    persisted: after a restart the first edit of each document only seeds its
    snapshot, so a rename made in that edit goes undetected.
    """

    _snapshots: dict[str, list[str]] = field(default_factory=dict)

    def get(self, path: str) -> list[str] | None:
        """Return a copy of the stored headings, or `None` if never observed."""
        headings = self._snapshots.get(path)
        return list(headings) if headings is not None else None

    def put(self, path: str, headings: list[str]) -> None:
        self._snapshots[path] = list(headings)

    def forget(self, path: str) -> None:
        self._snapshots.pop(path, None)

    def clear(self) -> None:
        self._snapshots.clear()

    def __contains__(self, path: object) -> bool:
        return path in self._snapshots

    def __len__(self) -> int:
        return len(self._snapshots)
