"""
Filesystem-backed vault: document storage and note name resolution.

Document paths are POSIX-style strings relative to the vault root, e.g.
`notes/Networking.md`. Note names are resolved the way wiki links expect:
by file stem, preferring a note in the linking document's folder.
"""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import pathspec
from strif import atomic_output_file

MARKDOWN_SUFFIX = ".md"

# Directories that never hold vault notes. Gitignore syntax.
DEFAULT_EXCLUDES: list[str] = [
    ".git/",
    ".hg/",
    ".svn/",
    ".obsidian/",
    ".trash/",
    ".venv/",
    "venv/",
    "__pycache__/",
    "node_modules/",
    ".idea/",
    ".vscode/",
]


@dataclass
class VaultConfig:
    """
    Which files belong to the vault.

    `exclude=None` means use `DEFAULT_EXCLUDES`; providing a list replaces them.
    """

    exclude: list[str] | None = None
    extend_exclude: list[str] = field(default_factory=list)
    respect_gitignore: bool = True

    @property
    def effective_exclude(self) -> list[str]:
        base = self.exclude if self.exclude is not None else list(DEFAULT_EXCLUDES)
        return base + self.extend_exclude


def _load_gitignore(directory: Path) -> pathspec.PathSpec | None:
    gitignore = directory / ".gitignore"
    if not gitignore.is_file():
        return None
    lines = [
        line
        for line in gitignore.read_text().splitlines()
        if line.strip() and not line.strip().startswith("#")
    ]
    if not lines:
        return None
    return pathspec.PathSpec.from_lines("gitignore", lines)


class Vault:
    """
    A directory of Markdown notes.

    Implements the document store and note resolver used by the sync engine.
    The document list is cached; call `refresh()` after creating or deleting
    files.
    """

    def __init__(self, root: str | Path, config: VaultConfig | None = None) -> None:
        self.root: Path = Path(root).resolve()
        self.config: VaultConfig = config if config is not None else VaultConfig()
        self._exclude_spec: pathspec.PathSpec = pathspec.PathSpec.from_lines(
            "gitignore", self.config.effective_exclude
        )
        self._documents: list[str] | None = None
        self._by_stem: dict[str, list[str]] = {}

    def refresh(self) -> None:
        self._documents = None
        self._by_stem = {}

    def list_documents(self) -> list[str]:
        """All Markdown documents in the vault, sorted."""
        if self._documents is None:
            self._documents = sorted(self._walk())
            self._by_stem = {}
            for doc in self._documents:
                self._by_stem.setdefault(PurePosixPath(doc).stem, []).append(doc)
        return list(self._documents)

    def read(self, path: str) -> str:
        return self.path_of(path).read_text(encoding="utf-8")

    def write(self, path: str, content: str) -> None:
        """Atomically replace the content of a document."""
        target = self.path_of(path)
        with atomic_output_file(target, make_parents=True) as temp_path:
            Path(temp_path).write_text(content, encoding="utf-8")
        if self._documents is not None and path not in self._documents:
            self.refresh()

    def path_of(self, path: str) -> Path:
        return self.root / PurePosixPath(path)

    def relative(self, path: str | Path) -> str:
        """Vault-relative POSIX path for a filesystem path."""
        return Path(path).resolve().relative_to(self.root).as_posix()

    def resolve(self, note_name: str, source_path: str) -> str | None:
        """
        Resolve a note name, as written in a link, to a document path.

        A name with a folder component is tried relative to the linking
        document, then relative to the vault root. A bare name matches any
        document with that stem, preferring one in the linking document's
        folder, then the shortest path.
        """
        name = note_name.strip()
        if name.endswith(MARKDOWN_SUFFIX):
            name = name[: -len(MARKDOWN_SUFFIX)]
        if not name:
            return None

        documents = self.list_documents()
        source_dir = PurePosixPath(source_path).parent

        if "/" in name:
            known = set(documents)
            for base in (source_dir, PurePosixPath(".")):
                candidate = posixpath.normpath(str(base / f"{name}{MARKDOWN_SUFFIX}"))
                if candidate in known:
                    return candidate
            return None

        matches = self._by_stem.get(name, [])
        if not matches:
            return None
        for match in matches:
            if PurePosixPath(match).parent == source_dir:
                return match
        return min(matches, key=lambda m: (len(PurePosixPath(m).parts), m))

    def __call__(self, note_name: str, source_path: str) -> str | None:
        return self.resolve(note_name, source_path)

    def backlinks(self, path: str) -> list[str]:
        """
        Documents that may link to `path`. A cheap text prefilter: matches any
        wiki link starting with the note's name or Markdown link to its file.
        """
        stem = PurePosixPath(path).stem
        needles = (f"[[{stem}", f"{stem}{MARKDOWN_SUFFIX}#", f"{stem.replace(' ', '%20')}.md#")
        found: list[str] = []
        for doc in self.list_documents():
            if doc == path:
                continue
            try:
                text = self.read(doc)
            except (OSError, UnicodeDecodeError):
                continue
            if any(needle in text for needle in needles):
                found.append(doc)
        return found

    def _walk(self) -> list[str]:
        """Walk the vault with `os.walk()`, pruning excluded directories."""
        found: list[str] = []
        gitignores: dict[Path, pathspec.PathSpec | None] = {}

        for dirpath, dirnames, filenames in os.walk(self.root):
            current = Path(dirpath)
            rel_dir = current.relative_to(self.root)

            specs: list[tuple[Path, pathspec.PathSpec]] = []
            if self.config.respect_gitignore:
                specs = self._gitignore_chain(current, gitignores)

            dirnames[:] = sorted(
                d
                for d in dirnames
                if not self._is_excluded(current / d, rel_dir / d, specs, is_dir=True)
            )
            for filename in filenames:
                if not filename.endswith(MARKDOWN_SUFFIX):
                    continue
                if self._is_excluded(current / filename, rel_dir / filename, specs, is_dir=False):
                    continue
                found.append((rel_dir / filename).as_posix())
        return found

    def _is_excluded(
        self,
        path: Path,
        rel_path: Path,
        specs: list[tuple[Path, pathspec.PathSpec]],
        is_dir: bool,
    ) -> bool:
        suffix = "/" if is_dir else ""
        if self._exclude_spec.match_file(rel_path.as_posix() + suffix):
            return True
        if is_dir and self._exclude_spec.match_file(path.name + suffix):
            return True
        for base, spec in specs:
            if spec.match_file(path.relative_to(base).as_posix() + suffix):
                return True
        return False

    def _gitignore_chain(
        self, directory: Path, cache: dict[Path, pathspec.PathSpec | None]
    ) -> list[tuple[Path, pathspec.PathSpec]]:
        """Gitignore specs from the vault root down to `directory`, with their bases."""
        chain: list[tuple[Path, pathspec.PathSpec]] = []
        current = self.root
        parts = directory.relative_to(self.root).parts
        for i in range(len(parts) + 1):
            if current not in cache:
                cache[current] = _load_gitignore(current)
            spec = cache[current]
            if spec is not None:
                chain.append((current, spec))
            if i < len(parts):
                current = current / parts[i]
        return chain
