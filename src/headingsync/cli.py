#!/usr/bin/env python3
"""
headingsync: Keep Markdown heading links in sync when headings are renamed

Common usage:
  headingsync                          # report broken heading links in the vault
  headingsync notes/                   # ... in one folder
  headingsync --suggest notes/a.md     # show ranked fixes for broken links
  headingsync --fix .                  # apply confident fixes
  headingsync --rename "Old" "New" notes/a.md

Links understood: [[#Heading]], [[#Heading|Alias]], [label](#Heading),
[[Note#Heading]], [[Note#Heading|Alias]], [label](Note.md#Heading).
"""

from __future__ import annotations

import argparse
import importlib.metadata
import sys
from dataclasses import dataclass
from pathlib import Path

from headingsync.config import find_config_file, load_config, merge_cli_with_config
from headingsync.headings import rename_heading
from headingsync.sync import HeadingLinkSync, SyncSettings
from headingsync.vault import Vault, VaultConfig


@dataclass
class Options:
    """Command-line options for the headingsync tool."""

    files: list[str]
    vault: str | None
    mode: str
    rename: list[str] | None
    min_score: float
    max_suggestions: int
    dry_run: bool
    quiet: bool
    version: bool
    enabled: bool
    cross_file: bool
    use_backlinks: bool
    # Vault file discovery
    exclude: list[str] | None
    extend_exclude: list[str]
    respect_gitignore: bool


def _parse_args(args: list[str] | None = None) -> tuple[Options, set[str]]:
    """
    Parse command-line arguments.

    Returns a tuple of (options, explicit_flags) where `explicit_flags` tracks
    which flags the user explicitly passed (for config merge precedence).
    """
    module_doc = __doc__ or ""
    doc_parts = module_doc.split("\n\n")
    description = doc_parts[0]
    epilog = "\n\n".join(doc_parts[1:])

    parser = argparse.ArgumentParser(
        description=description,
        epilog=epilog,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "files",
        nargs="*",
        type=str,
        default=[],
        help="Files or directories inside the vault (default: the whole vault)",
    )
    parser.add_argument(
        "--vault",
        type=str,
        default=None,
        metavar="DIR",
        help="Vault root used to resolve note names (default: current directory)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--check",
        dest="mode",
        action="store_const",
        const="check",
        help="Report broken heading links (the default)",
    )
    mode.add_argument(
        "--suggest",
        dest="mode",
        action="store_const",
        const="suggest",
        help="List broken heading links with ranked replacement headings",
    )
    mode.add_argument(
        "--fix",
        dest="mode",
        action="store_const",
        const="fix",
        help="Retarget broken links whose best suggestion scores at least --min-score",
    )
    mode.add_argument(
        "--rename",
        nargs=2,
        metavar=("OLD", "NEW"),
        default=None,
        help="Rename a heading in a single file and update every link to it",
    )
    parser.add_argument(
        "--min-score",
        type=float,
        default=0.85,
        help="Minimum similarity for --fix to apply a suggestion (default: %(default)s)",
    )
    parser.add_argument(
        "--max-suggestions",
        type=int,
        default=5,
        help="Suggestions shown per broken link, or 0 for all (default: %(default)s)",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Show what would change without writing any files",
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only print problems and errors"
    )
    parser.add_argument(
        "--no-cross-file",
        action="store_true",
        dest="no_cross_file",
        help="With --rename, only update links within the renamed file",
    )
    parser.add_argument(
        "--backlinks-only",
        action="store_true",
        dest="backlinks_only",
        help="With --rename, only rewrite documents that mention the renamed note",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        default=None,
        metavar="PATTERN",
        help="Replace all default exclusion patterns. Can be repeated",
    )
    parser.add_argument(
        "--extend-exclude",
        action="append",
        default=[],
        metavar="PATTERN",
        help="Add to default exclusion patterns (e.g., 'templates/'). Can be repeated",
    )
    parser.add_argument(
        "--no-respect-gitignore",
        action="store_true",
        dest="no_respect_gitignore",
        help="Disable .gitignore integration",
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show version information and exit",
    )
    opts = parser.parse_args(args)

    # Detect which flags were actually supplied, using sentinel defaults.
    _SENTINEL = object()
    _tracked_flags: dict[str, str] = {
        # argparse dest name -> Options field name
        "min_score": "min_score",
        "max_suggestions": "max_suggestions",
        "no_cross_file": "cross_file",
        "backlinks_only": "use_backlinks",
        "exclude": "exclude",
        "extend_exclude": "extend_exclude",
        "no_respect_gitignore": "respect_gitignore",
    }
    sentinel_parser = argparse.ArgumentParser(add_help=False)
    sentinel_parser.add_argument("--min-score", type=float, default=_SENTINEL)
    sentinel_parser.add_argument("--max-suggestions", type=int, default=_SENTINEL)
    sentinel_parser.add_argument(
        "--no-cross-file", dest="no_cross_file", action="store_true", default=_SENTINEL
    )
    sentinel_parser.add_argument(
        "--backlinks-only", dest="backlinks_only", action="store_true", default=_SENTINEL
    )
    sentinel_parser.add_argument("--exclude", action="append", default=None)
    sentinel_parser.add_argument("--extend-exclude", action="append", default=None)
    sentinel_parser.add_argument(
        "--no-respect-gitignore",
        dest="no_respect_gitignore",
        action="store_true",
        default=_SENTINEL,
    )
    sentinel_opts, _ = sentinel_parser.parse_known_args(args if args is not None else sys.argv[1:])

    explicit_flags: set[str] = set()
    for dest_name, field_name in _tracked_flags.items():
        val = getattr(sentinel_opts, dest_name, _SENTINEL)
        # For append actions, None means not supplied; a list means supplied
        if dest_name in ("exclude", "extend_exclude"):
            if val is not None:
                explicit_flags.add(field_name)
        elif val is not _SENTINEL:
            explicit_flags.add(field_name)

    mode_name = "rename" if opts.rename else (opts.mode or "check")

    return (
        Options(
            files=opts.files,
            vault=opts.vault,
            mode=mode_name,
            rename=opts.rename,
            min_score=opts.min_score,
            max_suggestions=opts.max_suggestions,
            dry_run=opts.dry_run,
            quiet=opts.quiet,
            version=opts.version,
            enabled=True,
            cross_file=not opts.no_cross_file,
            use_backlinks=opts.backlinks_only,
            exclude=opts.exclude,
            extend_exclude=opts.extend_exclude,
            respect_gitignore=not opts.no_respect_gitignore,
        ),
        explicit_flags,
    )


def _select_documents(vault: Vault, files: list[str]) -> list[str]:
    """Vault documents named by `files` (files or directories), or all of them."""
    documents = vault.list_documents()
    if not files:
        return documents

    selected: list[str] = []
    for f in files:
        path = Path(f).resolve()
        try:
            rel = path.relative_to(vault.root).as_posix()
        except ValueError:
            raise ValueError(f"Path is outside the vault ({vault.root}): {f}") from None
        if path.is_dir():
            prefix = "" if rel == "." else rel + "/"
            selected.extend(doc for doc in documents if doc.startswith(prefix))
        elif path.is_file():
            selected.append(rel)
        else:
            raise FileNotFoundError(f"Path not found: {f}")

    # Deduplicate, keeping order
    return list(dict.fromkeys(selected))


def _read_document(vault: Vault, doc: str) -> str | None:
    """Document text, or `None` (with a warning) if it can't be read."""
    try:
        return vault.read(doc)
    except (OSError, UnicodeDecodeError) as e:
        print(f"Warning: skipping {doc}: {e}", file=sys.stderr)
        return None


def _run_check(engine: HeadingLinkSync, vault: Vault, documents: list[str]) -> int:
    problems = 0
    for doc in documents:
        content = _read_document(vault, doc)
        if content is None:
            continue
        for broken in engine.find_broken(doc, content):
            print(f"{doc}: {broken.describe()}")
            problems += 1
    return 1 if problems else 0


def _run_suggest(engine: HeadingLinkSync, vault: Vault, documents: list[str]) -> int:
    for doc in documents:
        content = _read_document(vault, doc)
        if content is None:
            continue
        for candidate in engine.collect_repair_candidates(doc, content):
            print(f"{doc}: {candidate.raw} -> {candidate.target_path}")
            if not candidate.suggestions:
                print("    (no headings in target)")
            for suggestion in candidate.suggestions:
                print(f"    {suggestion.score:.2f}  {suggestion.heading}")
    return 0


def _run_fix(engine: HeadingLinkSync, vault: Vault, documents: list[str], options: Options) -> int:
    for doc in documents:
        content = _read_document(vault, doc)
        if content is None:
            continue
        fixed, applied = engine.auto_repair(doc, content, options.min_score)
        if not applied:
            continue
        for broken, suggestion in applied:
            if not options.quiet:
                print(
                    f"{doc}: {broken.occurrence.raw} -> '{suggestion.heading}' "
                    f"({suggestion.score:.2f})"
                )
        if not options.dry_run:
            vault.write(doc, fixed)
    return 0


def _run_rename(engine: HeadingLinkSync, vault: Vault, documents: list[str], options: Options) -> int:
    if len(documents) != 1 or not options.rename:
        raise ValueError("--rename requires exactly one file")
    old_heading, new_heading = options.rename
    doc = documents[0]
    content = vault.read(doc)

    # Seed the snapshot with the current headings, then replay the edit.
    engine.on_document_modified(doc, content)
    renamed, count = rename_heading(content, old_heading, new_heading)
    if count == 0:
        raise ValueError(f"No heading '{old_heading}' in {doc}")
    result = engine.on_document_modified(doc, renamed)

    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if not options.quiet:
        for message in result.messages:
            print(message)
        for broken in result.broken_links:
            print(f"{doc}: {broken.describe()}")

    if not options.dry_run:
        vault.write(doc, result.content)
        for other, updated in result.updated_documents.items():
            vault.write(other, updated)
    return 0


def main(args: list[str] | None = None) -> int:
    """
    Main entry point for the headingsync CLI.

    Args:
        args: Command-line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, 1 for broken links or usage errors, 2 for other errors)
    """
    options, explicit_flags = _parse_args(args)

    if options.version:
        try:
            version = importlib.metadata.version("headingsync")
            print(f"v{version}")
        except importlib.metadata.PackageNotFoundError:
            print("unknown (package not installed)")
        return 0

    vault_root = Path(options.vault) if options.vault else Path.cwd()

    config_path = find_config_file(vault_root)
    if config_path:
        config = load_config(config_path)
        merge_cli_with_config(options, config, explicit_flags)

    if not options.enabled:
        if not options.quiet:
            print("headingsync is disabled by config", file=sys.stderr)
        return 0

    try:
        vault = Vault(
            vault_root,
            VaultConfig(
                exclude=options.exclude,
                extend_exclude=options.extend_exclude,
                respect_gitignore=options.respect_gitignore,
            ),
        )
        settings = SyncSettings(
            cross_file=options.cross_file,
            use_backlinks=options.use_backlinks,
            max_suggestions=options.max_suggestions,
        )
        engine = HeadingLinkSync(vault, vault, settings=settings, backlinks=vault.backlinks)
        documents = _select_documents(vault, options.files)

        if options.mode == "rename":
            return _run_rename(engine, vault, documents, options)
        if options.mode == "suggest":
            return _run_suggest(engine, vault, documents)
        if options.mode == "fix":
            return _run_fix(engine, vault, documents, options)
        return _run_check(engine, vault, documents)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
