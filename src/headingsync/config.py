"""
Config files for headingsync.

A vault can carry `.headingsync.toml` or `headingsync.toml`, or keep its
settings under `[tool.headingsync]` in a `pyproject.toml`. The nearest file
walking up from the vault root wins. Keys are kebab-case and may sit at the
top level or in their section:

    [sync]
    enabled = true
    cross-file = true
    use-backlinks = false

    [suggestions]
    max-suggestions = 5
    min-score = 0.85

    [vault]
    exclude = [".git/", ".obsidian/"]
    extend-exclude = ["templates/"]
    respect-gitignore = true

Problems in a config file never stop a run: unknown keys and values of the
wrong type are reported on stderr and ignored.
"""

from __future__ import annotations

import sys
from collections.abc import Callable
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, TypeVar, cast

if sys.version_info >= (3, 11):
    import tomllib  # pyright: ignore[reportUnreachable]
else:
    import tomli as tomllib  # type: ignore[no-redef]  # pyright: ignore[reportUnreachable]


@dataclass
class HeadingSyncConfig:
    """
    Settings read from a config file. `None` means the file does not set the
    value, which is different from setting it to the default.
    """

    enabled: bool | None = None
    cross_file: bool | None = None
    use_backlinks: bool | None = None
    max_suggestions: int | None = None
    min_score: float | None = None
    exclude: list[str] | None = None
    extend_exclude: list[str] | None = None
    respect_gitignore: bool | None = None


_CONFIG_FILENAMES = (".headingsync.toml", "headingsync.toml")
_PYPROJECT = "pyproject.toml"

# Which section each setting belongs to.
_SECTIONS: dict[str, tuple[str, ...]] = {
    "sync": ("enabled", "cross_file", "use_backlinks"),
    "suggestions": ("max_suggestions", "min_score"),
    "vault": ("exclude", "extend_exclude", "respect_gitignore"),
}


def _is_bool(value: Any) -> bool:
    return isinstance(value, bool)


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_score(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 <= value <= 1


def _is_patterns(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in cast(list[Any], value))


_VALIDATORS: dict[str, tuple[Callable[[Any], bool], str]] = {
    "enabled": (_is_bool, "a boolean"),
    "cross_file": (_is_bool, "a boolean"),
    "use_backlinks": (_is_bool, "a boolean"),
    "respect_gitignore": (_is_bool, "a boolean"),
    "max_suggestions": (_is_count, "a non-negative integer"),
    "min_score": (_is_score, "a number between 0 and 1"),
    "exclude": (_is_patterns, "a list of strings"),
    "extend_exclude": (_is_patterns, "a list of strings"),
}


def _warn(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


def _read_toml(path: Path) -> dict[str, Any] | None:
    try:
        return tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as e:
        _warn(f"ignoring malformed config {path}: {e}")
        return None


def _tool_section(path: Path) -> dict[str, Any] | None:
    """The `[tool.headingsync]` table of a pyproject.toml, if it has one."""
    try:
        data = tomllib.loads(path.read_text())
    except (tomllib.TOMLDecodeError, OSError):
        return None
    section = data.get("tool", {}).get("headingsync")
    return cast(dict[str, Any], section) if isinstance(section, dict) else None


def _config_in(directory: Path) -> Path | None:
    for filename in _CONFIG_FILENAMES:
        candidate = directory / filename
        if candidate.is_file():
            return candidate
    pyproject = directory / _PYPROJECT
    if pyproject.is_file() and _tool_section(pyproject) is not None:
        return pyproject
    return None


def find_config_file(start_dir: Path) -> Path | None:
    """
    The config file nearest to `start_dir`, checking `start_dir` and then
    each parent. Within a directory `.headingsync.toml` beats
    `headingsync.toml`, which beats a `pyproject.toml` with a
    `[tool.headingsync]` table.
    """
    start = start_dir.resolve()
    for directory in (start, *start.parents):
        found = _config_in(directory)
        if found is not None:
            return found
    return None


def load_config(config_path: Path) -> HeadingSyncConfig:
    """
    Read a config file. A malformed file is reported and yields an empty
    config, so the run continues with CLI flags and defaults.
    """
    data = _read_toml(config_path)
    if data is None:
        return HeadingSyncConfig()
    if config_path.name == _PYPROJECT:
        data = data.get("tool", {}).get("headingsync", {})
    return _parse_config_data(data, config_path)


def _settings_of(data: dict[str, Any], source: Path | None) -> dict[str, tuple[str, Any]]:
    """
    Collect settings from the top level and the known sections, as
    field name -> (key as written, value). Unknown keys and sections are
    reported and dropped.
    """
    where = f" in {source}" if source else ""
    found: dict[str, tuple[str, Any]] = {}

    def take(key: str, value: Any, allowed: tuple[str, ...]) -> None:
        name = key.replace("-", "_")
        if name in allowed:
            found[name] = (key, value)
        else:
            _warn(f"unrecognized config key '{key}'{where}")

    all_fields = tuple(f.name for f in fields(HeadingSyncConfig))
    for key, value in data.items():
        if key in _SECTIONS and isinstance(value, dict):
            for sub_key, sub_value in cast(dict[str, Any], value).items():
                take(sub_key, sub_value, _SECTIONS[key])
        elif isinstance(value, dict):
            _warn(f"unrecognized config section '{key}'{where}")
        else:
            take(key, value, all_fields)
    return found


def _parse_config_data(data: dict[str, Any], source: Path | None = None) -> HeadingSyncConfig:
    """Build a `HeadingSyncConfig` from parsed TOML, checking each value's type."""
    where = f" in {source}" if source else ""
    config = HeadingSyncConfig()
    for name, (key, value) in _settings_of(data, source).items():
        is_valid, expected = _VALIDATORS[name]
        if not is_valid(value):
            _warn(f"config key '{key}'{where} must be {expected}, got {value!r}")
            continue
        setattr(config, name, float(value) if name == "min_score" else value)
    return config


_T = TypeVar("_T")


def merge_cli_with_config(
    cli_opts: _T,
    config: HeadingSyncConfig | None,
    explicit_flags: set[str],
) -> _T:
    """
    Fill `cli_opts` from `config`. Flags given on the command line (named in
    `explicit_flags`) keep their values; settings the config leaves unset keep
    the CLI defaults.
    """
    if config is None:
        return cli_opts

    for name in (f.name for f in fields(config)):
        value = getattr(config, name)
        if value is None or name in explicit_flags or not hasattr(cli_opts, name):
            continue
        setattr(cli_opts, name, value)
    return cli_opts
