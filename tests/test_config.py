"""Tests for config file loading and merging."""

from __future__ import annotations

from pathlib import Path

import pytest

from headingsync.cli import Options
from headingsync.config import (
    HeadingSyncConfig,
    find_config_file,
    load_config,
    merge_cli_with_config,
)


def test_find_config_headingsync_toml(tmp_path: Path) -> None:
    config_file = tmp_path / "headingsync.toml"
    config_file.write_text("[sync]\ncross-file = false\n")
    assert find_config_file(tmp_path) == config_file


def test_find_config_dot_file_takes_precedence(tmp_path: Path) -> None:
    (tmp_path / "headingsync.toml").write_text("[sync]\ncross-file = false\n")
    dot_config = tmp_path / ".headingsync.toml"
    dot_config.write_text("[sync]\ncross-file = true\n")
    assert find_config_file(tmp_path) == dot_config


def test_find_config_pyproject_toml(tmp_path: Path) -> None:
    config_file = tmp_path / "pyproject.toml"
    config_file.write_text("[tool.headingsync]\nmax-suggestions = 3\n")
    assert find_config_file(tmp_path) == config_file


def test_find_config_pyproject_without_section_skipped(tmp_path: Path) -> None:
    (tmp_path / "pyproject.toml").write_text("[tool.ruff]\nline-length = 100\n")
    assert find_config_file(tmp_path) is None


def test_find_config_walks_up(tmp_path: Path) -> None:
    config_file = tmp_path / "headingsync.toml"
    config_file.write_text("enabled = true\n")
    subdir = tmp_path / "notes" / "deep"
    subdir.mkdir(parents=True)
    assert find_config_file(subdir) == config_file


def test_load_config_sections_and_kebab_case(tmp_path: Path) -> None:
    config_file = tmp_path / "headingsync.toml"
    config_file.write_text(
        "[sync]\n"
        "enabled = true\n"
        "cross-file = false\n"
        "use-backlinks = true\n"
        "\n"
        "[suggestions]\n"
        "max-suggestions = 3\n"
        "min-score = 0.9\n"
        "\n"
        "[vault]\n"
        'extend-exclude = ["templates/"]\n'
        "respect-gitignore = false\n"
    )
    config = load_config(config_file)
    assert config.enabled is True
    assert config.cross_file is False
    assert config.use_backlinks is True
    assert config.max_suggestions == 3
    assert config.min_score == 0.9
    assert config.extend_exclude == ["templates/"]
    assert config.respect_gitignore is False
    # Unset fields stay None
    assert config.exclude is None


def test_load_config_pyproject_toml(tmp_path: Path) -> None:
    config_file = tmp_path / "pyproject.toml"
    config_file.write_text("[tool.headingsync]\nmin-score = 0.7\n")
    assert load_config(config_file).min_score == 0.7


def test_load_config_malformed_toml(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config_file = tmp_path / "headingsync.toml"
    config_file.write_text("this is not valid toml [[[")
    config = load_config(config_file)
    assert config == HeadingSyncConfig()
    assert "malformed config" in capsys.readouterr().err


def test_load_config_warns_unknown_keys(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config_file = tmp_path / "headingsync.toml"
    config_file.write_text("unknown_key = true\nmax-suggestions = 2\n")
    config = load_config(config_file)
    assert config.max_suggestions == 2
    assert "unrecognized config key" in capsys.readouterr().err


def test_load_config_rejects_wrong_types(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config_file = tmp_path / "headingsync.toml"
    config_file.write_text(
        '[sync]\ncross-file = "no"\n\n[suggestions]\nmin-score = 2\nmax-suggestions = 4\n'
    )
    config = load_config(config_file)
    assert config.cross_file is None
    assert config.min_score is None
    assert config.max_suggestions == 4
    err = capsys.readouterr().err
    assert "'cross-file'" in err and "must be a boolean" in err
    assert "'min-score'" in err and "between 0 and 1" in err


def test_load_config_integer_min_score_is_float(tmp_path: Path) -> None:
    config_file = tmp_path / "headingsync.toml"
    config_file.write_text("min-score = 1\n")
    config = load_config(config_file)
    assert config.min_score == 1.0
    assert isinstance(config.min_score, float)


def test_load_config_key_in_wrong_section(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config_file = tmp_path / "headingsync.toml"
    config_file.write_text("[vault]\nenabled = false\n\n[display]\ncolor = true\n")
    assert load_config(config_file) == HeadingSyncConfig()
    err = capsys.readouterr().err
    assert "unrecognized config key 'enabled'" in err
    assert "unrecognized config section 'display'" in err


def _make_options(
    min_score: float = 0.85,
    max_suggestions: int = 5,
    cross_file: bool = True,
    extend_exclude: list[str] | None = None,
) -> Options:
    """Create an Options with defaults for all required fields."""
    return Options(
        files=[],
        vault=None,
        mode="check",
        rename=None,
        min_score=min_score,
        max_suggestions=max_suggestions,
        dry_run=False,
        quiet=False,
        version=False,
        enabled=True,
        cross_file=cross_file,
        use_backlinks=False,
        exclude=None,
        extend_exclude=extend_exclude if extend_exclude is not None else [],
        respect_gitignore=True,
    )


def test_merge_no_config() -> None:
    opts = _make_options(min_score=0.85)
    result = merge_cli_with_config(opts, config=None, explicit_flags=set())
    assert result.min_score == 0.85


def test_merge_config_overrides_defaults() -> None:
    config = HeadingSyncConfig(min_score=0.95, cross_file=False, enabled=False)
    result = merge_cli_with_config(_make_options(), config=config, explicit_flags=set())
    assert result.min_score == 0.95
    assert result.cross_file is False
    assert result.enabled is False


def test_merge_explicit_cli_overrides_config() -> None:
    opts = _make_options(max_suggestions=10)
    config = HeadingSyncConfig(max_suggestions=3)
    result = merge_cli_with_config(opts, config=config, explicit_flags={"max_suggestions"})
    assert result.max_suggestions == 10


def test_merge_vault_settings_from_config() -> None:
    config = HeadingSyncConfig(extend_exclude=["templates/"], respect_gitignore=False)
    result = merge_cli_with_config(_make_options(), config=config, explicit_flags=set())
    assert result.extend_exclude == ["templates/"]
    assert result.respect_gitignore is False
