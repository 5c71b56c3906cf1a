"""CLI tests: help text and end-to-end runs against a temporary vault."""

from __future__ import annotations

from pathlib import Path

import pytest

from headingsync.cli import main


def _make_vault(root: Path) -> None:
    (root / "Net.md").write_text("# Net\n\n## Setup\n\nSee [[#Setup]].\n")
    (root / "Other.md").write_text("Read [[Net#Setup|setup]] and [guide](Net.md#Setup).\n")


def test_help(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc:
        main(["--help"])
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert "headingsync: Keep Markdown heading links in sync" in out
    assert "Common usage:" in out


def test_check_clean_vault(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    monkeypatch.chdir(tmp_path)
    assert main([]) == 0
    assert capsys.readouterr().out == ""


def test_check_reports_broken_links(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    (tmp_path / "Broken.md").write_text("[[Net#Setpu]] [[Gone#X]]\n")
    monkeypatch.chdir(tmp_path)
    assert main(["--check"]) == 1
    out = capsys.readouterr().out
    assert "Broken.md: Missing heading 'Setpu' in Net.md: [[Net#Setpu]]" in out
    assert "Broken.md: Missing file 'Gone': [[Gone#X]]" in out


def test_check_single_file(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    (tmp_path / "Broken.md").write_text("[[#Nope]]\n")
    monkeypatch.chdir(tmp_path)
    assert main(["Other.md"]) == 0
    assert main(["Broken.md"]) == 1


def test_suggest(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    (tmp_path / "Broken.md").write_text("[[Net#Setpu]]\n")
    monkeypatch.chdir(tmp_path)
    assert main(["--suggest", "Broken.md"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Broken.md: [[Net#Setpu]] -> Net.md"
    assert lines[1].endswith("Setup")


def test_fix(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    broken = tmp_path / "Broken.md"
    broken.write_text("[[Net#Setpu|s]] and [[Net#Zzz]]\n")
    monkeypatch.chdir(tmp_path)
    assert main(["--fix"]) == 0
    assert broken.read_text() == "[[Net#Setup|s]] and [[Net#Zzz]]\n"


def test_fix_dry_run(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _make_vault(tmp_path)
    broken = tmp_path / "Broken.md"
    broken.write_text("[[Net#Setpu]]\n")
    monkeypatch.chdir(tmp_path)
    assert main(["--fix", "--dry-run"]) == 0
    assert broken.read_text() == "[[Net#Setpu]]\n"


def test_rename_updates_all_links(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    monkeypatch.chdir(tmp_path)
    assert main(["--rename", "Setup", "Install", "Net.md"]) == 0
    assert (tmp_path / "Net.md").read_text() == "# Net\n\n## Install\n\nSee [[#Install]].\n"
    assert (tmp_path / "Other.md").read_text() == (
        "Read [[Net#Install|setup]] and [guide](Net.md#Install).\n"
    )
    assert "Other.md" in capsys.readouterr().out


def test_rename_no_cross_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _make_vault(tmp_path)
    monkeypatch.chdir(tmp_path)
    assert main(["--rename", "Setup", "Install", "--no-cross-file", "Net.md"]) == 0
    assert "[[#Install]]" in (tmp_path / "Net.md").read_text()
    assert "[[Net#Setup|setup]]" in (tmp_path / "Other.md").read_text()


def test_rename_with_vault_option(tmp_path: Path) -> None:
    _make_vault(tmp_path)
    code = main(["--vault", str(tmp_path), "--rename", "Setup", "Install", str(tmp_path / "Net.md")])
    assert code == 0
    assert "[[Net#Install|setup]]" in (tmp_path / "Other.md").read_text()


def test_rename_unknown_heading(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    monkeypatch.chdir(tmp_path)
    assert main(["--rename", "Nope", "New", "Net.md"]) == 1
    assert "No heading 'Nope'" in capsys.readouterr().err


def test_rename_requires_single_file(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    monkeypatch.chdir(tmp_path)
    assert main(["--rename", "Setup", "Install"]) == 1
    assert "exactly one file" in capsys.readouterr().err


def test_path_outside_vault(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    vault = tmp_path / "vault"
    vault.mkdir()
    _make_vault(vault)
    outside = tmp_path / "outside.md"
    outside.write_text("# Outside\n")
    monkeypatch.chdir(vault)
    assert main([str(outside)]) == 1
    assert "outside the vault" in capsys.readouterr().err


def test_disabled_by_config(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    (tmp_path / "Broken.md").write_text("[[#Nope]]\n")
    (tmp_path / ".headingsync.toml").write_text("enabled = false\n")
    monkeypatch.chdir(tmp_path)
    assert main([]) == 0
    assert "disabled" in capsys.readouterr().err


def test_check_skips_undecodable_document(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    (tmp_path / "Bad.md").write_bytes(b"\xff\xfe# Bad\n")
    monkeypatch.chdir(tmp_path)
    assert main(["--check"]) == 0
    assert "Warning: skipping Bad.md" in capsys.readouterr().err


def test_rename_skips_undecodable_document(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    _make_vault(tmp_path)
    (tmp_path / "Bad.md").write_bytes(b"\xff\xfe[[Net#Setup]]\n")
    (tmp_path / "Zed.md").write_text("[[Net#Setup]]\n")
    monkeypatch.chdir(tmp_path)
    assert main(["--rename", "Setup", "Install", "Net.md"]) == 0
    assert (tmp_path / "Zed.md").read_text() == "[[Net#Install]]\n"
    assert (tmp_path / "Bad.md").read_bytes() == b"\xff\xfe[[Net#Setup]]\n"
    assert "Skipped Bad.md" in capsys.readouterr().err


def test_encoded_fragment_checked_and_fixed(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "Net.md").write_text("## Getting Started\n\n[jump](#Getting%20Started)\n")
    (tmp_path / "Typo.md").write_text("[go](Net.md#Getting%20Startd)\n")
    monkeypatch.chdir(tmp_path)
    assert main(["--check", "Net.md"]) == 0
    assert main(["--fix"]) == 0
    assert (tmp_path / "Net.md").read_text() == "## Getting Started\n\n[jump](#Getting%20Started)\n"
    assert (tmp_path / "Typo.md").read_text() == "[go](Net.md#Getting%20Started)\n"
