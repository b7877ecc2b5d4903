"""
Purpose: Smoke tests for the promptifyr CLI.
Description: Runs the click group in-process against a temporary data directory, plus one subprocess
check that the module entrypoint is wired.
Key Tests: test_cli_help_subprocess, test_register_and_leaderboard.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from promptifyr import run as run_module
from promptifyr.cli import promptifyr


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _invoke(runner: CliRunner, data_dir: Path, *args: str):
    return runner.invoke(promptifyr, ["--data-dir", str(data_dir), *args])


def test_cli_help_subprocess():
    cmd = [sys.executable, "-m", "promptifyr.cli", "--help"]
    proc = subprocess.run(cmd, capture_output=True, text=True, cwd=Path(__file__).resolve().parents[1])
    assert proc.returncode == 0
    assert "submit" in proc.stdout
    assert "leaderboard" in proc.stdout


def test_challenges_lists_catalog(runner, tmp_path):
    result = _invoke(runner, tmp_path, "challenges")
    assert result.exit_code == 0, result.output
    assert "news-summarizer" in result.output
    assert "ethical-dilemma-analyzer" in result.output

    filtered = _invoke(runner, tmp_path, "challenges", "--difficulty", "intermediate")
    assert "creative-story-writer" in filtered.output
    assert "news-summarizer" not in filtered.output


def test_register_and_leaderboard(runner, tmp_path):
    assert _invoke(runner, tmp_path, "register", "Ada", "--user-id", "ada").exit_code == 0
    assert _invoke(runner, tmp_path, "register", "Grace", "--user-id", "grace").exit_code == 0
    assert (tmp_path / "users.jsonl").exists()

    duplicate = _invoke(runner, tmp_path, "register", "Ada", "--user-id", "ada")
    assert duplicate.exit_code == 1
    assert "ValidationError" in duplicate.output

    csv_path = tmp_path / "board.csv"
    board = _invoke(runner, tmp_path, "leaderboard", "--csv", str(csv_path))
    assert board.exit_code == 0, board.output
    assert "Ada" in board.output and "Grace" in board.output
    assert "Exported 2 rows" in board.output
    assert csv_path.read_text(encoding="utf-8").splitlines()[0].startswith("rank,user_id")


def test_profile_and_audit(runner, tmp_path):
    _invoke(runner, tmp_path, "register", "Ada", "--user-id", "ada")

    profile = _invoke(runner, tmp_path, "profile", "--user-id", "ada")
    assert profile.exit_code == 0, profile.output
    assert "level 1" in profile.output

    audit = _invoke(runner, tmp_path, "audit", "--user-id", "ada")
    assert audit.exit_code == 0
    assert "Consistent" in audit.output

    missing = _invoke(runner, tmp_path, "profile", "--user-id", "ghost")
    assert missing.exit_code == 1
    assert "NotFoundError" in missing.output


def test_submit_requires_api_key(runner, tmp_path, monkeypatch):
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    monkeypatch.delenv("OPENROUTER_KEY", raising=False)
    result = _invoke(
        runner, tmp_path, "submit", "--user-id", "ada", "--challenge-id", "news-summarizer", "Summarize it please."
    )
    assert result.exit_code == 1
    assert "API key not found" in result.output


def test_read_only_commands_open_no_http_client(runner, tmp_path, monkeypatch):
    built = []
    monkeypatch.setattr(run_module, "build_http_client", lambda cfg: built.append(cfg))

    _invoke(runner, tmp_path, "register", "Ada", "--user-id", "ada")
    for args in (["challenges"], ["profile", "--user-id", "ada"], ["leaderboard"], ["audit", "--user-id", "ada"]):
        result = _invoke(runner, tmp_path, *args)
        assert result.exit_code == 0, result.output
    assert built == []
