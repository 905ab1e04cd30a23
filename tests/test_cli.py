"""Test the brainfile-sync CLI subcommands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from conftest import BROKEN_BOARD, SAMPLE_BOARD

from brainfile_sync import cli


def _run(project_dir: Path, *args: str) -> int:
    return cli.main(["--project-dir", str(project_dir), "--log-level", "ERROR", *args])


def test_show_prints_board(board_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(board_file.parent, "show") == 0
    data = json.loads(capsys.readouterr().out)
    assert data["state"] == "valid"
    assert data["path"] == str(board_file.resolve())
    assert [c["id"] for c in data["board"]["columns"]] == ["todo", "in-progress", "done"]


def test_show_without_board(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(tmp_path, "show") == 1
    assert "No board file found" in capsys.readouterr().err


def test_invalid_config_is_reported(board_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = board_file.parent / ".brainfile" / "config.yaml"
    config.parent.mkdir()
    config.write_text("sync:\n  file_event_debounce: -1\n", encoding="utf-8")
    assert _run(board_file.parent, "show") == 1
    assert "Invalid sync settings" in capsys.readouterr().err


def test_command_records_agent(board_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    payload = json.dumps({"columnId": "todo", "taskId": "task-2"})
    assert _run(board_file.parent, "command", "completeTask", "--payload", payload, "--actor", "agent:copilot") == 0

    outcome = json.loads(capsys.readouterr().out)
    assert outcome["success"] is True
    done = next(c for c in outcome["board"]["columns"] if c["id"] == "done")
    assert [t["id"] for t in done["tasks"]] == ["task-2"]

    state = yaml.safe_load((board_file.parent / ".brainfile" / "state.yaml").read_text(encoding="utf-8"))
    assert state["brainfile.lastUsedAgent"] == "copilot"


def test_command_failure_exit_code(board_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    payload = json.dumps({"columnId": "nope", "title": "x"})
    assert _run(board_file.parent, "command", "addTask", "--payload", payload) == 1
    outcome = json.loads(capsys.readouterr().out)
    assert outcome["errorType"] == "validation"
    assert board_file.read_text(encoding="utf-8") == SAMPLE_BOARD


def test_command_rejects_bad_payload(board_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(board_file.parent, "command", "addTask", "--payload", "[1, 2]") == 1
    assert "JSON object" in capsys.readouterr().err


def test_lint_json_on_broken_board(board_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    board_file.write_text(BROKEN_BOARD, encoding="utf-8")
    assert _run(board_file.parent, "lint", "--json") == 1
    data = json.loads(capsys.readouterr().out)
    assert data["valid"] is False
    assert data["issues"]


def test_lint_table(board_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(board_file.parent, "lint") == 0
    assert "no issues" in capsys.readouterr().out


def test_fix_dry_run_then_apply(board_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    tabbed = SAMPLE_BOARD.replace("  - id: done", "\t- id: done")
    board_file.write_text(tabbed, encoding="utf-8")

    assert _run(board_file.parent, "fix", "--dry-run") == 0
    preview = json.loads(capsys.readouterr().out)
    assert "\t" not in preview["fixed_content"]
    assert board_file.read_text(encoding="utf-8") == tabbed

    assert _run(board_file.parent, "fix") == 0
    outcome = json.loads(capsys.readouterr().out)
    assert outcome["message"].startswith("Fixed")
    assert "\t" not in board_file.read_text(encoding="utf-8")


def test_watch_prints_view_messages(board_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _run(board_file.parent, "watch", "--duration", "0.05") == 0
    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
    assert lines[0]["type"] == "boardUpdate"
    assert lines[0]["board"]["title"] == "Demo Board"


def test_explicit_board_path(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    board = tmp_path / "elsewhere.md"
    board.write_text(SAMPLE_BOARD, encoding="utf-8")
    assert cli.main(["--project-dir", str(tmp_path), "--board", str(board), "show"]) == 0
    assert json.loads(capsys.readouterr().out)["path"] == str(board.resolve())
