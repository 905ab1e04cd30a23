"""Tests for the outbound view channel."""

from __future__ import annotations

from typing import Any

from brainfile_sync.codec import LintIssue, LintResult
from brainfile_sync.models import Board, Column
from brainfile_sync.view import BoardView


def _view() -> tuple[BoardView, list[dict[str, Any]]]:
    sent: list[dict[str, Any]] = []
    return BoardView(sent.append), sent


def test_board_waits_for_ready() -> None:
    view, sent = _view()
    view.post_board(Board(title="first"))
    view.post_board(Board(title="second"))
    assert sent == []
    assert view.has_pending

    view.mark_ready()
    assert sent == [{"type": "boardUpdate", "board": Board(title="second").to_dict()}]
    assert not view.has_pending


def test_ready_without_pending_resends_last_board() -> None:
    view, sent = _view()
    view.mark_ready()
    assert sent == []
    view.post_board(Board(title="x"))
    view.mark_ready()
    assert [m["board"]["title"] for m in sent] == ["x", "x"]


def test_cleared_board_is_delivered() -> None:
    view, sent = _view()
    view.post_board(None)
    view.mark_ready()
    assert sent == [{"type": "boardUpdate", "board": None}]


def test_warning_only_when_ready() -> None:
    lint = LintResult(valid=False, issues=[LintIssue("error", "bad", line=3)])
    view, sent = _view()
    view.warn("careful", lint)
    assert sent == []
    view.mark_ready()
    view.warn("careful", lint)
    assert sent[-1]["type"] == "parseWarning"
    assert sent[-1]["lint"]["issues"][0]["line"] == 3


def test_show_error_blocks_updates_until_ready() -> None:
    lint = LintResult(valid=False, issues=[LintIssue("error", "tabs", fixable=True)])
    view, sent = _view()
    view.mark_ready()
    view.show_error("Failed to parse board file", lint)
    assert sent[-1] == {
        "type": "parseError",
        "message": "Failed to parse board file",
        "lint": lint.to_dict(),
        "fixAvailable": True,
    }
    assert not view.ready
    assert view.last_board is None

    view.post_board(Board(title="fixed"))
    assert sent[-1]["type"] == "parseError"
    view.mark_ready()
    assert sent[-1]["board"]["title"] == "fixed"


def test_notice() -> None:
    view, sent = _view()
    view.notice("warning", "heads up")
    assert sent == [{"type": "notice", "level": "warning", "message": "heads up"}]


def test_columns_are_sent_in_display_order() -> None:
    board = Board(
        title="ordered",
        columns=[Column(id="later"), Column(id="second", order=2), Column(id="first", order=1)],
    )
    view, sent = _view()
    view.mark_ready()
    view.post_board(board)
    assert [c["id"] for c in sent[-1]["board"]["columns"]] == ["first", "second", "later"]
    assert [c.id for c in view.last_board.columns] == ["later", "second", "first"]
