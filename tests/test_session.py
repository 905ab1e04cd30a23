"""End-to-end tests for a live board session on a manual clock."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from conftest import SAMPLE_BOARD

from brainfile_sync.cache import CacheState
from brainfile_sync.clock import ManualClock
from brainfile_sync.config import SyncSettings
from brainfile_sync.scheduler import ChangeReason
from brainfile_sync.session import BoardSession
from brainfile_sync.watcher import OpenDocuments


class Sink:
    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    def of_type(self, kind: str) -> list[dict[str, Any]]:
        return [m for m in self.messages if m["type"] == kind]


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def sink() -> Sink:
    return Sink()


@pytest.fixture
def documents() -> OpenDocuments:
    return OpenDocuments()


@pytest.fixture
def session(board_file: Path, clock: ManualClock, sink: Sink, documents: OpenDocuments) -> BoardSession:
    session = BoardSession(board_file, clock, sink, open_documents=documents, settings=SyncSettings())
    session.start()
    yield session
    session.dispose()


def test_initial_board_waits_for_view(session: BoardSession, sink: Sink) -> None:
    assert session.coordinator.cache.state == CacheState.VALID
    assert sink.messages == []
    session.mark_view_ready()
    assert sink.of_type("boardUpdate")[0]["board"]["title"] == "Demo Board"


def test_editor_burst_refreshes_once(
    session: BoardSession, sink: Sink, clock: ManualClock, documents: OpenDocuments, board_file: Path
) -> None:
    session.mark_view_ready()
    documents.open(board_file, SAMPLE_BOARD)
    for n in range(3):
        documents.edit(board_file, SAMPLE_BOARD.replace("Demo Board", f"Draft {n}"))
        clock.advance(0.1)
    assert len(sink.of_type("boardUpdate")) == 1

    clock.advance(0.5)
    updates = sink.of_type("boardUpdate")
    assert len(updates) == 2
    assert updates[-1]["board"]["title"] == "Draft 2"
    assert session.scheduler.refresh_count == 1


def test_external_file_change_is_picked_up(
    session: BoardSession, sink: Sink, clock: ManualClock, board_file: Path
) -> None:
    session.mark_view_ready()
    board_file.write_text(SAMPLE_BOARD.replace("Demo Board", "Edited on disk"), encoding="utf-8")
    clock.advance(1.0)
    assert sink.of_type("boardUpdate")[-1]["board"]["title"] == "Edited on disk"


def test_own_write_does_not_trigger_a_reparse(
    session: BoardSession, sink: Sink, clock: ManualClock
) -> None:
    session.mark_view_ready()
    outcome = session.execute("addTask", {"columnId": "done", "title": "Shipped"})
    assert outcome.success
    updates = len(sink.of_type("boardUpdate"))
    assert updates == 2

    clock.advance(1.0)
    assert len(sink.of_type("boardUpdate")) == updates


def test_archive_file_edits_are_merged(
    session: BoardSession, sink: Sink, clock: ManualClock, board_file: Path
) -> None:
    session.mark_view_ready()
    board_file.with_name("brainfile-archive.md").write_text(
        "---\ntitle: Archive\ncolumns: []\narchive:\n  - id: task-0\n    title: Old\n---\n",
        encoding="utf-8",
    )
    clock.advance(1.0)
    assert sink.of_type("boardUpdate")[-1]["board"]["archive"][0]["id"] == "task-0"


def test_deleting_the_board_clears_the_view(
    session: BoardSession, sink: Sink, clock: ManualClock, board_file: Path
) -> None:
    session.mark_view_ready()
    board_file.unlink()
    clock.advance(1.0)
    assert sink.of_type("boardUpdate")[-1]["board"] is None
    assert session.coordinator.cache.state == CacheState.EMPTY


def test_notices_reach_the_view(session: BoardSession, sink: Sink, board_file: Path) -> None:
    board_file.write_text(SAMPLE_BOARD.replace("Fix bug", "Fix bug!"), encoding="utf-8")
    outcome = session.execute("updateBoardTitle", {"title": "Mine"})
    assert outcome.conflict
    notices = sink.of_type("notice")
    assert notices and notices[-1]["level"] == "warning"


def test_dispose_stops_everything(
    session: BoardSession, sink: Sink, clock: ManualClock, documents: OpenDocuments, board_file: Path
) -> None:
    session.mark_view_ready()
    count = len(sink.messages)
    session.dispose()

    documents.edit(board_file, SAMPLE_BOARD.replace("Demo Board", "Late"))
    board_file.write_text(SAMPLE_BOARD.replace("Demo Board", "Later"), encoding="utf-8")
    clock.advance(2.0)
    assert len(sink.messages) == count
    assert clock.pending == 0

    outcome = session.execute("updateBoardTitle", {"title": "x"})
    assert not outcome.success
    assert session.disposed


def test_agent_commands_record_last_agent(session: BoardSession) -> None:
    session.execute("updateBoardTitle", {"title": "Agent title"}, actor="agent:copilot")
    assert session.context.state.get("brainfile.lastUsedAgent") == "copilot"


def test_command_with_open_buffer_survives_the_watcher_refresh(
    board_file: Path, clock: ManualClock, sink: Sink, documents: OpenDocuments
) -> None:
    documents.open(board_file, SAMPLE_BOARD)
    session = BoardSession(board_file, clock, sink, open_documents=documents)
    session.start()
    session.mark_view_ready()
    try:
        outcome = session.execute(
            "moveTask", {"taskId": "task-1", "fromColumn": "todo", "toColumn": "done", "toIndex": 0}
        )
        assert outcome.success
        assert documents.get_text(board_file) == board_file.read_text(encoding="utf-8")

        updates = len(sink.of_type("boardUpdate"))
        clock.advance(2.0)
        assert len(sink.of_type("boardUpdate")) == updates
        done = next(c for c in session.coordinator.cache.board.columns if c.id == "done")
        assert [t.id for t in done.tasks] == ["task-1"]
    finally:
        session.dispose()


def test_undecodable_board_is_reported_not_raised(board_file: Path, clock: ManualClock, sink: Sink) -> None:
    board_file.write_bytes(b"---\ntitle: \xff\xfe bad\ncolumns: []\n---\n")
    session = BoardSession(board_file, clock, sink)
    session.start()
    try:
        assert session.board_watcher.running
        assert session.coordinator.cache.board is None
        notices = sink.of_type("notice")
        assert notices and notices[-1]["level"] == "error"

        outcome = session.execute("updateBoardTitle", {"title": "x"})
        assert outcome.error_type == "io"
    finally:
        session.dispose()


def test_failed_start_leaves_nothing_running(
    board_file: Path, clock: ManualClock, sink: Sink, monkeypatch: pytest.MonkeyPatch
) -> None:
    session = BoardSession(board_file, clock, sink)

    def _boom(*_args: Any) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(session.coordinator, "refresh", _boom)
    with pytest.raises(RuntimeError):
        session.start()
    assert session.disposed
    assert not session.board_watcher.running
    assert not session.archive_watcher.running
    assert clock.pending == 0


def test_deletion_cancels_a_queued_refresh(
    session: BoardSession, sink: Sink, clock: ManualClock, board_file: Path
) -> None:
    session.mark_view_ready()
    session.scheduler.schedule(ChangeReason.FILE_CHANGE)
    board_file.unlink()
    session.board_watcher.poll()
    assert session.scheduler.pending_reason is None

    clock.advance(1.0)
    cleared = [m for m in sink.of_type("boardUpdate") if m["board"] is None]
    assert len(cleared) == 1
