"""Tests for the polling file watcher and the open-document registry."""

from __future__ import annotations

from pathlib import Path

from brainfile_sync.clock import ManualClock
from brainfile_sync.watcher import OpenDocuments, PollingFileWatcher


class _Recorder:
    def __init__(self) -> None:
        self.events: list[tuple[str, Path]] = []

    def watcher(self, path: Path, clock: ManualClock) -> PollingFileWatcher:
        return PollingFileWatcher(
            path,
            clock,
            on_change=lambda p: self.events.append(("change", p)),
            on_create=lambda p: self.events.append(("create", p)),
            on_delete=lambda p: self.events.append(("delete", p)),
            interval=0.25,
        )


class TestPollingFileWatcher:
    def test_poll_reports_lifecycle(self, tmp_path: Path) -> None:
        path = tmp_path / "brainfile.md"
        recorder = _Recorder()
        watcher = recorder.watcher(path, ManualClock())
        watcher.start()

        assert watcher.poll() is None
        path.write_text("one", encoding="utf-8")
        assert watcher.poll() == "create"
        path.write_text("one two", encoding="utf-8")
        assert watcher.poll() == "change"
        assert watcher.poll() is None
        path.unlink()
        assert watcher.poll() == "delete"
        assert recorder.events == [("create", path), ("change", path), ("delete", path)]

    def test_clock_drives_polling(self, tmp_path: Path) -> None:
        path = tmp_path / "brainfile.md"
        clock = ManualClock()
        recorder = _Recorder()
        watcher = recorder.watcher(path, clock)
        watcher.start()
        assert watcher.running

        path.write_text("hello", encoding="utf-8")
        clock.advance(0.1)
        assert recorder.events == []
        clock.advance(0.2)
        assert recorder.events == [("create", path)]

    def test_stop_cancels_polling(self, tmp_path: Path) -> None:
        path = tmp_path / "brainfile.md"
        clock = ManualClock()
        recorder = _Recorder()
        watcher = recorder.watcher(path, clock)
        watcher.start()
        watcher.stop()
        path.write_text("hello", encoding="utf-8")
        clock.advance(1.0)
        assert recorder.events == []
        assert not watcher.running
        assert clock.pending == 0


class TestOpenDocuments:
    def test_edit_notifies_with_resolved_path(self, tmp_path: Path) -> None:
        docs = OpenDocuments()
        seen: list[Path] = []
        unsubscribe = docs.subscribe(seen.append)
        path = tmp_path / "brainfile.md"

        docs.open(path, "v1")
        assert seen == []
        assert docs.get_text(path) == "v1"

        docs.edit(path, "v2")
        assert seen == [path.resolve()]
        assert docs.get_text(path) == "v2"

        unsubscribe()
        docs.edit(path, "v3")
        assert seen == [path.resolve()]

    def test_close_forgets_text(self, tmp_path: Path) -> None:
        docs = OpenDocuments()
        path = tmp_path / "brainfile.md"
        docs.open(path, "text")
        docs.close(path)
        assert docs.get_text(path) is None
        docs.close(path)
