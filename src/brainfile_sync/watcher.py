"""Change sources: a polling file watcher and the open-editor buffer registry."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from .clock import Clock, TimerHandle
from .constants import DEFAULT_WATCH_POLL_INTERVAL

_Signature = tuple[int, int, int]
_Listener = Callable[[Path], None]


def _signature(path: Path) -> Optional[_Signature]:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.debug("stat({}) failed: {}", path, exc)
        return None
    return st.st_mtime_ns, st.st_size, st.st_ino


class PollingFileWatcher:
    """Watch one path by polling its stat signature.

    Touches and permission changes that keep mtime/size/inode intact are not
    reported; content-identical rewrites are, and are filtered later by the
    fingerprint check.
    """

    def __init__(
        self,
        path: Path,
        clock: Clock,
        *,
        on_change: Optional[_Listener] = None,
        on_create: Optional[_Listener] = None,
        on_delete: Optional[_Listener] = None,
        interval: float = DEFAULT_WATCH_POLL_INTERVAL,
    ) -> None:
        self.path = Path(path)
        self._clock = clock
        self._on_change = on_change
        self._on_create = on_create
        self._on_delete = on_delete
        self.interval = interval
        self._last: Optional[_Signature] = None
        self._timer: Optional[TimerHandle] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._last = _signature(self.path)
        self._schedule()

    def stop(self) -> None:
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None

    def _schedule(self) -> None:
        if self._running:
            self._timer = self._clock.call_later(self.interval, self._tick)

    def _tick(self) -> None:
        self._timer = None
        if not self._running:
            return
        self.poll()
        self._schedule()

    def poll(self) -> Optional[str]:
        """Compare against the previous snapshot and emit at most one event."""
        current = _signature(self.path)
        previous, self._last = self._last, current
        if previous == current:
            return None
        if previous is None:
            event, listener = "create", self._on_create
        elif current is None:
            event, listener = "delete", self._on_delete
        else:
            event, listener = "change", self._on_change
        logger.trace("Watcher {}: {}", self.path.name, event)
        if listener is not None:
            listener(self.path)
        return event


class OpenDocuments:
    """Text of documents currently open in an editor, keyed by resolved path.

    An open buffer is the freshest view of a document, so reads prefer it over
    disk.  Every edit notifies the subscribed listeners.
    """

    def __init__(self) -> None:
        self._texts: dict[Path, str] = {}
        self._listeners: list[_Listener] = []

    @staticmethod
    def _key(path: Path) -> Path:
        return Path(path).resolve()

    def open(self, path: Path, text: str) -> None:
        self._texts[self._key(path)] = text

    def edit(self, path: Path, text: str) -> None:
        key = self._key(path)
        self._texts[key] = text
        for listener in list(self._listeners):
            listener(key)

    def close(self, path: Path) -> None:
        self._texts.pop(self._key(path), None)

    def get_text(self, path: Path) -> Optional[str]:
        return self._texts.get(self._key(path))

    def subscribe(self, listener: _Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
