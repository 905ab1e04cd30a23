"""Cheap content fingerprints for change suppression and self-write detection."""

from __future__ import annotations

import zlib
from typing import Optional


def fingerprint(text: str) -> str:
    """Return a deterministic, non-cryptographic token for *text*."""
    data = text.encode("utf-8")
    return f"{zlib.crc32(data):08x}-{len(data):x}"


class FingerprintTracker:
    """Remembers the last content seen for one file.

    ``last`` is updated both when a refresh observes new content and when the
    coordinator writes content it owns, so the watcher event triggered by our
    own write compares equal and is dropped.
    """

    def __init__(self) -> None:
        self.last: Optional[str] = None
        self.last_written: Optional[str] = None

    def is_known(self, text: str) -> bool:
        return self.last is not None and fingerprint(text) == self.last

    def observe(self, text: str) -> str:
        token = fingerprint(text)
        self.last = token
        return token

    def record_write(self, text: str) -> str:
        token = self.observe(text)
        self.last_written = token
        return token

    def differs_from_recorded(self, text: str) -> bool:
        """True when *text* is not what we last observed or wrote."""
        return self.last is not None and fingerprint(text) != self.last

    def reset(self) -> None:
        self.last = None
        self.last_written = None
