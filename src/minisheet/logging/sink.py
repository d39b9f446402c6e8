"""NDJSON file sink for sheet events.

Each event is one ``json.dumps(sort_keys=True)`` line appended to
``<log_dir>/events.ndjson``.  Appends hold an exclusive ``flock`` and
reads a shared one, so several editor processes can share a log.  Reads
only look at the last ``tail_bytes`` of the file.
"""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any, Iterator

from minisheet.logging.events import SheetEvent

try:
    import fcntl
except ImportError:  # Windows: no advisory locks
    fcntl = None

_DEFAULT_TAIL_BYTES = 2 * 1024 * 1024
_MAX_READ = 2000


@contextmanager
def _locked(f: IO[bytes], exclusive: bool) -> Iterator[IO[bytes]]:
    if fcntl is None:
        yield f
        return
    fcntl.flock(f.fileno(), fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)
    try:
        yield f
    finally:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def _parse_lines(data: bytes) -> Iterator[dict[str, Any]]:
    for line in data.decode("utf-8", errors="replace").splitlines():
        if not line.strip():
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError:
            continue


class EventSink:
    """Append-only event log under *log_dir*.

    Args:
        log_dir: Directory holding ``events.ndjson``; created if missing.
        fsync: Force each append to disk.
        tail_bytes: How much of the end of the log :meth:`read_recent`
            looks at.
    """

    def __init__(self, log_dir: Path, *, fsync: bool = False, tail_bytes: int | None = None) -> None:
        self.log_dir = Path(log_dir)
        self.path = self.log_dir / "events.ndjson"
        self._fsync = fsync
        self._tail_bytes = _DEFAULT_TAIL_BYTES if tail_bytes is None else int(tail_bytes)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def write(self, event: SheetEvent) -> None:
        record = event.model_dump(mode="json")
        payload = (json.dumps(record, sort_keys=True, default=str) + "\n").encode("utf-8")
        self.log_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, "ab") as f, _locked(f, exclusive=True):
            f.write(payload)
            f.flush()
            if self._fsync:
                os.fsync(f.fileno())

    def read_recent(
        self,
        *,
        level: str | None = None,
        event_type: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]:
        """Most recent events first, optionally filtered by level and type."""
        matching = [
            e
            for e in _parse_lines(self._tail())
            if (not level or e.get("level") == level)
            and (not event_type or e.get("event_type") == event_type)
        ]
        matching.reverse()
        return matching[: min(limit, _MAX_READ)]

    def _tail(self) -> bytes:
        """The last ``tail_bytes`` of the log, starting at a line boundary."""
        try:
            f = open(self.path, "rb")
        except FileNotFoundError:
            return b""
        with f, _locked(f, exclusive=False):
            size = os.fstat(f.fileno()).st_size
            if size <= self._tail_bytes:
                return f.read()
            f.seek(size - self._tail_bytes)
            data = f.read()
        cut = data.find(b"\n")
        return data[cut + 1:] if cut >= 0 else data
