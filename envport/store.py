"""On-disk storage of snapshots, with locking, history, notes, pins and expiry."""

from __future__ import annotations

import contextlib
import json
import os
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, Optional, Union

from .snapshot import _format_time, _parse_time, _write_private

DEFAULT_DIR_NAME = ".envport"
LOCK_FILE_NAME = ".lock"
LOCK_TIMEOUT = 5.0
HISTORY_FILE = "history.json"
PIN_FILE = "pin.json"
_LOCK_POLL = 0.05
_NOTE_SUFFIX = ".note.json"
_EXPIRE_SUFFIX = ".expire"


class StoreError(Exception):
    """Base class for store failures."""


class NotFoundError(StoreError):
    """A snapshot name does not exist in the store."""

    def __init__(self, name: Optional[str] = None) -> None:
        message = "snapshot not found" if name is None else f"snapshot not found: {name}"
        super().__init__(message)
        self.name = name


class NoteNotFoundError(StoreError):
    """A snapshot has no note."""

    def __init__(self) -> None:
        super().__init__("note not found")


class NotPinnedError(StoreError):
    """No snapshot is pinned."""

    def __init__(self) -> None:
        super().__init__("no snapshot is pinned")


class LockTimeoutError(StoreError):
    """The store lock could not be acquired in time."""

    def __init__(self) -> None:
        super().__init__("lock: timed out waiting for store lock")


@dataclass(frozen=True)
class HistoryEntry:
    """One recorded snapshot operation."""

    name: str
    operation: str
    timestamp: datetime


@dataclass(frozen=True)
class Expiry:
    """When a snapshot stops being valid."""

    expires_at: datetime


def default_store() -> "Store":
    """Return a store rooted in the user's home directory."""
    return Store(Path.home() / DEFAULT_DIR_NAME)


@dataclass
class Store:
    """A directory of named snapshot files."""

    directory: Path
    lock_timeout: float = LOCK_TIMEOUT

    def __post_init__(self) -> None:
        self.directory = Path(self.directory)

    def init(self) -> None:
        """Create the store directory with owner-only permissions."""
        self.directory.mkdir(mode=0o700, parents=True, exist_ok=True)

    def path(self, name: str) -> Path:
        """Return the file path of a named snapshot."""
        return self.directory / f"{name}.json"

    def list(self) -> list[str]:
        """Return the sorted names of all stored snapshots."""
        try:
            entries = list(self.directory.iterdir())
        except FileNotFoundError:
            return []
        names = []
        for entry in entries:
            filename = entry.name
            if (
                entry.is_dir()
                or not filename.endswith(".json")
                or filename in (HISTORY_FILE, PIN_FILE)
                or filename.endswith(_NOTE_SUFFIX)
            ):
                continue
            names.append(filename[: -len(".json")])
        return sorted(names)

    def delete(self, name: str) -> None:
        """Remove a named snapshot."""
        try:
            self.path(name).unlink()
        except FileNotFoundError:
            raise NotFoundError(name) from None

    def exists(self, name: str) -> bool:
        """Report whether a named snapshot exists."""
        return self.path(name).exists()

    def read_name(self, name: str) -> str:
        """Read only the name field of a snapshot file."""
        data = json.loads(self.path(name).read_text(encoding="utf-8"))
        return data.get("name") or ""

    # Locking

    @property
    def _lock_path(self) -> Path:
        return self.directory / LOCK_FILE_NAME

    @contextlib.contextmanager
    def lock(self) -> Iterator[None]:
        """Hold an exclusive lock on the store for the duration of the block."""
        path = self._lock_path
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
            except FileExistsError:
                if time.monotonic() > deadline:
                    raise LockTimeoutError() from None
                time.sleep(_LOCK_POLL)
                continue
            os.close(fd)
            break
        try:
            yield
        finally:
            with contextlib.suppress(FileNotFoundError):
                path.unlink()

    def locked(self) -> bool:
        """Report whether the store is currently locked."""
        return self._lock_path.exists()

    def force_unlock(self) -> None:
        """Remove a stale lock file."""
        try:
            self._lock_path.unlink()
        except FileNotFoundError:
            raise StoreError("no lock file") from None

    # History

    @property
    def _history_path(self) -> Path:
        return self.directory / HISTORY_FILE

    def append_history(self, name: str, operation: str) -> None:
        """Record an operation on a snapshot."""
        try:
            entries = self.read_history()
        except (OSError, ValueError, KeyError, TypeError):
            entries = []
        entries.append(HistoryEntry(name, operation, datetime.now(timezone.utc)))
        payload = [
            {"name": e.name, "operation": e.operation, "timestamp": _format_time(e.timestamp)}
            for e in entries
        ]
        _write_private(self._history_path, json.dumps(payload, indent=2))

    def read_history(self) -> list[HistoryEntry]:
        """Return all recorded history entries, oldest first."""
        try:
            raw = self._history_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        return [
            HistoryEntry(
                name=item.get("name") or "",
                operation=item.get("operation") or "",
                timestamp=_parse_time(item["timestamp"]),
            )
            for item in json.loads(raw) or []
        ]

    def clear_history(self) -> None:
        """Remove all history entries."""
        with contextlib.suppress(FileNotFoundError):
            self._history_path.unlink()

    # Notes

    def _note_path(self, name: str) -> Path:
        return self.directory / f"{name}{_NOTE_SUFFIX}"

    def set_note(self, name: str, text: str) -> None:
        """Attach a note to an existing snapshot."""
        if not self.exists(name):
            raise NotFoundError(name)
        _write_private(self._note_path(name), json.dumps(text))

    def get_note(self, name: str) -> str:
        """Return the note on a snapshot."""
        if not self.exists(name):
            raise NotFoundError(name)
        try:
            raw = self._note_path(name).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NoteNotFoundError() from None
        return json.loads(raw)

    def clear_note(self, name: str) -> None:
        """Remove the note on a snapshot, if any."""
        with contextlib.suppress(FileNotFoundError):
            self._note_path(name).unlink()

    # Pinning

    @property
    def _pin_path(self) -> Path:
        return self.directory / PIN_FILE

    def pin(self, name: str) -> None:
        """Mark a snapshot as the pinned one."""
        if not self.exists(name):
            raise NotFoundError(name)
        _write_private(self._pin_path, json.dumps({"name": name}))

    def unpin(self) -> None:
        """Remove the pin marker."""
        try:
            self._pin_path.unlink()
        except FileNotFoundError:
            raise NotPinnedError() from None

    def pinned(self) -> str:
        """Return the name of the pinned snapshot."""
        try:
            raw = self._pin_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotPinnedError() from None
        return json.loads(raw).get("name") or ""

    # Expiry

    def _expire_path(self, name: str) -> Path:
        return self.directory / f"{name}{_EXPIRE_SUFFIX}"

    def set_expiry(self, name: str, duration: Union[timedelta, float]) -> Expiry:
        """Make a snapshot expire after a duration (a timedelta or seconds)."""
        if not self.exists(name):
            raise NotFoundError(name)
        if not isinstance(duration, timedelta):
            duration = timedelta(seconds=duration)
        expiry = Expiry(datetime.now(timezone.utc) + duration)
        payload = json.dumps({"expires_at": _format_time(expiry.expires_at)})
        _write_private(self._expire_path(name), payload)
        return expiry

    def get_expiry(self, name: str) -> Optional[Expiry]:
        """Return a snapshot's expiry, or None if it has none."""
        try:
            raw = self._expire_path(name).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        return Expiry(_parse_time(json.loads(raw)["expires_at"]))

    def clear_expiry(self, name: str) -> None:
        """Remove a snapshot's expiry, if any."""
        with contextlib.suppress(FileNotFoundError):
            self._expire_path(name).unlink()

    def prune_expired(self) -> list[str]:
        """Delete every snapshot whose expiry has passed; return their names."""
        pruned = []
        for name in self.list():
            try:
                expiry = self.get_expiry(name)
            except (OSError, ValueError, KeyError, TypeError):
                continue
            if expiry is None or not datetime.now(timezone.utc) > expiry.expires_at:
                continue
            try:
                self.delete(name)
            except (StoreError, OSError):
                continue
            with contextlib.suppress(OSError):
                self.clear_expiry(name)
            pruned.append(name)
        return pruned