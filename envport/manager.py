"""Snapshot operations layered over a Store."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from typing import Iterable

from . import envfmt
from .snapshot import Snapshot, from_environ
from .snapshot import load as load_snapshot
from .store import HistoryEntry, NotFoundError, Store, StoreError


class MergeStrategy(enum.Enum):
    """How a merge resolves keys present in both snapshots."""

    SKIP = "skip"
    OVERWRITE = "overwrite"


@dataclass
class MergeResult:
    """Keys touched by a merge, each list sorted."""

    added: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    overwritten: list[str] = field(default_factory=list)


@dataclass
class SearchOptions:
    """Terms are "KEY" or "KEY=VALUE"; match_all asks for AND instead of OR."""

    terms: list[str] = field(default_factory=list)
    match_all: bool = False


class Manager:
    """Saves, loads and transforms snapshots held in a Store."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def save(self, name: str, snapshot: Snapshot) -> None:
        """Persist a snapshot under a name, creating the store if needed."""
        self.store.init()
        dataclasses.replace(snapshot, name=name).save(self.store.path(name))

    def save_environ(self, name: str, environ: Iterable[str]) -> Snapshot:
        """Capture "KEY=VALUE" strings into a named snapshot and persist it."""
        snapshot = Snapshot(name=name, env=from_environ(environ))
        self.save(name, snapshot)
        return snapshot

    def load(self, name: str) -> Snapshot:
        """Read a named snapshot."""
        if not self.store.exists(name):
            raise NotFoundError(name)
        return load_snapshot(self.store.path(name))

    def list(self) -> list[str]:
        """Return the names of all stored snapshots."""
        return self.store.list()

    def delete(self, name: str) -> None:
        """Remove a named snapshot."""
        self.store.delete(name)

    def rename(self, old_name: str, new_name: str) -> None:
        """Move a snapshot to a new name; the new name must be free."""
        if not self.store.exists(old_name):
            raise NotFoundError(old_name)
        if self.store.exists(new_name):
            raise StoreError(f'snapshot "{new_name}" already exists')
        snapshot = load_snapshot(self.store.path(old_name))
        dataclasses.replace(snapshot, name=new_name).save(self.store.path(new_name))
        self.store.delete(old_name)

    def copy(self, src: str, dst: str, overwrite: bool = False) -> None:
        """Save the source snapshot again under the destination name."""
        snapshot = self.load(src)
        if not overwrite and dst in self.list():
            raise StoreError(f'copy: "{dst}" already exists (use --overwrite to replace)')
        self.save(dst, snapshot)

    def clone(self, src: str, dst: str, overwrite: bool = False) -> None:
        """Duplicate a snapshot, tags included, as a fresh snapshot."""
        snapshot = self.load(src)
        if self.store.exists(dst) and not overwrite:
            raise StoreError(
                f'clone: destination "{dst}" already exists (use --overwrite to replace)'
            )
        self.save(dst, snapshot.clone(dst))

    def merge(
        self, src: str, dst: str, strategy: MergeStrategy = MergeStrategy.SKIP
    ) -> MergeResult:
        """Copy the variables of src into dst, resolving clashes by strategy."""
        target = self.load(dst)
        source = self.load(src)
        result = MergeResult()
        for key in sorted(source.env):
            if key not in target.env:
                result.added.append(key)
            elif strategy is MergeStrategy.SKIP:
                result.skipped.append(key)
                continue
            else:
                result.overwritten.append(key)
            target.env[key] = source.env[key]
        self.save(dst, target)
        return result

    def search(self, options: SearchOptions) -> list[str]:
        """Return the names of snapshots whose variables satisfy the options."""
        results = []
        for name in self.list():
            try:
                snapshot = self.load(name)
            except (StoreError, OSError, ValueError):
                continue
            if envfmt.matches_query(snapshot.env, options.terms, options.match_all):
                results.append(name)
        return results

    def history(self) -> list[HistoryEntry]:
        """Return the recorded operation history."""
        return self.store.read_history()

    def clear_history(self) -> None:
        """Remove all history entries."""
        self.store.clear_history()

    def set_note(self, name: str, text: str) -> None:
        """Attach a note to a snapshot."""
        self.store.set_note(name, text)

    def get_note(self, name: str) -> str:
        """Return the note on a snapshot."""
        return self.store.get_note(name)

    def clear_note(self, name: str) -> None:
        """Remove the note on a snapshot."""
        self.store.clear_note(name)

    def is_locked(self) -> bool:
        """Report whether the store is locked."""
        return self.store.locked()

    def force_unlock(self) -> None:
        """Remove a stale store lock."""
        self.store.force_unlock()