"""Commands for locking, merging, notes, renaming, saving, searching and tagging."""

from __future__ import annotations

import os
import sys
from typing import Iterable, Optional, Sequence, TextIO

from . import envfmt
from .commands import CommandError
from .manager import Manager, MergeResult, MergeStrategy, SearchOptions
from .snapshot import Snapshot
from .store import NoteNotFoundError, NotFoundError, StoreError

_FAILURES = (StoreError, OSError, ValueError)


def _output(out: Optional[TextIO]) -> TextIO:
    return sys.stdout if out is None else out


def lock_command(
    manager: Manager, unlock: bool = False, out: Optional[TextIO] = None
) -> bool:
    """Report whether the store is locked, or remove a stale lock.

    Returns whether the store is locked after the command.
    """
    out = _output(out)
    if unlock:
        try:
            manager.force_unlock()
        except _FAILURES as exc:
            raise CommandError(f"unlock: {exc}") from exc
        print("lock released", file=out)
        return False
    try:
        locked = manager.is_locked()
    except _FAILURES as exc:
        raise CommandError(str(exc)) from exc
    print("store is locked" if locked else "store is not locked", file=out)
    return locked


def merge_command(
    manager: Manager,
    src: str,
    dst: str,
    overwrite: bool = False,
    out: Optional[TextIO] = None,
) -> MergeResult:
    """Merge the variables of src into dst, skipping or overwriting clashes."""
    strategy = MergeStrategy.OVERWRITE if overwrite else MergeStrategy.SKIP
    try:
        result = manager.merge(src, dst, strategy)
    except NotFoundError as exc:
        raise CommandError("snapshot not found") from exc
    except _FAILURES as exc:
        raise CommandError(str(exc)) from exc
    mode = "overwriting" if overwrite else "skipping"
    print(
        f"Merged {envfmt.quote(src)} into {envfmt.quote(dst)} ({mode} conflicts)",
        file=_output(out),
    )
    return result


def note_command(
    manager: Manager,
    name: str,
    text: Optional[str] = None,
    clear: bool = False,
    out: Optional[TextIO] = None,
) -> Optional[str]:
    """Clear, set or print the note on a snapshot; return the note read, if any."""
    try:
        if clear:
            manager.clear_note(name)
            return None
        if text is not None:
            manager.set_note(name, text)
            return None
        try:
            note = manager.get_note(name)
        except NoteNotFoundError:
            print("(no note)", file=_output(out))
            return None
    except _FAILURES as exc:
        raise CommandError(str(exc)) from exc
    print(note, file=_output(out))
    return note


def rename_command(
    manager: Manager, old_name: str, new_name: str, out: Optional[TextIO] = None
) -> None:
    """Rename a saved snapshot."""
    try:
        manager.rename(old_name, new_name)
    except _FAILURES as exc:
        raise CommandError(f"rename: {exc}") from exc
    print(
        f"Renamed {envfmt.quote(old_name)} to {envfmt.quote(new_name)}",
        file=_output(out),
    )


def save_command(
    manager: Manager,
    name: str,
    out: Optional[TextIO] = None,
    environ: Optional[Iterable[str]] = None,
) -> Snapshot:
    """Save "KEY=VALUE" strings (the process environment by default) as a snapshot."""
    if environ is None:
        environ = [f"{key}={value}" for key, value in os.environ.items()]
    try:
        snapshot = manager.save_environ(name, environ)
    except _FAILURES as exc:
        raise CommandError(f"save: {exc}") from exc
    print(
        f"Saved snapshot {envfmt.quote(name)} ({len(snapshot.env)} vars)",
        file=_output(out),
    )
    return snapshot


def search_command(
    manager: Manager,
    terms: Sequence[str],
    match_all: bool = False,
    out: Optional[TextIO] = None,
) -> list[str]:
    """Print the snapshots matching "KEY" or "KEY=VALUE" terms (OR, or AND with match_all)."""
    terms = list(terms)
    if not terms:
        raise CommandError("search: at least one term is required")
    try:
        names = manager.search(SearchOptions(terms=terms, match_all=match_all))
    except _FAILURES as exc:
        raise CommandError(str(exc)) from exc
    out = _output(out)
    for name in names:
        print(name, file=out)
    return names


def tag_command(
    manager: Manager,
    name: str,
    tag: str,
    remove: bool = False,
    out: Optional[TextIO] = None,
) -> Snapshot:
    """Add a tag to a snapshot, or remove it."""
    try:
        snapshot = manager.load(name)
    except _FAILURES as exc:
        raise CommandError(f"snapshot {envfmt.quote(name)} not found") from exc
    out = _output(out)
    if remove:
        snapshot.remove_tag(tag)
        print(f"removed tag {envfmt.quote(tag)} from {envfmt.quote(name)}", file=out)
    else:
        snapshot.add_tag(tag)
        print(f"tagged {envfmt.quote(name)} with {envfmt.quote(tag)}", file=out)
    try:
        manager.save(name, snapshot)
    except _FAILURES as exc:
        raise CommandError(f"failed to save snapshot: {exc}") from exc
    return snapshot