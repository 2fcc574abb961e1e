"""Commands that copy, inspect, edit, import and export snapshots."""

from __future__ import annotations

import dataclasses
import os
import subprocess
import sys
import tempfile
from datetime import timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence, TextIO

from . import envfmt
from .manager import Manager
from .snapshot import Snapshot
from .store import StoreError

_FAILURES = (StoreError, OSError, ValueError)


class CommandError(Exception):
    """A command failed; the message is meant for the user."""


def _output(out: Optional[TextIO]) -> TextIO:
    return sys.stdout if out is None else out


def _table(rows: Iterable[Sequence[str]], padding: int = 2) -> list[str]:
    """Align all but the last cell of each row into padded columns."""
    rows = [list(row) for row in rows]
    widths: list[int] = []
    for row in rows:
        for index, cell in enumerate(row[:-1]):
            if index == len(widths):
                widths.append(0)
            widths[index] = max(widths[index], len(cell))
    lines = []
    for row in rows:
        cells = [cell.ljust(widths[i] + padding) for i, cell in enumerate(row[:-1])]
        lines.append("".join(cells) + (row[-1] if row else ""))
    return lines


def clone_command(
    manager: Manager,
    src: str,
    dst: str,
    overwrite: bool = False,
    out: Optional[TextIO] = None,
) -> None:
    """Clone a snapshot to a new name."""
    try:
        manager.clone(src, dst, overwrite)
    except _FAILURES as exc:
        raise CommandError(str(exc)) from exc
    print(f"cloned {envfmt.quote(src)} → {envfmt.quote(dst)}", file=_output(out))


def copy_command(
    manager: Manager,
    src: str,
    dst: str,
    overwrite: bool = False,
    out: Optional[TextIO] = None,
) -> None:
    """Copy a snapshot to a new name."""
    try:
        snapshot = manager.load(src)
    except _FAILURES as exc:
        raise CommandError(f"copy: load {envfmt.quote(src)}: {exc}") from exc
    try:
        names = manager.list()
    except _FAILURES as exc:
        raise CommandError(f"copy: list snapshots: {exc}") from exc
    if not overwrite and dst in names:
        raise CommandError(
            f"copy: {envfmt.quote(dst)} already exists (use --overwrite to replace)"
        )
    try:
        manager.save(dst, snapshot)
    except _FAILURES as exc:
        raise CommandError(f"copy: save {envfmt.quote(dst)}: {exc}") from exc
    print(f"Copied {envfmt.quote(src)} → {envfmt.quote(dst)}", file=_output(out))


def _read_word(stream: TextIO) -> str:
    """Return the first whitespace-separated word in the stream, or ""."""
    for line in stream:
        words = line.split()
        if words:
            return words[0]
    return ""


def delete_command(
    manager: Manager,
    name: str,
    force: bool = False,
    out: Optional[TextIO] = None,
    stdin: Optional[TextIO] = None,
) -> bool:
    """Delete a snapshot, asking first unless forced; return whether it was deleted."""
    out = _output(out)
    if not force:
        out.write(f"Delete snapshot {envfmt.quote(name)}? [y/N]: ")
        out.flush()
        answer = _read_word(sys.stdin if stdin is None else stdin)
        if answer not in ("y", "Y"):
            print("Aborted.", file=out)
            return False
    try:
        manager.delete(name)
    except _FAILURES as exc:
        raise CommandError(f"delete: {exc}") from exc
    print(f"Deleted snapshot {envfmt.quote(name)}", file=out)
    return True


def diff_command(
    manager: Manager, first: str, second: str, out: Optional[TextIO] = None
) -> None:
    """Show the differences between two snapshots."""
    snapshots = []
    for name in (first, second):
        try:
            snapshots.append(manager.load(name))
        except _FAILURES as exc:
            raise CommandError(f"loading {envfmt.quote(name)}: {exc}") from exc
    out = _output(out)
    lines = envfmt.diff_lines(snapshots[0].env, snapshots[1].env)
    for line in lines:
        print(line, file=out)
    if not lines:
        print("no differences", file=out)


def edit_command(
    manager: Manager,
    name: str,
    out: Optional[TextIO] = None,
    editor: Optional[str] = None,
) -> None:
    """Open a snapshot as a dotenv file in an editor and save the result."""
    try:
        snapshot = manager.load(name)
    except _FAILURES as exc:
        raise CommandError(f"snapshot {envfmt.quote(name)} not found") from exc

    try:
        handle = tempfile.NamedTemporaryFile(
            "w", prefix="envport-edit-", suffix=".env", delete=False, encoding="utf-8"
        )
    except OSError as exc:
        raise CommandError(f"failed to create temp file: {exc}") from exc
    path = Path(handle.name)
    try:
        with handle:
            for key, value in snapshot.env.items():
                handle.write(f"{key}={value}\n")

        program = editor or os.environ.get("EDITOR") or "vi"
        try:
            completed = subprocess.run([program, str(path)], check=False)
        except OSError as exc:
            raise CommandError(f"editor exited with error: {exc}") from exc
        if completed.returncode != 0:
            raise CommandError(
                f"editor exited with error: exit status {completed.returncode}"
            )

        try:
            updated = envfmt.parse_env(path.read_text(encoding="utf-8"), "dotenv")
        except (OSError, ValueError) as exc:
            raise CommandError(f"failed to parse edited file: {exc}") from exc
    finally:
        path.unlink(missing_ok=True)

    try:
        manager.save(name, dataclasses.replace(snapshot, env=updated))
    except _FAILURES as exc:
        raise CommandError(f"failed to save snapshot: {exc}") from exc
    print(f"snapshot {envfmt.quote(name)} updated", file=_output(out))


def export_command(
    manager: Manager, name: str, fmt: str = "shell", out: Optional[TextIO] = None
) -> None:
    """Print a snapshot as shell export statements or dotenv lines."""
    try:
        snapshot = manager.load(name)
    except _FAILURES as exc:
        raise CommandError(f"snapshot {envfmt.quote(name)} not found") from exc
    out = _output(out)
    for line in envfmt.export_lines(snapshot.env, fmt):
        print(line, file=out)


def history_command(
    manager: Manager, clear: bool = False, out: Optional[TextIO] = None
) -> None:
    """Show, or clear, the operation history."""
    out = _output(out)
    if clear:
        try:
            manager.clear_history()
        except _FAILURES as exc:
            raise CommandError(f"clear history: {exc}") from exc
        print("History cleared.", file=out)
        return
    try:
        entries = manager.history()
    except (*_FAILURES, KeyError, TypeError) as exc:
        raise CommandError(f"read history: {exc}") from exc
    if not entries:
        print("No history recorded.", file=out)
        return
    rows = [("TIMESTAMP", "OPERATION", "NAME")]
    rows.extend(
        (
            entry.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            entry.operation,
            entry.name,
        )
        for entry in entries
    )
    for line in _table(rows):
        print(line, file=out)


def import_command(
    manager: Manager,
    name: str,
    source: Optional[str] = None,
    fmt: str = "dotenv",
    overwrite: bool = False,
    out: Optional[TextIO] = None,
) -> Snapshot:
    """Create a snapshot from a dotenv or shell-export file ("-" or None for stdin)."""
    if not overwrite:
        try:
            names = manager.list()
        except _FAILURES as exc:
            raise CommandError(str(exc)) from exc
        if name in names:
            raise CommandError(
                f"snapshot {envfmt.quote(name)} already exists; use --overwrite to replace"
            )
    try:
        if source in (None, "", "-"):
            raw = sys.stdin.read()
        else:
            raw = Path(source).read_text(encoding="utf-8")
    except OSError as exc:
        raise CommandError(f"reading input: {exc}") from exc
    try:
        env = envfmt.parse_env(raw, fmt)
    except ValueError as exc:
        raise CommandError(str(exc)) from exc
    snapshot = Snapshot(name=name, env=env)
    try:
        manager.save(name, snapshot)
    except _FAILURES as exc:
        raise CommandError(str(exc)) from exc
    print(
        f"Imported {len(env)} variables into snapshot {envfmt.quote(name)}",
        file=_output(out),
    )
    return snapshot


def list_command(manager: Manager, out: Optional[TextIO] = None) -> None:
    """Print the names of all saved snapshots."""
    try:
        names = manager.list()
    except _FAILURES as exc:
        raise CommandError(f"list: {exc}") from exc
    out = _output(out)
    if not names:
        print("No snapshots saved.", file=out)
        return
    for line in ["NAME", *names]:
        print(line, file=out)


def load_command(
    manager: Manager, name: str, shell: str = "bash", out: Optional[TextIO] = None
) -> None:
    """Print statements that set a snapshot's variables in bash or fish."""
    try:
        snapshot = manager.load(name)
    except _FAILURES as exc:
        raise CommandError(f"load: {exc}") from exc
    out = _output(out)
    for key in sorted(snapshot.env):
        print(envfmt.export_statement(shell, key, snapshot.env[key]), file=out)