"""Command-line entry point: argument parsing and dispatch to the commands."""

from __future__ import annotations

import argparse
import sys
from typing import Callable, Optional, Sequence, TextIO

from . import commands, meta_commands
from .commands import CommandError
from .manager import Manager
from .store import StoreError, default_store

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

_Handler = Callable[[Manager, argparse.Namespace, TextIO, Optional[TextIO]], object]


def _command(
    sub: "argparse._SubParsersAction[argparse.ArgumentParser]",
    name: str,
    help_text: str,
    handler: _Handler,
    aliases: Sequence[str] = (),
) -> argparse.ArgumentParser:
    parser = sub.add_parser(name, help=help_text, description=help_text, aliases=list(aliases))
    parser.set_defaults(handler=handler)
    return parser


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with every subcommand."""
    parser = argparse.ArgumentParser(
        prog="envport", description="Snapshot and restore environment variable sets"
    )
    sub = parser.add_subparsers(dest="command", metavar="<command>")

    p = _command(
        sub,
        "save",
        "Snapshot current environment variables and save under <name>",
        lambda m, a, out, _in: meta_commands.save_command(m, a.name, out),
    )
    p.add_argument("name")

    p = _command(
        sub,
        "load",
        "Print shell export statements for a saved snapshot",
        lambda m, a, out, _in: commands.load_command(m, a.name, a.shell, out),
    )
    p.add_argument("name")
    p.add_argument("--shell", default="bash", help="Shell format: bash, fish")

    _command(
        sub,
        "list",
        "List all saved snapshots",
        lambda m, a, out, _in: commands.list_command(m, out),
        aliases=["ls"],
    )

    p = _command(
        sub,
        "delete",
        "Delete a saved snapshot",
        lambda m, a, out, stdin: commands.delete_command(m, a.name, a.force, out, stdin),
        aliases=["rm"],
    )
    p.add_argument("name")
    p.add_argument("-f", "--force", action="store_true", help="Skip confirmation prompt")

    p = _command(
        sub,
        "rename",
        "Rename a saved snapshot",
        lambda m, a, out, _in: meta_commands.rename_command(m, a.old, a.new, out),
    )
    p.add_argument("old")
    p.add_argument("new")

    p = _command(
        sub,
        "copy",
        "Copy a snapshot to a new name",
        lambda m, a, out, _in: commands.copy_command(m, a.src, a.dst, a.overwrite, out),
    )
    p.add_argument("src")
    p.add_argument("dst")
    p.add_argument("--overwrite", action="store_true", help="Overwrite destination if it exists")

    p = _command(
        sub,
        "clone",
        "Clone a snapshot to a new name",
        lambda m, a, out, _in: commands.clone_command(m, a.src, a.dst, a.overwrite, out),
    )
    p.add_argument("src")
    p.add_argument("dst")
    p.add_argument("--overwrite", action="store_true", help="overwrite destination if it exists")

    p = _command(
        sub,
        "export",
        "Export a snapshot as shell export statements or dotenv format",
        lambda m, a, out, _in: commands.export_command(m, a.name, a.format, out),
    )
    p.add_argument("name")
    p.add_argument("-f", "--format", default="shell", help="Output format: shell or dotenv")

    p = _command(
        sub,
        "diff",
        "Show differences between two snapshots",
        lambda m, a, out, _in: commands.diff_command(m, a.snapshot1, a.snapshot2, out),
    )
    p.add_argument("snapshot1")
    p.add_argument("snapshot2")

    p = _command(
        sub,
        "import",
        "Import a snapshot from a dotenv or shell export file",
        lambda m, a, out, _in: commands.import_command(
            m, a.name, a.file, a.format, a.overwrite, out
        ),
    )
    p.add_argument("name")
    p.add_argument("-f", "--format", default="dotenv", help="Input format: dotenv or shell")
    p.add_argument("--overwrite", action="store_true", help="Overwrite existing snapshot")
    p.add_argument("--file", default="-", help="Input file path (default: stdin)")

    p = _command(
        sub,
        "edit",
        "Open a snapshot in your default editor",
        lambda m, a, out, _in: commands.edit_command(m, a.name, out),
    )
    p.add_argument("name")

    p = _command(
        sub,
        "history",
        "Show operation history for snapshots",
        lambda m, a, out, _in: commands.history_command(m, a.clear, out),
    )
    p.add_argument("--clear", action="store_true", help="Clear all history entries")

    p = _command(
        sub,
        "lock",
        "Show or release the store lock",
        lambda m, a, out, _in: meta_commands.lock_command(m, a.unlock, out),
    )
    p.add_argument("-u", "--unlock", action="store_true", help="forcibly remove a stale lock")

    p = _command(
        sub,
        "merge",
        "Merge variables from src snapshot into dst snapshot",
        lambda m, a, out, _in: meta_commands.merge_command(m, a.src, a.dst, a.overwrite, out),
    )
    p.add_argument("src")
    p.add_argument("dst")
    p.add_argument(
        "-o",
        "--overwrite",
        action="store_true",
        help="overwrite existing keys in dst with values from src",
    )

    p = _command(
        sub,
        "note",
        "Get or set a note on a snapshot",
        lambda m, a, out, _in: meta_commands.note_command(m, a.name, a.text, a.clear, out),
    )
    p.add_argument("name")
    p.add_argument("text", nargs="?")
    p.add_argument("--clear", action="store_true", help="Remove the note from the snapshot")

    p = _command(
        sub,
        "search",
        "Search snapshots by environment variable key or key=value",
        lambda m, a, out, _in: meta_commands.search_command(m, a.terms, a.all, out),
    )
    p.add_argument("terms", nargs="+", metavar="term")
    p.add_argument(
        "-a", "--all", action="store_true", help="require all terms to match (AND); default is OR"
    )

    p = _command(
        sub,
        "tag",
        "Add or remove a tag on a snapshot",
        lambda m, a, out, _in: meta_commands.tag_command(m, a.snapshot, a.tag, a.remove, out),
    )
    p.add_argument("snapshot")
    p.add_argument("tag")
    p.add_argument(
        "-r", "--remove", action="store_true", help="remove the tag instead of adding it"
    )

    return parser


def run(
    manager: Manager,
    argv: Optional[Sequence[str]] = None,
    out: Optional[TextIO] = None,
    stdin: Optional[TextIO] = None,
) -> int:
    """Parse arguments, run the chosen command and return an exit status."""
    out = sys.stdout if out is None else out
    parser = build_parser()
    try:
        args = parser.parse_args(None if argv is None else list(argv))
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_USAGE
    if args.command is None:
        parser.print_help(out)
        return EXIT_OK
    try:
        args.handler(manager, args, out, stdin)
    except (CommandError, StoreError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run against the store in the user's home directory."""
    return run(Manager(default_store()), argv)


if __name__ == "__main__":
    sys.exit(main())