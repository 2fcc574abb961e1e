# envport

envport saves the environment variables of your shell under a name so you
can restore them later. You can also compare saved sets or export them in
another format.

Snapshots are JSON files in `~/.envport`, one file per snapshot
(`<name>.json`). Only your user can read or write them. Notes are kept next
to them as `<name>.note.json`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Usage

Run `envport` with no command to print the help.

Save the current environment:

```
envport save work
```

List what you have saved (`ls` is an alias):

```
envport list
```

Print statements that restore a snapshot, then evaluate them. The statements
come out sorted by key, with values double-quoted and escaped:

```
eval "$(envport load work)"
envport load work --shell fish | source
```

Export a snapshot. The default output is `export KEY="value"` statements;
`--format dotenv` gives plain `KEY=value` lines:

```
envport export work --format dotenv > work.env
```

Import a dotenv or shell-export file as a new snapshot. Input is read from
stdin when `--file` is missing or `-`. Blank lines, `#` comments and lines
without `=` are skipped, and surrounding double quotes are stripped from
values. An import that finds no variables fails:

```
envport import staging --file work.env
envport import staging --file exports.sh --format shell --overwrite
```

Compare two snapshots. A line starting with `-` is a variable only in the
first snapshot, `+` a variable only in the second, and `~` a changed value:

```
envport diff work staging
```

Copy, clone, rename or delete snapshots. `delete` (alias `rm`) asks for
confirmation unless you give `--force`. `clone` also copies the tags and
gives the copy a fresh creation time:

```
envport copy work work-backup
envport clone work work-2 --overwrite
envport rename work-backup archive
envport delete archive --force
```

Merge the variables of one snapshot into another. Keys that already exist
in the destination are kept unless you give `--overwrite`:

```
envport merge extras work --overwrite
```

Find snapshots by key or by `KEY=VALUE`. Terms are combined with OR; with
`--all` they are combined with AND:

```
envport search DEBUG PORT=8080
envport search --all DEBUG PORT
```

Open a snapshot as a dotenv file in `$EDITOR` (or `vi` if it is unset) and
save what you write back:

```
envport edit work
```

Attach notes and tags, view or clear the history, and inspect or remove the
store lock:

```
envport note work "settings for the staging cluster"
envport note work
envport note work --clear
envport tag work production
envport tag --remove work production
envport history
envport history --clear
envport lock
envport lock --unlock
```

If a command fails, envport prints `Error: ...` to stderr and exits with
status 1. A usage error exits with status 2.

## Library use

- `envport.snapshot`: `Snapshot` (name, env, created_at, tags; `save`,
  `add_tag`, `remove_tag`, `clone`), `load(path)` and
  `from_environ(environ)`.
- `envport.store`: `Store` handles the directory itself. It lists and
  deletes snapshots and holds an exclusive lock (`lock()` is a context
  manager; see also `locked` and `force_unlock`). It also keeps the
  history, notes, the pin (`pin`, `unpin`, `pinned`) and expiry
  (`set_expiry`, `get_expiry`, `clear_expiry`, `prune_expired`).
  `default_store()` returns the store in `~/.envport`.
- `envport.manager`: `Manager` saves, loads, renames, copies, clones,
  merges (`MergeStrategy`, `MergeResult`) and searches (`SearchOptions`)
  snapshots held in a `Store`.
- `envport.envfmt`: helpers that parse dotenv and shell input and render
  exports, diffs and queries.
- `envport.commands`, `envport.meta_commands` and `envport.cli`: the
  command functions and the argument parser. Call `cli.run(manager, argv)`
  to run a command against any store.

## Limitations

- Pinning and expiry are available only through `Store`. No command sets
  or shows a pin or an expiry, and no command prunes expired snapshots.
- The commands never write to the history. `envport history` shows only
  entries recorded through `Store.append_history`.
- The commands do not take the store lock. `envport lock` only reports a
  lock held through `Store.lock()`, or removes a stale one.
- Tags can be added and removed, but no command lists them.