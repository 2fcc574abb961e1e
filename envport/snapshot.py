"""Named sets of environment variables and their JSON file format."""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Union

PathLike = Union[str, "os.PathLike[str]"]

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
_TIME_PARTS = re.compile(r"^(.*T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(.*)$")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _format_time(moment: datetime) -> str:
    """Render an aware datetime as RFC 3339 in UTC with a trailing Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_time(text: str) -> datetime:
    """Parse an RFC 3339 timestamp, tolerating nanosecond precision."""
    text = text.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    match = _TIME_PARTS.match(text)
    if match:
        head, fraction, tail = match.groups()
        fraction = (fraction or "")[:6]
        text = head + ("." + fraction.ljust(6, "0") if fraction else "") + tail
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _write_private(path: PathLike, text: str) -> None:
    """Write text to a file readable and writable by the owner only."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(text)


@dataclass
class Snapshot:
    """A named set of environment variables."""

    name: str
    env: dict[str, str] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_now)
    tags: list[str] = field(default_factory=list)

    def _to_json(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "created_at": _format_time(self.created_at),
            "env": dict(self.env),
            "tags": list(self.tags),
        }

    @classmethod
    def _from_json(cls, data: dict[str, Any]) -> "Snapshot":
        if not isinstance(data, dict):
            raise ValueError("snapshot file does not hold a JSON object")
        created = data.get("created_at")
        return cls(
            name=data.get("name") or "",
            env=dict(data.get("env") or {}),
            created_at=_parse_time(created) if created else _ZERO_TIME,
            tags=list(data.get("tags") or []),
        )

    def save(self, path: PathLike) -> None:
        """Write the snapshot as indented JSON with owner-only permissions."""
        _write_private(path, json.dumps(self._to_json(), indent=2))

    def add_tag(self, tag: str) -> None:
        """Add a tag unless it is already present."""
        if tag not in self.tags:
            self.tags.append(tag)

    def remove_tag(self, tag: str) -> None:
        """Remove every occurrence of a tag."""
        self.tags = [t for t in self.tags if t != tag]

    def clone(self, name: str) -> "Snapshot":
        """Return an independent copy under a new name."""
        return Snapshot(name=name, env=dict(self.env), tags=list(self.tags))


def load(path: PathLike) -> Snapshot:
    """Read a snapshot from a JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return Snapshot._from_json(data)


def from_environ(environ: Iterable[str]) -> dict[str, str]:
    """Turn "KEY=VALUE" strings into a mapping; entries without "=" are skipped."""
    env: dict[str, str] = {}
    for entry in environ:
        key, sep, value = entry.partition("=")
        if sep:
            env[key] = value
    return env