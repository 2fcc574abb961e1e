"""Text formats for environment variables: dotenv and shell input, exports, diffs, queries."""

from __future__ import annotations

from typing import Iterable, Mapping

_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def _escape(ch: str) -> str:
    escaped = _ESCAPES.get(ch)
    if escaped is not None:
        return escaped
    code = ord(ch)
    if 0xDC80 <= code <= 0xDCFF:
        # undecodable byte carried through surrogateescape
        return f"\\x{code - 0xDC00:02x}"
    if ch == " " or ch.isprintable():
        return ch
    if code < 0x20 or code == 0x7F:
        return f"\\x{code:02x}"
    if 0xD800 <= code <= 0xDFFF:
        return "\\ufffd"
    if code < 0x10000:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def quote(value: str) -> str:
    """Return a double-quoted literal with backslash escapes for special characters."""
    return '"' + "".join(_escape(ch) for ch in value) + '"'


def parse_env(raw: str, fmt: str = "dotenv") -> dict[str, str]:
    """Parse dotenv or shell-export text into a mapping.

    Blank lines and "#" comments are skipped, as are lines without "=".
    Raises ValueError when no variable is found.
    """
    env: dict[str, str] = {}
    for line in raw.split("\n"):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if fmt == "shell" and line.startswith("export "):
            line = line[len("export "):]
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if key:
            env[key] = value.strip().strip('"')
    if not env:
        raise ValueError("no valid environment variables found in input")
    return env


def diff_lines(old: Mapping[str, str], new: Mapping[str, str]) -> list[str]:
    """Describe the changes from one mapping to another, one line per key, sorted."""
    lines = []
    for key in sorted(set(old) | set(new)):
        if key in old and key not in new:
            lines.append(f"- {key}={old[key]}")
        elif key not in old:
            lines.append(f"+ {key}={new[key]}")
        elif old[key] != new[key]:
            lines.append(f"~ {key}: {old[key]} -> {new[key]}")
    return lines


def export_lines(env: Mapping[str, str], fmt: str = "shell") -> list[str]:
    """Render a mapping as sorted dotenv lines or shell export statements."""
    dotenv = fmt.lower() == "dotenv"
    return [
        f"{key}={env[key]}" if dotenv else f"export {key}={quote(env[key])}"
        for key in sorted(env)
    ]


def export_statement(shell: str, key: str, value: str) -> str:
    """Return one statement setting a variable in the given shell (bash or fish)."""
    if shell == "fish":
        return f"set -x {key} {quote(value)}"
    return f"export {key}={quote(value)}"


def eval_term(env: Mapping[str, str], term: str) -> bool:
    """Check one "KEY" or "KEY=VALUE" term against a mapping."""
    key, sep, value = term.partition("=")
    if sep:
        return key in env and env[key] == value
    return term in env


def matches_query(env: Mapping[str, str], terms: Iterable[str], match_all: bool = False) -> bool:
    """Combine terms with AND when match_all is set, otherwise with OR."""
    results = (eval_term(env, term) for term in terms)
    return all(results) if match_all else any(results)