"""Slash-command and simple natural-language command parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass

COMMANDS = ("new", "list", "done", "delete", "help", "stats", "edit")
UNKNOWN = "unknown"

_SLASH_COMMAND = re.compile(r"^/(new|list|done|delete|help|stats|edit)\b\s*(.*)$", re.IGNORECASE | re.DOTALL)
_ANY_SLASH = re.compile(r"^/(\w+)")
_STATS_PHRASES = re.compile(r"thống kê|bao nhiêu|chưa xong", re.IGNORECASE)
_LIST_PHRASES = re.compile(r"^(danh sách|xem task|liệt kê)\b", re.IGNORECASE)

# /new <content> [@YYYY-MM-DD] [@HH:mm]
_DATE_ARG = re.compile(r"@(\d{4}-\d{2}-\d{2})\b")
_TIME_ARG = re.compile(r"@(\d{2}:\d{2})\b")


@dataclass(frozen=True)
class ParsedCommand:
    """A command name and its raw argument string."""

    cmd: str
    args: str = ""


@dataclass(frozen=True)
class NewTaskArgs:
    """The content of a ``/new`` command with its explicit date and time."""

    content: str
    date: str | None = None
    time: str | None = None


def parse_command(text: str) -> ParsedCommand:
    """Parse ``text`` into a command; anything unrecognised is a new task.

    Args:
        text: The raw utterance.

    Returns:
        The slash command with its arguments, ``unknown`` (with the command
        word as ``args``) for any other slash command, ``stats``/``list`` for
        a few fixed Vietnamese phrases, else ``new`` with the whole text.
    """
    stripped = text.strip()
    match = _SLASH_COMMAND.match(stripped)
    if match:
        return ParsedCommand(cmd=match.group(1).lower(), args=match.group(2).strip())
    other = _ANY_SLASH.match(stripped)
    if other:
        return ParsedCommand(cmd=UNKNOWN, args=other.group(1))
    if _STATS_PHRASES.search(stripped):
        return ParsedCommand(cmd="stats")
    if _LIST_PHRASES.search(stripped):
        return ParsedCommand(cmd="list")
    return ParsedCommand(cmd="new", args=stripped)


def parse_new_args(args: str) -> NewTaskArgs:
    """Split ``/new`` arguments into content and optional ``@date``/``@time`` tokens."""
    date_match = _DATE_ARG.search(args)
    time_match = _TIME_ARG.search(args)
    content = _TIME_ARG.sub(" ", _DATE_ARG.sub(" ", args))
    return NewTaskArgs(
        content=" ".join(content.split()),
        date=date_match.group(1) if date_match else None,
        time=time_match.group(1) if time_match else None,
    )


def strip_new_command(text: str) -> str:
    """Drop a leading ``/new`` so only the task text is extracted."""
    match = _SLASH_COMMAND.match(text.strip())
    if match and match.group(1).lower() == "new" and match.group(2).strip():
        return match.group(2).strip()
    return text
