"""Bilingual (Vietnamese/English) pattern library for task and meeting extraction.

Pure data plus pure helpers. Pattern order inside every list is significant:
the first match wins wherever a list is scanned.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

PATTERN_VERSION = "2.1.0"

# Upper/lower-case ranges covering Vietnamese letters with diacritics
_UPPER = "A-ZÀ-Ỹ"
_LOWER = "a-zà-ỹ"


@dataclass(frozen=True)
class ActionPattern:
    """A structural pattern: action verb, subject, connector, trailing token.

    ``slot`` names the draft field the trailing ``value`` group fills, or
    ``None`` when the pattern only yields a title.
    """

    pattern: re.Pattern[str]
    slot: str | None = None


@dataclass(frozen=True)
class SentenceTemplate:
    """A whole-sentence template mapping its tail to one draft field."""

    pattern: re.Pattern[str]
    slot: str  # "time", "attendees" or "location"
    confidence: float


MEETING_PATTERNS: list[ActionPattern] = [
    ActionPattern(
        re.compile(
            r"^(?P<verb>họp|meeting|gặp|call|gọi)\s+(?P<subject>.+?)\s+(lúc|vào|at)\s+"
            r"(?P<value>\d{1,2}[:\.h]?\d{0,2}(?:\s*(?:am|pm|h|giờ))?)",
            re.IGNORECASE,
        ),
        "time",
    ),
    ActionPattern(
        re.compile(r"^(?P<verb>cuộc họp|meeting)\s+(?P<subject>.+?)\s+(ngày|on)\s+(?P<value>.+)", re.IGNORECASE),
        "date",
    ),
    ActionPattern(
        re.compile(r"^(?P<verb>gặp|meet)\s+(?P<subject>.+?)\s+(tại|at)\s+(?P<value>.+)", re.IGNORECASE),
        "location",
    ),
]

TASK_PATTERNS: list[ActionPattern] = [
    ActionPattern(
        re.compile(
            r"^(?P<verb>làm|hoàn thành|complete|finish|submit|nộp)\s+(?P<subject>.+?)"
            r"(?:\s+(trước|by|deadline)\s+(?P<value>.+))?$",
            re.IGNORECASE,
        ),
        "date",
    ),
    ActionPattern(re.compile(r"^(?P<verb>nhắc|remind|reminder)\s+(?P<subject>.+)", re.IGNORECASE)),
    ActionPattern(re.compile(r"^(?P<verb>cần|need to|phải)\s+(?P<subject>.+)", re.IGNORECASE)),
]

TIME_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(\d{1,2})[:\.h](\d{2})(?:\s*(?:am|pm|h|giờ))?\b", re.IGNORECASE),
    re.compile(r"\b(\d{1,2})\s*(?:h|giờ|am|pm)\b", re.IGNORECASE),
    re.compile(r"\b(sáng|chiều|tối|morning|afternoon|evening)\b", re.IGNORECASE),
]

DATE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(hôm nay|today|ngày mai|tomorrow|tuần sau|next week)\b", re.IGNORECASE),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    re.compile(r"\b(\d{1,2})[/\-](\d{1,2})(?:[/\-](\d{2,4}))?\b"),
    re.compile(
        r"\b(thứ\s*[2-7]|chủ nhật|monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
        re.IGNORECASE,
    ),
]

# Proper-noun runs after a connector, or before "join"
PEOPLE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"\b(với|cùng|and|with)\s+(?P<name>[{_UPPER}][{_LOWER}]+(?:\s+[{_UPPER}][{_LOWER}]+)*)"),
    re.compile(rf"\b(?P<name>[{_UPPER}][{_LOWER}]+)\s+(join|tham gia)\b"),
]

LOCATION_PATTERNS: list[re.Pattern[str]] = [
    # A digit right after the connector is a time ("at 3pm"), not a place
    re.compile(r"\b(tại|ở|at|in)\s+(?!\d)(?P<place>[^,\n]+)", re.IGNORECASE),
    re.compile(r"\b(phòng|room)\s+(?P<place>[A-Za-z0-9\-]+)", re.IGNORECASE),
    re.compile(r"\b(zoom|teams|google meet|skype)\b", re.IGNORECASE),
]

EMAIL_PATTERN: re.Pattern[str] = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

SENTENCE_SPLIT: re.Pattern[str] = re.compile(r"[.!?]+")

SENTENCE_TEMPLATES: tuple[SentenceTemplate, ...] = (
    SentenceTemplate(re.compile(r"^(.+?)\s+(lúc|at)\s+(.+)$", re.IGNORECASE), "time", 0.6),
    SentenceTemplate(re.compile(r"^(.+?)\s+(với|with)\s+(.+)$", re.IGNORECASE), "attendees", 0.55),
    SentenceTemplate(re.compile(r"^(.+?)\s+(tại|at)\s+(.+)$", re.IGNORECASE), "location", 0.5),
)

# Words that make an utterance read as something to do or attend
ACTION_KEYWORDS: tuple[str, ...] = (
    "họp",
    "meeting",
    "gặp",
    "call",
    "gọi",
    "làm",
    "hoàn thành",
    "submit",
    "nộp",
)

# Cues that the draft is a calendar event rather than a plain task
CALENDAR_CUES: re.Pattern[str] = re.compile(
    r"\b(họp|cuộc họp|meeting|gặp|meet|call|gọi|hẹn|lịch hẹn|appointment)\b",
    re.IGNORECASE,
)

_WORD = re.compile(r"[^\W\d_]+")


def first_match(patterns: list[re.Pattern[str]], text: str) -> re.Match[str] | None:
    """Return the match of the first pattern in ``patterns`` that matches."""
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match
    return None


def first_action_match(
    candidates: list[ActionPattern], text: str
) -> tuple[ActionPattern, re.Match[str]] | None:
    """Like :func:`first_match` for structural patterns, keeping the pattern's slot."""
    for candidate in candidates:
        match = candidate.pattern.search(text)
        if match:
            return candidate, match
    return None


def find_people(text: str) -> list[str]:
    """Names captured by the first people pattern that matches at all."""
    for pattern in PEOPLE_PATTERNS:
        names = [m.group("name") for m in pattern.finditer(text) if m.group("name")]
        if names:
            return names
    return []


def find_location(text: str) -> str | None:
    match = first_match(LOCATION_PATTERNS, text)
    if not match:
        return None
    return (match.groupdict().get("place") or match.group(0)).strip()


def contains_action_keyword(text: str) -> bool:
    """True when ``text`` contains any action keyword.

    Single-word keywords are compared against whitespace tokens; multi-word
    keywords against the lower-cased text as a whole.
    """
    lowered = text.lower()
    tokens = set(lowered.split())
    for keyword in ACTION_KEYWORDS:
        if " " in keyword:
            if keyword in lowered:
                return True
        elif keyword in tokens:
            return True
    return False


def capitalized_words(text: str) -> list[str]:
    """Words starting with an upper-case letter and longer than two characters."""
    return [w for w in _WORD.findall(text) if w[0].isupper() and len(w) > 2]


def extract_emails(text: str) -> list[str]:
    return EMAIL_PATTERN.findall(text)


def pattern_stats() -> dict[str, int]:
    """Number of patterns per family, for diagnostics."""
    return {
        "meeting": len(MEETING_PATTERNS),
        "task": len(TASK_PATTERNS),
        "time": len(TIME_PATTERNS),
        "date": len(DATE_PATTERNS),
        "people": len(PEOPLE_PATTERNS),
        "location": len(LOCATION_PATTERNS),
        "email": 1,
        "templates": len(SENTENCE_TEMPLATES),
    }
