"""Normalisation of free-form time and date tokens."""

from __future__ import annotations

import re
from datetime import date, timedelta

_NUMERIC_TIME = re.compile(r"(\d{1,2})\s*[:\.h]?\s*(\d{0,2})", re.IGNORECASE)
_PM = re.compile(r"\bpm\b|\d\s*pm\b|\bchiều\b|\btối\b", re.IGNORECASE)
_AM = re.compile(r"\bam\b|\d\s*am\b", re.IGNORECASE)

TIME_OF_DAY: dict[str, str] = {
    "sáng": "09:00",
    "chiều": "14:00",
    "tối": "19:00",
    "morning": "09:00",
    "afternoon": "14:00",
    "evening": "18:00",
}

_WEEKDAYS: dict[str, int] = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
    "chủ nhật": 6,
}
# "thứ 2" is Monday ... "thứ 7" is Saturday
_THU = re.compile(r"thứ\s*([2-7])", re.IGNORECASE)
_DAY_MONTH = re.compile(r"^(\d{1,2})[/\-](\d{1,2})(?:[/\-](\d{2,4}))?$")
_ISO = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_time(token: str) -> str:
    """Reduce a time token to ``HH:MM`` (24h).

    Hours are zero-padded and missing minutes default to ``00``; ``pm`` (or
    an afternoon/evening word next to a number) moves hours below 12 into the
    afternoon, and ``12 am`` is midnight. Bare time-of-day words map to a
    conventional hour. Anything else is returned unchanged. Already-normalised
    input is returned as is.
    """
    text = token.strip()
    match = _NUMERIC_TIME.search(text)
    if not match:
        return TIME_OF_DAY.get(text.lower(), token)

    hours = int(match.group(1))
    minutes = match.group(2) or "00"
    if hours < 12 and _PM.search(text):
        hours += 12
    elif hours == 12 and _AM.search(text):
        hours = 0
    return f"{hours:02d}:{minutes.zfill(2)}"


def today_iso(today: date | None = None) -> str:
    return (today or date.today()).isoformat()


def tomorrow_iso(today: date | None = None) -> str:
    return ((today or date.today()) + timedelta(days=1)).isoformat()


def next_week_iso(today: date | None = None) -> str:
    return ((today or date.today()) + timedelta(days=7)).isoformat()


def next_weekday(weekday: int, today: date | None = None) -> str:
    """ISO date of the next ``weekday`` (Monday=0); today if it already matches."""
    base = today or date.today()
    days = (weekday - base.weekday()) % 7
    return (base + timedelta(days=days)).isoformat()


def normalize_date(token: str, today: date | None = None) -> str:
    """Normalise a date token to ``YYYY-MM-DD``.

    Recognises relative words (today/tomorrow/next week and their Vietnamese
    forms), weekday names, and day-first ``D/M[/Y]`` dates. Unrecognised
    tokens are passed through unmodified.
    """
    text = token.strip()
    lowered = text.lower()
    base = today or date.today()

    if "hôm nay" in lowered or "today" in lowered:
        return today_iso(base)
    if "ngày mai" in lowered or "tomorrow" in lowered:
        return tomorrow_iso(base)
    if "tuần sau" in lowered or "next week" in lowered:
        return next_week_iso(base)

    if _ISO.match(text):
        return text

    thu = _THU.search(lowered)
    if thu:
        return next_weekday(int(thu.group(1)) - 2, base)
    for name, weekday in _WEEKDAYS.items():
        if name in lowered:
            return next_weekday(weekday, base)

    day_month = _DAY_MONTH.match(text)
    if day_month:
        day, month = int(day_month.group(1)), int(day_month.group(2))
        year_token = day_month.group(3)
        year = base.year
        if year_token:
            year = int(year_token)
            if year < 100:
                year += 2000
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return token

    return token
