"""Data models for structured extraction results."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import StrEnum
from typing import Any


class MeetingType(StrEnum):
    """How a meeting takes place."""

    GOOGLE_MEET = "google_meet"
    ZOOM = "zoom"
    TEAMS = "teams"
    IN_PERSON = "in_person"


class TaskType(StrEnum):
    """Whether a draft becomes a calendar event or a plain task."""

    CALENDAR = "calendar"
    TASK = "task"


@dataclass
class ExtractionResult:
    """Output of one extraction strategy (fallback level or the LLM stage)."""

    title: str
    strategy_level: int
    strategy_name: str
    attendees: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)
    location: str | None = None
    date: str | None = None  # YYYY-MM-DD when recognised
    time: str | None = None  # HH:MM, 24h
    description: str | None = None
    meeting_type: MeetingType | None = None
    confidence: float = 0.0
    success: bool = False


@dataclass
class TaskDraft:
    """The task or event being assembled across a conversation.

    Every field is optional so the same type doubles as a partial update;
    ``type`` of ``None`` is treated as a plain task.
    """

    title: str = ""
    date: str | None = None
    time: str | None = None
    attendees: list[str] = field(default_factory=list)
    location: str | None = None
    description: str | None = None
    type: TaskType | None = None

    @property
    def is_calendar(self) -> bool:
        return self.type is TaskType.CALENDAR

    def has(self, name: str) -> bool:
        """True when the named field holds a non-empty value."""
        return bool(getattr(self, name, None))

    def merge(self, partial: TaskDraft) -> None:
        """Copy every non-empty field of ``partial`` onto this draft.

        Fields that are empty in ``partial`` never clear existing values.
        """
        for f in fields(self):
            value = getattr(partial, f.name)
            if value:
                setattr(self, f.name, list(value) if isinstance(value, list) else value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "date": self.date,
            "time": self.time,
            "attendees": list(self.attendees),
            "location": self.location,
            "description": self.description,
            "type": str(self.type or TaskType.TASK),
        }

    @classmethod
    def from_extraction(cls, result: ExtractionResult, task_type: TaskType) -> TaskDraft:
        attendees = list(result.attendees)
        # Email-only invitees still count as attendees of the draft.
        attendees.extend(e for e in result.emails if e not in attendees)
        return cls(
            title=result.title,
            date=result.date or None,
            time=result.time or None,
            attendees=attendees,
            location=result.location or None,
            description=result.description or None,
            type=task_type,
        )
