"""Data models for multi-turn slot filling."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from src.extraction.models import TaskDraft


@dataclass(frozen=True)
class SmartDefaults:
    """A user's scheduling preferences, supplied from outside the store."""

    default_time: str = "09:00"
    default_duration: int = 60  # minutes
    preferred_meeting_type: str = "google_meet"
    working_hours: tuple[str, str] = ("08:00", "18:00")
    time_zone: str = "Asia/Ho_Chi_Minh"


@dataclass
class ConversationState:
    """Everything known about one user's in-progress draft."""

    user_id: str
    current_task: TaskDraft
    created_at: datetime
    smart_defaults: SmartDefaults = field(default_factory=SmartDefaults)
    missing_fields: list[str] = field(default_factory=list)
    conversation_history: list[str] = field(default_factory=list)  # oldest first
    inference_attempts: int = 0


@dataclass
class InferenceResult:
    """One applied or attempted inference rule."""

    field: str
    value: str
    confidence: float
    reasoning: str
    success: bool


@dataclass
class FlowResult:
    """Outcome of folding one new utterance into a conversation."""

    task: TaskDraft
    questions: list[str]
    confidence: float
    inferences: list[InferenceResult] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return not self.questions


@dataclass
class ResponseOutcome:
    """Outcome of folding an answer to a follow-up question."""

    updated_task: TaskDraft
    next_questions: list[str]
    is_complete: bool
