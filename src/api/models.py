"""Pydantic request/response schemas for the Task Assistant API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from src.assistant.handler import AssistantReply
from src.conversation.models import ResponseOutcome
from src.extraction.models import ExtractionResult, TaskDraft
from src.pipeline_config import ReplySource


class MessageRequest(BaseModel):
    """Request body for the /api/messages endpoint."""

    user_id: str
    text: str = Field(min_length=1)


AnswerField = Literal["title", "date", "time", "attendees", "location", "description"]


class AnswerRequest(BaseModel):
    """Request body for the /api/conversations/{user_id}/answer endpoint."""

    text: str
    asked_field: AnswerField | list[AnswerField]


class ExtractRequest(BaseModel):
    """Request body for the /api/extract endpoint."""

    text: str = Field(min_length=1)


class TaskDraftResponse(BaseModel):
    """A task draft in API responses."""

    title: str
    date: str | None = None
    time: str | None = None
    attendees: list[str] = []
    location: str | None = None
    description: str | None = None
    type: str = "task"

    @classmethod
    def from_draft(cls, draft: TaskDraft) -> TaskDraftResponse:
        return cls(**draft.to_dict())


class ExtractionResponse(BaseModel):
    """One extraction strategy's result."""

    title: str
    attendees: list[str] = []
    emails: list[str] = []
    location: str | None = None
    date: str | None = None
    time: str | None = None
    description: str | None = None
    meeting_type: str | None = None
    confidence: float
    strategy_level: int
    strategy_name: str
    success: bool

    @classmethod
    def from_result(cls, result: ExtractionResult) -> ExtractionResponse:
        return cls(
            title=result.title,
            attendees=result.attendees,
            emails=result.emails,
            location=result.location,
            date=result.date,
            time=result.time,
            description=result.description,
            meeting_type=str(result.meeting_type) if result.meeting_type else None,
            confidence=result.confidence,
            strategy_level=result.strategy_level,
            strategy_name=result.strategy_name,
            success=result.success,
        )


class MessageResponse(BaseModel):
    """Response body for the /api/messages endpoint."""

    reply: str
    source: ReplySource
    questions: list[str] = []
    is_complete: bool = False
    task: TaskDraftResponse | None = None
    extraction: ExtractionResponse | None = None
    task_id: str | None = None

    @classmethod
    def from_reply(cls, reply: AssistantReply) -> MessageResponse:
        return cls(
            reply=reply.text,
            source=reply.source,
            questions=reply.questions,
            is_complete=reply.is_complete,
            task=TaskDraftResponse.from_draft(reply.task) if reply.task else None,
            extraction=ExtractionResponse.from_result(reply.extraction) if reply.extraction else None,
            task_id=reply.task_id,
        )


class AnswerResponse(BaseModel):
    """Response body for the answer endpoint."""

    updated_task: TaskDraftResponse
    next_questions: list[str]
    is_complete: bool

    @classmethod
    def from_outcome(cls, outcome: ResponseOutcome) -> AnswerResponse:
        return cls(
            updated_task=TaskDraftResponse.from_draft(outcome.updated_task),
            next_questions=outcome.next_questions,
            is_complete=outcome.is_complete,
        )


class ConversationStats(BaseModel):
    """Aggregate numbers over open conversations."""

    active_conversations: int
    avg_inference_attempts: float
    avg_conversation_length: float


class SweepResponse(BaseModel):
    removed: int
