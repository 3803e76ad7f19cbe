"""Conversation endpoints: answers, stats and the expiry sweep."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from src.api.deps import get_assistant
from src.api.models import AnswerRequest, AnswerResponse, ConversationStats, SweepResponse
from src.assistant.handler import TaskAssistant
from src.conversation.store import NoActiveConversationError

router = APIRouter()


@router.post("/api/conversations/{user_id}/answer", response_model=AnswerResponse)
async def answer_question(
    user_id: str,
    request: AnswerRequest,
    assistant: Annotated[TaskAssistant, Depends(get_assistant)],
) -> AnswerResponse:
    """Fold an answer to a specific asked field into the user's conversation."""
    try:
        outcome = assistant.answer(user_id, request.text, request.asked_field)
    except NoActiveConversationError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return AnswerResponse.from_outcome(outcome)


@router.get("/api/conversations/stats", response_model=ConversationStats)
async def conversation_stats(
    assistant: Annotated[TaskAssistant, Depends(get_assistant)],
) -> ConversationStats:
    return ConversationStats(**assistant.flow.stats())


@router.post("/api/conversations/sweep", response_model=SweepResponse)
async def sweep_conversations(
    assistant: Annotated[TaskAssistant, Depends(get_assistant)],
) -> SweepResponse:
    """Drop conversations older than the configured TTL."""
    return SweepResponse(removed=assistant.flow.sweep())
