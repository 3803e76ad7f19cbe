"""Message endpoint: the inbound side of the messaging bridge."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.deps import get_assistant
from src.api.models import MessageRequest, MessageResponse
from src.assistant.handler import TaskAssistant

router = APIRouter()


@router.post("/api/messages", response_model=MessageResponse)
async def handle_message(
    request: MessageRequest,
    assistant: Annotated[TaskAssistant, Depends(get_assistant)],
) -> MessageResponse:
    """Handle one utterance and return the reply or the next question.

    Runs on the event loop, so messages are processed one at a time.
    """
    reply = assistant.handle_utterance(request.user_id, request.text)
    return MessageResponse.from_reply(reply)
