"""Extraction endpoint: run the fallback chain on a message without a conversation."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.deps import get_assistant
from src.api.models import ExtractionResponse, ExtractRequest
from src.assistant.handler import TaskAssistant

router = APIRouter()


@router.post("/api/extract", response_model=ExtractionResponse)
async def extract_message(
    request: ExtractRequest,
    assistant: Annotated[TaskAssistant, Depends(get_assistant)],
) -> ExtractionResponse:
    """Show what the fallback chain extracts from a message.

    Never fails on input: the chain always yields a result.
    """
    result = assistant.chain.execute_progressive_fallback(request.text)
    return ExtractionResponse.from_result(result)


@router.get("/api/extract/stats")
async def extraction_stats(
    assistant: Annotated[TaskAssistant, Depends(get_assistant)],
) -> dict[str, object]:
    return assistant.chain.stats()
