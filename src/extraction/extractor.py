"""Claude-powered structured extraction of a task or event from one utterance."""

from __future__ import annotations

import json
from datetime import date
from typing import Any

from anthropic import Anthropic

from src.config import settings
from src.extraction.models import ExtractionResult, MeetingType
from src.extraction.normalize import normalize_date, normalize_time

LLM_STRATEGY_LEVEL = 0
LLM_STRATEGY_NAME = "LLM"

_MEETING_TYPES = {t.value for t in MeetingType}


class LLMUnavailableError(RuntimeError):
    """The LLM stage is disabled, unconfigured, or returned nothing usable."""


# Tool definition for Claude structured output
EXTRACTION_TOOL: dict[str, Any] = {
    "name": "store_task_draft",
    "description": (
        "Store the task or calendar event described by the user's message. "
        "Call this exactly once."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "title": {
                "type": "string",
                "description": "Short title of the task or event, in the user's language.",
            },
            "date": {
                "type": "string",
                "description": "Date as YYYY-MM-DD, or the user's words if unresolvable.",
            },
            "time": {
                "type": "string",
                "description": "Start time as HH:MM (24h).",
            },
            "attendees": {
                "type": "array",
                "items": {"type": "string"},
                "description": "People who take part.",
            },
            "emails": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Email addresses mentioned.",
            },
            "location": {
                "type": "string",
                "description": "Place or meeting platform.",
            },
            "description": {
                "type": "string",
                "description": "Any further notes.",
            },
            "meeting_type": {
                "type": "string",
                "enum": [t.value for t in MeetingType],
                "description": "How the meeting happens, if it is a meeting.",
            },
            "confidence": {
                "type": "number",
                "description": "Confidence score 0-1.",
            },
        },
        "required": ["title", "confidence"],
    },
}

SYSTEM_PROMPT = (
    "You are a Vietnamese/English personal assistant that turns chat messages "
    "into tasks and calendar events.\n\n"
    "Extract the title, date, time, attendees, emails, location, description "
    "and meeting type. Today's date is {today}. Resolve relative dates such as "
    "'ngày mai' or 'tomorrow' against it.\n\n"
    "Use the store_task_draft tool to return your result. Leave out fields "
    "the message does not mention; never invent them."
)


def extract_task(message: str, today: date | None = None) -> ExtractionResult:
    """Extract a task draft from ``message`` using Claude.

    Args:
        message: The raw utterance.
        today: Reference date for relative expressions (defaults to today).

    Returns:
        An ExtractionResult with ``strategy_level`` 0.

    Raises:
        LLMUnavailableError: If the LLM stage is disabled or returns no tool call.
        anthropic.APIError: Propagated from the API client.
    """
    if not settings.use_llm or not settings.anthropic_api_key:
        raise LLMUnavailableError("LLM extraction disabled or ANTHROPIC_API_KEY not set")

    client = Anthropic(api_key=settings.anthropic_api_key)

    response = client.messages.create(
        model=settings.llm_model,
        max_tokens=1024,
        system=SYSTEM_PROMPT.format(today=(today or date.today()).isoformat()),
        tools=[EXTRACTION_TOOL],
        tool_choice={"type": "tool", "name": "store_task_draft"},
        messages=[{"role": "user", "content": message}],
    )

    # Parse tool_use response
    return _parse_tool_response(response, today)


def _parse_tool_response(response: Any, today: date | None = None) -> ExtractionResult:
    """Parse the Claude tool_use response into an ExtractionResult."""
    for block in response.content:
        if block.type != "tool_use":
            continue
        if block.name != "store_task_draft":
            continue

        data = block.input
        if isinstance(data, str):
            data = json.loads(data)

        title = (data.get("title") or "").strip()
        if not title:
            raise LLMUnavailableError("LLM returned a draft without a title")

        meeting_type = data.get("meeting_type")
        return ExtractionResult(
            title=title,
            strategy_level=LLM_STRATEGY_LEVEL,
            strategy_name=LLM_STRATEGY_NAME,
            attendees=list(data.get("attendees") or []),
            emails=list(data.get("emails") or []),
            location=data.get("location") or None,
            date=normalize_date(data["date"], today) if data.get("date") else None,
            time=normalize_time(data["time"]) if data.get("time") else None,
            description=data.get("description") or None,
            meeting_type=MeetingType(meeting_type) if meeting_type in _MEETING_TYPES else None,
            confidence=float(data.get("confidence", 0.8)),
            success=True,
        )

    raise LLMUnavailableError("LLM response contained no store_task_draft tool call")
