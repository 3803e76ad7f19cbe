"""Turn a user's answer to a follow-up question back into draft fields."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from datetime import date

from src.conversation.inference import ALL_FIELDS, InferenceEngine
from src.conversation.models import ResponseOutcome
from src.conversation.planner import calculate_missing_fields, generate_optimized_questions
from src.conversation.store import ConversationStore
from src.extraction import patterns
from src.extraction.models import TaskDraft
from src.extraction.normalize import normalize_date, normalize_time

logger = logging.getLogger(__name__)

_ATTENDEE_SEPARATORS = re.compile(r"\s*(?:,|;|\bvà\b|\band\b)\s*", re.IGNORECASE)


def parse_field_response(
    response: str, field_name: str, today: date | None = None, strict: bool = False
) -> str | list[str] | None:
    """Parse ``response`` as the value of ``field_name``.

    Dates and times are normalised when recognised and otherwise kept
    verbatim, unless ``strict`` is set, in which case unrecognised input
    yields ``None``. Attendees are split into a list. Every other field is
    the trimmed text.
    """
    text = response.strip()
    if not text:
        return None

    if field_name == "date":
        match = patterns.first_match(patterns.DATE_PATTERNS, text)
        if match:
            return normalize_date(match.group(0), today)
        return None if strict else text

    if field_name == "time":
        match = patterns.first_match(patterns.TIME_PATTERNS, text)
        if match:
            return normalize_time(match.group(0))
        return None if strict else text

    if field_name == "attendees":
        names = [n for n in _ATTENDEE_SEPARATORS.split(text) if n]
        return names or None

    return text


class ResponseInterpreter:
    """Folds answers into a user's conversation and re-plans."""

    def __init__(self, store: ConversationStore, engine: InferenceEngine) -> None:
        self.store = store
        self.engine = engine

    def process_user_response(
        self,
        user_id: str,
        response_text: str,
        asked_field: str | Sequence[str],
    ) -> ResponseOutcome:
        """Apply ``response_text`` as the answer to ``asked_field``.

        Args:
            user_id: The answering user.
            response_text: The raw answer.
            asked_field: The field asked for, or every field of one merged
                question.

        Returns:
            The updated draft, the next questions and whether it is complete.

        Raises:
            NoActiveConversationError: If the user has no open conversation.
            ValueError: If a field is not one the user can be asked for.
        """
        fields = [asked_field] if isinstance(asked_field, str) else list(asked_field)
        unknown = [f for f in fields if f not in ALL_FIELDS]
        if unknown:
            raise ValueError(f"Cannot answer unknown field(s): {', '.join(unknown)}")
        state = self.store.require(user_id)
        # A merged question may be answered only in part.
        strict = len(fields) > 1

        partial = TaskDraft()
        for field_name in fields:
            value = parse_field_response(response_text, field_name, self.engine.today(), strict=strict)
            if value:
                setattr(partial, field_name, value)
            else:
                logger.debug("No %s found in answer from user %s", field_name, user_id)

        self.store.update(user_id, partial, response_text)
        self.engine.apply_smart_inference(state)

        state.missing_fields = calculate_missing_fields(state.current_task)
        is_complete = not state.missing_fields
        next_questions = [] if is_complete else generate_optimized_questions(state.missing_fields, state)

        return ResponseOutcome(
            updated_task=state.current_task,
            next_questions=next_questions,
            is_complete=is_complete,
        )
