"""Conversation flow: fold utterances into state, infer, and plan questions."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from src.conversation.inference import ALL_FIELDS, InferenceEngine, optimization_confidence
from src.conversation.interpreter import ResponseInterpreter
from src.conversation.models import FlowResult, ResponseOutcome
from src.conversation.planner import (
    calculate_missing_fields,
    generate_optimized_questions,
    group_related_fields,
    question_for,
)
from src.conversation.store import ConversationStore
from src.extraction.models import TaskDraft

logger = logging.getLogger(__name__)


class ConversationFlow:
    """Owns the conversation store and drives slot filling for every user."""

    def __init__(
        self,
        store: ConversationStore | None = None,
        engine: InferenceEngine | None = None,
    ) -> None:
        self.store = store or ConversationStore()
        self.engine = engine or InferenceEngine()
        self.interpreter = ResponseInterpreter(self.store, self.engine)

    def optimize(self, user_id: str, utterance: str, parsed_task: TaskDraft) -> FlowResult:
        """Fold a newly parsed utterance into the user's conversation.

        Opens the conversation if needed, merges the draft, runs inference and
        returns the questions still to ask (none when the draft is complete).
        """
        self.store.get_or_create(user_id, parsed_task)
        state = self.store.update(user_id, parsed_task, utterance)

        inferences = self.engine.apply_smart_inference(state)
        state.missing_fields = calculate_missing_fields(state.current_task)
        questions = generate_optimized_questions(state.missing_fields, state)

        logger.info(
            "Reduced questions for user %s from %d to %d",
            user_id,
            len(ALL_FIELDS),
            len(questions),
        )
        return FlowResult(
            task=state.current_task,
            questions=questions,
            confidence=optimization_confidence(inferences, state.missing_fields),
            inferences=inferences,
        )

    def answer(self, user_id: str, text: str, asked_field: str | Sequence[str]) -> ResponseOutcome:
        """Apply an answer; see :meth:`ResponseInterpreter.process_user_response`."""
        return self.interpreter.process_user_response(user_id, text, asked_field)

    def pending_fields(self, user_id: str) -> tuple[str, ...]:
        """Fields covered by the next question asked to the user (empty if none)."""
        state = self.store.get(user_id)
        if state is None or not state.missing_fields:
            return ()
        return group_related_fields(state.missing_fields)[0]

    def pending_question(self, user_id: str) -> str | None:
        """The question currently waiting for the user's answer, if any."""
        pending = self.pending_fields(user_id)
        if not pending:
            return None
        return question_for(pending, self.store.get(user_id))

    def has_open_conversation(self, user_id: str) -> bool:
        return user_id in self.store

    def complete(self, user_id: str) -> None:
        """Close the user's conversation once its draft has been handed off."""
        self.store.discard(user_id)

    def sweep(self) -> int:
        return self.store.sweep()

    def stats(self) -> dict[str, Any]:
        return self.store.stats()
