"""Per-user conversation state with a time-boxed lifecycle."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from src.config import settings
from src.conversation.models import ConversationState, SmartDefaults
from src.extraction.models import TaskDraft

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def defaults_from_settings(user_id: str) -> SmartDefaults:
    """The smart-defaults profile configured for every user."""
    return SmartDefaults(
        default_time=settings.default_time,
        default_duration=settings.default_duration_minutes,
        preferred_meeting_type=settings.preferred_meeting_type,
        working_hours=(settings.working_hours_start, settings.working_hours_end),
        time_zone=settings.time_zone,
    )


class NoActiveConversationError(LookupError):
    """An answer arrived for a user with no open conversation."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No active conversation for user {user_id!r}")
        self.user_id = user_id


class ConversationStore:
    """Conversation states keyed by user id.

    Callers must not interleave two mutations for the same user; the store
    does no locking of its own.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        defaults_provider: Callable[[str], SmartDefaults] = defaults_from_settings,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.ttl = ttl
        self._defaults_provider = defaults_provider
        self._clock = clock
        self._states: dict[str, ConversationState] = {}

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def get(self, user_id: str) -> ConversationState | None:
        return self._states.get(user_id)

    def require(self, user_id: str) -> ConversationState:
        """Return the user's state or raise :class:`NoActiveConversationError`."""
        state = self._states.get(user_id)
        if state is None:
            raise NoActiveConversationError(user_id)
        return state

    def get_or_create(self, user_id: str, initial_draft: TaskDraft | None = None) -> ConversationState:
        """Return the user's state, creating an empty one seeded with ``initial_draft``."""
        state = self._states.get(user_id)
        if state is not None:
            return state

        draft = TaskDraft()
        if initial_draft is not None:
            draft.merge(initial_draft)
        state = ConversationState(
            user_id=user_id,
            current_task=draft,
            created_at=self._clock(),
            smart_defaults=self._defaults_provider(user_id),
        )
        self._states[user_id] = state
        logger.debug("Opened conversation for user %s", user_id)
        return state

    def update(self, user_id: str, partial_draft: TaskDraft, raw_utterance: str) -> ConversationState:
        """Merge ``partial_draft`` into the user's draft and record the utterance.

        Non-empty fields overwrite; set fields are never cleared.
        """
        state = self.require(user_id)
        state.current_task.merge(partial_draft)
        state.conversation_history.append(raw_utterance)
        return state

    def discard(self, user_id: str) -> bool:
        """Drop the user's state; True if there was one."""
        return self._states.pop(user_id, None) is not None

    def sweep(self, now: datetime | None = None) -> int:
        """Remove every state older than the TTL and return how many went."""
        cutoff = (now or self._clock()) - self.ttl
        expired = [uid for uid, state in self._states.items() if state.created_at < cutoff]
        for user_id in expired:
            # A foreground request may have finished the conversation meanwhile.
            self._states.pop(user_id, None)
        if expired:
            logger.info("Swept %d expired conversation(s)", len(expired))
        return len(expired)

    def stats(self) -> dict[str, Any]:
        states = list(self._states.values())
        if not states:
            return {"active_conversations": 0, "avg_inference_attempts": 0.0, "avg_conversation_length": 0.0}
        return {
            "active_conversations": len(states),
            "avg_inference_attempts": sum(s.inference_attempts for s in states) / len(states),
            "avg_conversation_length": sum(len(s.conversation_history) for s in states) / len(states),
        }


async def run_periodic_sweep(store: ConversationStore, interval_seconds: float) -> None:
    """Sweep ``store`` every ``interval_seconds`` until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            store.sweep()
        except Exception:
            logger.exception("Conversation sweep failed")
