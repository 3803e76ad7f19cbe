"""Shared dependencies for API routes."""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from src.assistant.handler import TaskAssistant
from src.config import settings
from src.conversation.flow import ConversationFlow
from src.conversation.store import ConversationStore
from src.storage.tasks import SupabaseTaskSink


@lru_cache(maxsize=1)
def get_assistant() -> TaskAssistant:
    """The process-wide assistant; finished drafts go to Supabase when configured."""
    store = ConversationStore(ttl=timedelta(hours=settings.conversation_ttl_hours))
    sink = SupabaseTaskSink() if settings.supabase_url else None
    return TaskAssistant(flow=ConversationFlow(store=store), sink=sink)
