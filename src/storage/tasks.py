"""Supabase storage helpers for finished tasks and calendar events."""

from __future__ import annotations

from typing import Any, cast

from supabase import Client, create_client

from src.config import settings
from src.extraction.models import TaskDraft, TaskType


def get_supabase_client() -> Client:
    """Create and return a Supabase client from settings."""
    return create_client(settings.supabase_url, settings.supabase_key)


class SupabaseTaskSink:
    """Writes finished drafts to the ``tasks`` table."""

    def __init__(self, client: Client | None = None) -> None:
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_supabase_client()
        return self._client

    def upsert_task(self, user_id: str, draft: TaskDraft) -> str:
        """Store ``draft`` for ``user_id`` and return the row id."""
        row = {"user_id": user_id, **draft.to_dict()}
        result = self.client.table("tasks").upsert(row).execute()
        rows = cast(list[dict[str, Any]], result.data)
        return str(rows[0]["id"])

    def list_events(self, range_start: str, range_end: str) -> list[dict[str, Any]]:
        """Calendar-type tasks dated within ``[range_start, range_end]`` (ISO dates)."""
        result = (
            self.client.table("tasks")
            .select("*")
            .eq("type", TaskType.CALENDAR.value)
            .gte("date", range_start)
            .lte("date", range_end)
            .order("date")
            .execute()
        )
        return cast(list[dict[str, Any]], result.data)
