"""Interfaces of the systems around the assistant core."""

from __future__ import annotations

from typing import Any, Protocol

from src.extraction.models import TaskDraft


class TaskSink(Protocol):
    """Receives finished drafts for storage and calendar sync."""

    def upsert_task(self, user_id: str, draft: TaskDraft) -> str:
        """Store ``draft`` and return its id."""
        ...

    def list_events(self, range_start: str, range_end: str) -> list[dict[str, Any]]:
        ...


class MessageSender(Protocol):
    """Delivers reply text back to the user over the messaging platform."""

    def send_message(self, user_id: str, text: str) -> None:
        ...


class Transcriber(Protocol):
    """Speech to text for voice messages."""

    def transcribe(self, audio: bytes, language: str = "vi") -> str:
        ...
