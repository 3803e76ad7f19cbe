"""Entry point for every incoming utterance.

Routes a message through the pre-filter, command parsing, LLM or fallback
extraction and the conversation flow, and hands finished drafts to the task
sink.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from anthropic import APIError

from src.assistant.collaborators import MessageSender, TaskSink, Transcriber
from src.conversation.flow import ConversationFlow
from src.conversation.models import ResponseOutcome
from src.conversation.planner import calculate_missing_fields
from src.extraction.commands import UNKNOWN, NewTaskArgs, ParsedCommand, parse_command, parse_new_args
from src.extraction.extractor import LLMUnavailableError, extract_task
from src.extraction.fallback import FallbackChain
from src.extraction.models import ExtractionResult, TaskDraft, TaskType
from src.extraction.patterns import CALENDAR_CUES
from src.extraction.prefilter import NON_TASK_REPLY, pre_filter_with_context
from src.pipeline_config import AssistantConfig, ReplySource

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "Gửi cho mình công việc hoặc lịch hẹn bằng lời tự nhiên, ví dụ: "
    "'họp dự án lúc 15:00 ngày mai'. Lệnh: /new, /list, /done, /delete, /edit, /stats, /help."
)
CANCELLED_TEXT = "Đã hủy công việc đang tạo."
INVALID_TASK_TEXT = "Nội dung task không hợp lệ."
NO_EVENTS_TEXT = "Không có lịch hẹn nào trong 7 ngày tới."
LIST_DAYS = 7

_CANCEL = re.compile(r"^(hủy|huỷ|cancel|thôi|bỏ qua)[!.]*$", re.IGNORECASE)


@dataclass
class AssistantReply:
    """What the assistant says back, plus the structured state behind it."""

    text: str
    source: ReplySource
    questions: list[str] = field(default_factory=list)
    task: TaskDraft | None = None
    is_complete: bool = False
    extraction: ExtractionResult | None = None
    command: ParsedCommand | None = None
    task_id: str | None = None


class TaskAssistant:
    """Turns utterances into finished task drafts, asking follow-ups as needed."""

    def __init__(
        self,
        flow: ConversationFlow | None = None,
        config: AssistantConfig | None = None,
        chain: FallbackChain | None = None,
        extractor: Callable[[str], ExtractionResult] = extract_task,
        sink: TaskSink | None = None,
        sender: MessageSender | None = None,
        transcriber: Transcriber | None = None,
    ) -> None:
        self.flow = flow or ConversationFlow()
        self.config = config or AssistantConfig()
        self.chain = chain or FallbackChain()
        self.extractor = extractor
        self.sink = sink
        self.sender = sender
        self.transcriber = transcriber

    def handle_utterance(self, user_id: str, text: str) -> AssistantReply:
        """Handle one message from ``user_id`` and return the reply.

        The reply is also delivered through the message sender when one is
        configured.
        """
        reply = self._handle(user_id, text.strip())
        if self.sender is not None:
            self.sender.send_message(user_id, reply.text)
        return reply

    def handle_voice(self, user_id: str, audio: bytes) -> AssistantReply:
        """Transcribe a voice message and handle it like a typed one.

        Raises:
            RuntimeError: If no transcriber is configured.
        """
        if self.transcriber is None:
            raise RuntimeError("No transcriber configured for voice messages")
        text = self.transcriber.transcribe(audio)
        logger.info("Transcribed voice message from user %s: %s", user_id, text)
        return self.handle_utterance(user_id, text)

    def answer(self, user_id: str, text: str, asked_field: str | Sequence[str]) -> ResponseOutcome:
        """Apply an answer to an explicitly named field.

        A draft completed by the answer is handed to the sink and its
        conversation closed.

        Raises:
            NoActiveConversationError: If the user has no open conversation.
        """
        outcome = self.flow.answer(user_id, text, asked_field)
        if outcome.is_complete:
            self._finish(user_id, outcome.updated_task, ReplySource.ANSWER)
        return outcome

    def _handle(self, user_id: str, text: str) -> AssistantReply:
        command = parse_command(text) if text.startswith("/") else None

        if command is not None and command.cmd != "new":
            return self._command_reply(command)

        new_args: NewTaskArgs | None = None
        if command is not None:
            new_args = parse_new_args(command.args)
            if not new_args.content:
                return AssistantReply(text=INVALID_TASK_TEXT, source=ReplySource.COMMAND, command=command)
            # An explicit /new abandons whatever was being assembled.
            self.flow.complete(user_id)
        elif self.flow.has_open_conversation(user_id):
            if _CANCEL.match(text):
                self.flow.complete(user_id)
                return AssistantReply(text=CANCELLED_TEXT, source=ReplySource.ANSWER)
            pending = self.flow.pending_fields(user_id)
            if pending:
                quick = self._pre_filter(user_id, text, self.flow.pending_question(user_id))
                if quick is not None:
                    return quick
                return self._answer(user_id, text, pending)
            self.flow.complete(user_id)

        if command is None:
            quick = self._pre_filter(user_id, text)
            if quick is not None:
                return quick

            natural = parse_command(text)
            if natural.cmd != "new":
                return self._command_reply(natural)

        extraction, source = self._extract(new_args.content if new_args else text)
        if new_args is not None:
            extraction.date = new_args.date or extraction.date
            extraction.time = new_args.time or extraction.time
        draft = TaskDraft.from_extraction(extraction, self._task_type(text, extraction))

        if not self.config.enable_conversation_optimizer:
            if calculate_missing_fields(draft):
                return AssistantReply(
                    text="Mình chưa đủ thông tin để tạo công việc này.",
                    source=source,
                    task=draft,
                    extraction=extraction,
                )
            return self._finish(user_id, draft, source, extraction)

        flow_result = self.flow.optimize(user_id, text, draft)
        if flow_result.is_complete:
            return self._finish(user_id, flow_result.task, source, extraction)

        return AssistantReply(
            text="\n".join(flow_result.questions),
            source=source,
            questions=flow_result.questions,
            task=flow_result.task,
            extraction=extraction,
        )

    def _pre_filter(self, user_id: str, text: str, asked: str | None = None) -> AssistantReply | None:
        """A quick reply when the message is clearly not task content.

        A message that follows one of our detail questions is always let
        through as an answer.
        """
        if not self.config.enable_pre_filter:
            return None
        verdict = pre_filter_with_context(text, [asked] if asked else None)
        if verdict.is_task_likely or verdict.confidence < self.config.pre_filter_threshold:
            return None
        logger.info("Pre-filter answered user %s directly: %s", user_id, verdict.reason)
        return AssistantReply(text=verdict.quick_reply or NON_TASK_REPLY, source=ReplySource.PREFILTER)

    def _extract(self, text: str) -> tuple[ExtractionResult, ReplySource]:
        error: BaseException | None = None
        if self.config.enable_llm:
            try:
                return self.extractor(text), ReplySource.LLM
            except (LLMUnavailableError, APIError, ValueError) as exc:
                error = exc
                logger.warning("LLM extraction failed: %s", exc)

        if not self.config.enable_fallback:
            raise error or LLMUnavailableError("LLM stage disabled and fallback disabled")
        return self.chain.execute_progressive_fallback(text, error), ReplySource.FALLBACK

    def _answer(self, user_id: str, text: str, pending: tuple[str, ...]) -> AssistantReply:
        asked: str | tuple[str, ...] = pending[0] if len(pending) == 1 else pending
        outcome = self.flow.answer(user_id, text, asked)
        if outcome.is_complete:
            return self._finish(user_id, outcome.updated_task, ReplySource.ANSWER)
        return AssistantReply(
            text="\n".join(outcome.next_questions),
            source=ReplySource.ANSWER,
            questions=outcome.next_questions,
            task=outcome.updated_task,
        )

    def _finish(
        self,
        user_id: str,
        draft: TaskDraft,
        source: ReplySource,
        extraction: ExtractionResult | None = None,
    ) -> AssistantReply:
        task_id = self.sink.upsert_task(user_id, draft) if self.sink is not None else None
        self.flow.complete(user_id)
        logger.info("Finished %s draft for user %s: %s", draft.type or TaskType.TASK, user_id, draft.title)
        return AssistantReply(
            text=confirmation_text(draft),
            source=source,
            task=draft,
            is_complete=True,
            extraction=extraction,
            task_id=task_id,
        )

    def _command_reply(self, command: ParsedCommand) -> AssistantReply:
        if command.cmd == "help":
            text = HELP_TEXT
        elif command.cmd == UNKNOWN:
            text = f"Không có lệnh /{command.args}. Gõ /help để xem các lệnh."
        elif command.cmd == "list" and self.sink is not None:
            start = self.flow.engine.today()
            end = start + timedelta(days=LIST_DAYS)
            text = format_events(self.sink.list_events(start.isoformat(), end.isoformat()))
        else:
            text = f"Đã nhận lệnh /{command.cmd}."
        return AssistantReply(text=text, source=ReplySource.COMMAND, command=command)

    @staticmethod
    def _task_type(text: str, extraction: ExtractionResult) -> TaskType:
        if extraction.time or extraction.meeting_type or CALENDAR_CUES.search(text):
            return TaskType.CALENDAR
        return TaskType.TASK


def confirmation_text(draft: TaskDraft) -> str:
    label = "lịch hẹn" if draft.is_calendar else "công việc"
    parts = [f"Đã tạo {label}: {draft.title}"]
    if draft.time:
        parts.append(f"lúc {draft.time}")
    if draft.date:
        parts.append(f"ngày {draft.date}")
    if draft.location:
        parts.append(f"tại {draft.location}")
    if draft.attendees:
        parts.append(f"với {', '.join(draft.attendees)}")
    return " ".join(parts)


def format_events(events: Sequence[dict[str, Any]]) -> str:
    if not events:
        return NO_EVENTS_TEXT
    lines = []
    for i, event in enumerate(events):
        line = f"{i + 1}. {event.get('title', '')}"
        if event.get("date"):
            line += f" @{event['date']}"
        if event.get("time"):
            line += f" @{event['time']}"
        lines.append(line)
    return "\n".join(lines)
