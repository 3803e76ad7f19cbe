"""End-to-end tests of utterance handling with fake collaborators (no external APIs)."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock

import pytest

from src.assistant.handler import (
    CANCELLED_TEXT,
    HELP_TEXT,
    INVALID_TASK_TEXT,
    NO_EVENTS_TEXT,
    TaskAssistant,
    confirmation_text,
)
from src.conversation.flow import ConversationFlow
from src.conversation.inference import InferenceEngine
from src.conversation.models import SmartDefaults
from src.conversation.planner import GROUP_QUESTIONS, SINGLE_FIELD_QUESTIONS
from src.conversation.store import ConversationStore, NoActiveConversationError
from src.extraction.extractor import LLMUnavailableError
from src.extraction.fallback import FallbackChain, default_strategies
from src.extraction.models import ExtractionResult, TaskDraft, TaskType
from src.extraction.prefilter import GREETING_REPLY
from src.pipeline_config import AssistantConfig, ReplySource

MONDAY = date(2024, 6, 10)


def make_assistant(**kwargs) -> TaskAssistant:
    store = ConversationStore(defaults_provider=lambda uid: SmartDefaults())
    flow = ConversationFlow(store=store, engine=InferenceEngine(today=lambda: MONDAY))
    kwargs.setdefault("config", AssistantConfig(enable_llm=False))
    return TaskAssistant(flow=flow, chain=FallbackChain(default_strategies(MONDAY)), **kwargs)


@pytest.fixture
def sink() -> MagicMock:
    sink = MagicMock()
    sink.upsert_task.return_value = "task-1"
    return sink


@pytest.fixture
def sender() -> MagicMock:
    return MagicMock()


@pytest.fixture
def assistant(sink: MagicMock, sender: MagicMock) -> TaskAssistant:
    return make_assistant(sink=sink, sender=sender)


# ---------------------------------------------------------------------------
# Single-turn
# ---------------------------------------------------------------------------


class TestSingleTurn:
    def test_new_command_creates_plain_task(
        self, assistant: TaskAssistant, sink: MagicMock, sender: MagicMock
    ) -> None:
        reply = assistant.handle_utterance("u1", "/new test task")

        assert reply.is_complete is True
        assert reply.source is ReplySource.FALLBACK
        assert reply.text == "Đã tạo công việc: test task"
        assert reply.task_id == "task-1"
        assert reply.extraction is not None
        assert reply.extraction.strategy_level == 4
        sink.upsert_task.assert_called_once()
        user_id, draft = sink.upsert_task.call_args.args
        assert user_id == "u1"
        assert draft.title == "test task"
        assert draft.type is TaskType.TASK
        sender.send_message.assert_called_once_with("u1", reply.text)

    def test_greeting_is_answered_by_prefilter(self, assistant: TaskAssistant, sink: MagicMock) -> None:
        reply = assistant.handle_utterance("u1", "xin chào")

        assert reply.source is ReplySource.PREFILTER
        assert reply.text == GREETING_REPLY
        sink.upsert_task.assert_not_called()
        assert not assistant.flow.has_open_conversation("u1")

    def test_prefilter_can_be_disabled(self, sink: MagicMock) -> None:
        assistant = make_assistant(config=AssistantConfig(enable_llm=False, enable_pre_filter=False), sink=sink)

        reply = assistant.handle_utterance("u1", "xin chào")

        assert reply.source is ReplySource.FALLBACK

    def test_help_command(self, assistant: TaskAssistant) -> None:
        reply = assistant.handle_utterance("u1", "/help")
        assert reply.source is ReplySource.COMMAND
        assert reply.text == HELP_TEXT

    def test_natural_language_stats(self, assistant: TaskAssistant) -> None:
        reply = assistant.handle_utterance("u1", "thống kê")

        assert reply.source is ReplySource.COMMAND
        assert reply.command is not None
        assert reply.command.cmd == "stats"

    def test_list_reads_upcoming_events(self, assistant: TaskAssistant, sink: MagicMock) -> None:
        sink.list_events.return_value = [
            {"title": "Họp", "date": "2024-06-11", "time": "10:00"},
            {"title": "Gọi khách", "date": "2024-06-12"},
        ]

        reply = assistant.handle_utterance("u1", "/list")

        assert reply.source is ReplySource.COMMAND
        assert reply.text == "1. Họp @2024-06-11 @10:00\n2. Gọi khách @2024-06-12"
        sink.list_events.assert_called_once_with("2024-06-10", "2024-06-17")

    def test_list_without_events(self, assistant: TaskAssistant, sink: MagicMock) -> None:
        sink.list_events.return_value = []
        assert assistant.handle_utterance("u1", "/list").text == NO_EVENTS_TEXT

    @pytest.mark.parametrize("text", ["/new", "/new   ", "/new @2024-06-11 @10:00"])
    def test_new_without_content_creates_nothing(
        self, assistant: TaskAssistant, sink: MagicMock, text: str
    ) -> None:
        reply = assistant.handle_utterance("u1", text)

        assert reply.text == INVALID_TASK_TEXT
        assert reply.source is ReplySource.COMMAND
        assert reply.is_complete is False
        assert reply.task is None
        sink.upsert_task.assert_not_called()

    def test_new_date_and_time_arguments(self, assistant: TaskAssistant, sink: MagicMock) -> None:
        reply = assistant.handle_utterance("u1", "/new nộp báo cáo @2024-06-20 @09:30")

        assert reply.is_complete is True
        _, draft = sink.upsert_task.call_args.args
        assert draft.title == "nộp báo cáo"
        assert draft.date == "2024-06-20"
        assert draft.time == "09:30"

    def test_unknown_slash_command_is_not_a_task(self, assistant: TaskAssistant, sink: MagicMock) -> None:
        reply = assistant.handle_utterance("u1", "/xyz")

        assert reply.source is ReplySource.COMMAND
        assert reply.command is not None
        assert reply.command.cmd == "unknown"
        assert "/xyz" in reply.text
        assert reply.extraction is None
        sink.upsert_task.assert_not_called()

    def test_works_without_collaborators(self) -> None:
        reply = make_assistant().handle_utterance("u1", "/new test task")
        assert reply.is_complete is True
        assert reply.task_id is None


# ---------------------------------------------------------------------------
# Multi-turn
# ---------------------------------------------------------------------------


class TestMultiTurn:
    def test_date_and_time_asked_together(self, assistant: TaskAssistant, sink: MagicMock) -> None:
        first = assistant.handle_utterance("u1", "họp dự án")

        assert first.is_complete is False
        assert first.questions == [GROUP_QUESTIONS[("date", "time")]]
        assert first.task is not None
        assert first.task.type is TaskType.CALENDAR
        sink.upsert_task.assert_not_called()

        second = assistant.handle_utterance("u1", "ngày mai 14:00")

        assert second.is_complete is True
        assert second.source is ReplySource.ANSWER
        assert second.text == "Đã tạo lịch hẹn: họp dự án lúc 14:00 ngày 2024-06-11"
        assert not assistant.flow.has_open_conversation("u1")
        sink.upsert_task.assert_called_once()

    def test_time_extracted_then_date_asked(self, assistant: TaskAssistant) -> None:
        first = assistant.handle_utterance("u1", "họp dự án lúc 15:00")

        assert first.questions == [SINGLE_FIELD_QUESTIONS["date"]]
        assert first.task is not None
        assert first.task.time == "15:00"

        second = assistant.handle_utterance("u1", "thứ 6")

        assert second.is_complete is True
        assert second.task is not None
        assert second.task.date == "2024-06-14"

    def test_unanswered_question_is_asked_again(self, assistant: TaskAssistant) -> None:
        assistant.handle_utterance("u1", "họp dự án")

        reply = assistant.handle_utterance("u1", "không biết")

        assert reply.is_complete is False
        assert reply.questions == [GROUP_QUESTIONS[("date", "time")]]

    def test_cancel_discards_conversation(self, assistant: TaskAssistant, sink: MagicMock) -> None:
        assistant.handle_utterance("u1", "họp dự án")

        reply = assistant.handle_utterance("u1", "hủy")

        assert reply.text == CANCELLED_TEXT
        assert not assistant.flow.has_open_conversation("u1")
        sink.upsert_task.assert_not_called()

    def test_new_command_abandons_open_conversation(self, assistant: TaskAssistant) -> None:
        assistant.handle_utterance("u1", "họp dự án")

        reply = assistant.handle_utterance("u1", "/new test task")

        assert reply.is_complete is True
        assert reply.task is not None
        assert reply.task.title == "test task"

    @pytest.mark.parametrize("text", ["/new", "/xyz"])
    def test_rejected_command_keeps_open_conversation(
        self, assistant: TaskAssistant, sink: MagicMock, text: str
    ) -> None:
        assistant.handle_utterance("u1", "họp dự án")

        assistant.handle_utterance("u1", text)

        assert assistant.flow.pending_fields("u1") == ("date", "time")
        sink.upsert_task.assert_not_called()

    def test_small_talk_after_detail_question_is_an_answer(self, assistant: TaskAssistant) -> None:
        assistant.handle_utterance("u1", "họp dự án")

        reply = assistant.handle_utterance("u1", "cảm ơn")

        assert reply.source is ReplySource.ANSWER
        assert reply.questions == [GROUP_QUESTIONS[("date", "time")]]

    def test_greeting_while_title_is_pending(self, sink: MagicMock) -> None:
        extractor = MagicMock(
            return_value=ExtractionResult(
                title="", strategy_level=0, strategy_name="LLM", confidence=0.9, success=True
            )
        )
        assistant = make_assistant(config=AssistantConfig(), extractor=extractor, sink=sink)
        first = assistant.handle_utterance("u1", "nhắc tôi việc này")
        assert first.questions == [SINGLE_FIELD_QUESTIONS["title"]]

        greeting = assistant.handle_utterance("u1", "xin chào")

        assert greeting.source is ReplySource.PREFILTER
        assert greeting.text == GREETING_REPLY
        assert assistant.flow.pending_fields("u1") == ("title",)

        done = assistant.handle_utterance("u1", "mua sữa")

        assert done.is_complete is True
        assert done.task is not None
        assert done.task.title == "mua sữa"
        sink.upsert_task.assert_called_once()

    def test_users_are_independent(self, assistant: TaskAssistant) -> None:
        assistant.handle_utterance("u1", "họp dự án")
        reply = assistant.handle_utterance("u2", "/new test task")

        assert reply.is_complete is True
        assert assistant.flow.has_open_conversation("u1")

    def test_explicit_answer(self, assistant: TaskAssistant, sink: MagicMock) -> None:
        assistant.handle_utterance("u1", "họp dự án")

        outcome = assistant.answer("u1", "ngày mai 14:00", ["date", "time"])

        assert outcome.is_complete is True
        assert not assistant.flow.has_open_conversation("u1")
        sink.upsert_task.assert_called_once()

    def test_explicit_answer_without_conversation(self, assistant: TaskAssistant) -> None:
        with pytest.raises(NoActiveConversationError):
            assistant.answer("ghost", "ngày mai", "date")

    def test_sink_failure_keeps_conversation_open(self, assistant: TaskAssistant, sink: MagicMock) -> None:
        sink.upsert_task.side_effect = RuntimeError("db down")
        assistant.handle_utterance("u1", "họp dự án")

        with pytest.raises(RuntimeError):
            assistant.handle_utterance("u1", "ngày mai 14:00")
        assert assistant.flow.has_open_conversation("u1")


# ---------------------------------------------------------------------------
# LLM stage
# ---------------------------------------------------------------------------


class TestLLMStage:
    def test_llm_result_is_used(self, sink: MagicMock) -> None:
        extractor = MagicMock(
            return_value=ExtractionResult(
                title="Họp team",
                strategy_level=0,
                strategy_name="LLM",
                date="2024-06-11",
                time="10:00",
                confidence=0.9,
                success=True,
            )
        )
        assistant = make_assistant(config=AssistantConfig(), extractor=extractor, sink=sink)

        reply = assistant.handle_utterance("u1", "họp team 10h sáng mai")

        assert reply.source is ReplySource.LLM
        assert reply.is_complete is True
        assert reply.task is not None
        assert reply.task.type is TaskType.CALENDAR
        extractor.assert_called_once_with("họp team 10h sáng mai")

    def test_llm_failure_falls_back(self) -> None:
        extractor = MagicMock(side_effect=LLMUnavailableError("disabled"))
        assistant = make_assistant(config=AssistantConfig(), extractor=extractor)

        reply = assistant.handle_utterance("u1", "/new test task")

        assert reply.source is ReplySource.FALLBACK
        assert reply.task is not None
        assert reply.task.title == "test task"
        extractor.assert_called_once()

    def test_no_fallback_propagates_llm_error(self) -> None:
        extractor = MagicMock(side_effect=LLMUnavailableError("disabled"))
        assistant = make_assistant(
            config=AssistantConfig(enable_fallback=False), extractor=extractor
        )

        with pytest.raises(LLMUnavailableError):
            assistant.handle_utterance("u1", "/new test task")

    def test_optimizer_disabled_does_not_open_conversation(self) -> None:
        assistant = make_assistant(config=AssistantConfig(enable_llm=False, enable_conversation_optimizer=False))

        reply = assistant.handle_utterance("u1", "họp dự án")

        assert reply.is_complete is False
        assert reply.questions == []
        assert not assistant.flow.has_open_conversation("u1")


class TestConfirmationText:
    def test_calendar(self) -> None:
        draft = TaskDraft(
            title="Họp",
            date="2024-06-11",
            time="10:00",
            location="Zoom",
            attendees=["John", "Mary"],
            type=TaskType.CALENDAR,
        )
        assert confirmation_text(draft) == (
            "Đã tạo lịch hẹn: Họp lúc 10:00 ngày 2024-06-11 tại Zoom với John, Mary"
        )

    def test_plain_task(self) -> None:
        assert confirmation_text(TaskDraft(title="mua sữa")) == "Đã tạo công việc: mua sữa"


class TestVoice:
    def test_transcribed_text_is_handled(self, sink: MagicMock) -> None:
        transcriber = MagicMock()
        transcriber.transcribe.return_value = "/new test task"
        assistant = make_assistant(sink=sink, transcriber=transcriber)

        reply = assistant.handle_voice("u1", b"RIFF....")

        assert reply.is_complete is True
        assert reply.task is not None
        assert reply.task.title == "test task"
        transcriber.transcribe.assert_called_once_with(b"RIFF....")

    def test_empty_transcription_gets_short_reply(self) -> None:
        transcriber = MagicMock()
        transcriber.transcribe.return_value = ""
        assistant = make_assistant(transcriber=transcriber)

        reply = assistant.handle_voice("u1", b"...")

        assert reply.source is ReplySource.PREFILTER

    def test_no_transcriber(self) -> None:
        with pytest.raises(RuntimeError):
            make_assistant().handle_voice("u1", b"...")
