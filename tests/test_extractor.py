"""Tests for Claude tool-use extraction (Anthropic client mocked)."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from src.extraction.extractor import (
    EXTRACTION_TOOL,
    LLMUnavailableError,
    _parse_tool_response,
    extract_task,
)
from src.extraction.models import MeetingType

MONDAY = date(2024, 6, 10)


def tool_response(data: object, name: str = "store_task_draft") -> MagicMock:
    response = MagicMock()
    block = MagicMock()
    block.type = "tool_use"
    block.name = name
    block.input = data
    response.content = [block]
    return response


class TestParseToolResponse:
    """Test parsing of Claude tool_use responses."""

    def test_parse_valid_response(self) -> None:
        response = tool_response(
            {
                "title": "Họp dự án",
                "date": "ngày mai",
                "time": "3pm",
                "attendees": ["John"],
                "emails": ["john@x.com"],
                "location": "Zoom",
                "meeting_type": "zoom",
                "confidence": 0.92,
            }
        )

        result = _parse_tool_response(response, MONDAY)

        assert result.title == "Họp dự án"
        assert result.date == "2024-06-11"
        assert result.time == "15:00"
        assert result.attendees == ["John"]
        assert result.emails == ["john@x.com"]
        assert result.meeting_type is MeetingType.ZOOM
        assert result.confidence == pytest.approx(0.92)
        assert result.strategy_level == 0
        assert result.success is True

    def test_minimal_response(self) -> None:
        result = _parse_tool_response(tool_response({"title": "mua sữa", "confidence": 0.8}), MONDAY)

        assert result.title == "mua sữa"
        assert result.date is None
        assert result.time is None
        assert result.attendees == []

    def test_unknown_meeting_type_dropped(self) -> None:
        result = _parse_tool_response(
            tool_response({"title": "x", "meeting_type": "carrier pigeon", "confidence": 0.5}), MONDAY
        )
        assert result.meeting_type is None

    def test_json_string_input(self) -> None:
        result = _parse_tool_response(tool_response('{"title": "gọi mẹ", "confidence": 0.7}'), MONDAY)
        assert result.title == "gọi mẹ"

    def test_missing_title_raises(self) -> None:
        with pytest.raises(LLMUnavailableError):
            _parse_tool_response(tool_response({"title": "  ", "confidence": 0.5}), MONDAY)

    def test_no_tool_block_raises(self) -> None:
        response = MagicMock()
        text_block = MagicMock()
        text_block.type = "text"
        response.content = [text_block]

        with pytest.raises(LLMUnavailableError):
            _parse_tool_response(response, MONDAY)

    def test_other_tool_ignored(self) -> None:
        with pytest.raises(LLMUnavailableError):
            _parse_tool_response(tool_response({"title": "x"}, name="other_tool"), MONDAY)


class TestExtractTask:
    def test_disabled_raises(self) -> None:
        with patch("src.extraction.extractor.settings") as mock_settings:
            mock_settings.use_llm = False
            mock_settings.anthropic_api_key = "key"
            with pytest.raises(LLMUnavailableError):
                extract_task("họp dự án")

    def test_missing_key_raises(self) -> None:
        with patch("src.extraction.extractor.settings") as mock_settings:
            mock_settings.use_llm = True
            mock_settings.anthropic_api_key = ""
            with pytest.raises(LLMUnavailableError):
                extract_task("họp dự án")

    def test_calls_claude_with_forced_tool(self) -> None:
        with (
            patch("src.extraction.extractor.settings") as mock_settings,
            patch("src.extraction.extractor.Anthropic") as mock_anthropic,
        ):
            mock_settings.use_llm = True
            mock_settings.anthropic_api_key = "key"
            mock_settings.llm_model = "test-model"
            client = mock_anthropic.return_value
            client.messages.create.return_value = tool_response({"title": "Họp", "confidence": 0.9})

            result = extract_task("họp lúc 10h", MONDAY)

        assert result.title == "Họp"
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["tools"] == [EXTRACTION_TOOL]
        assert kwargs["tool_choice"] == {"type": "tool", "name": "store_task_draft"}
        assert "2024-06-10" in kwargs["system"]
        assert kwargs["messages"] == [{"role": "user", "content": "họp lúc 10h"}]
