"""Tests for Settings, AssistantConfig and the reply-source enum."""

from __future__ import annotations

import dataclasses

import pytest

from src.config import Settings, get_settings
from src.conversation.store import defaults_from_settings
from src.pipeline_config import AssistantConfig, ReplySource

# ---------------------------------------------------------------------------
# Enum tests
# ---------------------------------------------------------------------------


class TestReplySource:
    def test_values(self) -> None:
        assert ReplySource.PREFILTER.value == "prefilter"
        assert ReplySource.FALLBACK.value == "fallback"
        assert ReplySource.ANSWER.value == "answer"

    def test_from_string(self) -> None:
        assert ReplySource("llm") is ReplySource.LLM

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            ReplySource("invalid")

    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(ReplySource.COMMAND, str)


# ---------------------------------------------------------------------------
# AssistantConfig tests
# ---------------------------------------------------------------------------


class TestAssistantConfig:
    def test_defaults(self) -> None:
        cfg = AssistantConfig()
        assert cfg.enable_pre_filter is True
        assert cfg.enable_llm is True
        assert cfg.enable_fallback is True
        assert cfg.enable_conversation_optimizer is True
        assert cfg.pre_filter_threshold == 0.8

    def test_frozen(self) -> None:
        cfg = AssistantConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.enable_llm = False  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Settings tests
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("USE_LLM", "CONVERSATION_TTL_HOURS", "DEFAULT_TIME", "TIME_ZONE"):
            monkeypatch.delenv(name, raising=False)

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.use_llm is False
        assert s.conversation_ttl_hours == 24
        assert s.default_time == "09:00"
        assert s.time_zone == "Asia/Ho_Chi_Minh"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONVERSATION_TTL_HOURS", "6")
        monkeypatch.setenv("USE_LLM", "true")

        s = Settings(_env_file=None)  # type: ignore[call-arg]

        assert s.conversation_ttl_hours == 6
        assert s.use_llm is True

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_smart_defaults_follow_settings(self) -> None:
        settings = get_settings()
        defaults = defaults_from_settings("u1")
        assert defaults.default_time == settings.default_time
        assert defaults.working_hours == (settings.working_hours_start, settings.working_hours_end)
