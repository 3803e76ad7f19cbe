"""Pipeline configuration: reply source enum and AssistantConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ReplySource(StrEnum):
    """Which stage of the pipeline produced a reply."""

    PREFILTER = "prefilter"
    COMMAND = "command"
    LLM = "llm"
    FALLBACK = "fallback"
    ANSWER = "answer"


@dataclass(frozen=True)
class AssistantConfig:
    """Immutable switches for the utterance-handling pipeline.

    Defaults mirror the bot's production behaviour: every stage enabled,
    the LLM stage gated separately by ``settings.use_llm``.
    """

    enable_pre_filter: bool = True
    enable_llm: bool = True
    enable_fallback: bool = True
    enable_conversation_optimizer: bool = True
    # Non-task messages are answered directly only above this confidence.
    pre_filter_threshold: float = 0.8
