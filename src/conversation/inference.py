"""Rule-based inference of missing draft fields.

Two rule families fill fields that are still empty:

* default rules look at the draft itself (e.g. a "standup" is at 09:00);
* context rules look at the whole conversation history joined together.

Rules are plain descriptors evaluated in declared order. The first rule that
matches a field decides it; the value is applied only when the rule's
confidence reaches the acceptance threshold, but every match is reported.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date

from src.conversation.models import ConversationState, InferenceResult
from src.extraction.models import TaskDraft
from src.extraction.normalize import next_week_iso, next_weekday, today_iso, tomorrow_iso

logger = logging.getLogger(__name__)

MAX_INFERENCE_ATTEMPTS = 3
MIN_CONFIDENCE_THRESHOLD = 0.7
# Fields a draft can have at most; the baseline for question reduction.
ALL_FIELDS: tuple[str, ...] = ("title", "date", "time", "attendees", "location", "description")


@dataclass(frozen=True)
class TitleContains:
    """Predicate: the draft title contains ``word`` (case-insensitive)."""

    word: str

    def __call__(self, task: TaskDraft) -> bool:
        return self.word in task.title.lower()


@dataclass(frozen=True)
class MoreAttendeesThan:
    """Predicate: the draft lists more than ``count`` attendees."""

    count: int

    def __call__(self, task: TaskDraft) -> bool:
        return len(task.attendees) > self.count


def next_monday(today: date) -> str:
    return next_weekday(0, today)


@dataclass(frozen=True)
class DefaultRule:
    field: str
    predicate: Callable[[TaskDraft], bool]
    value: str | Callable[[date], str]
    confidence: float
    reasoning: str

    def resolve(self, today: date) -> str:
        return self.value(today) if callable(self.value) else self.value


@dataclass(frozen=True)
class ContextRule:
    field: str
    pattern: re.Pattern[str]
    value: str | Callable[[re.Match[str], date], str]
    confidence: float

    def resolve(self, match: re.Match[str], today: date) -> str:
        return self.value(match, today) if callable(self.value) else self.value


DEFAULT_RULES: tuple[DefaultRule, ...] = (
    DefaultRule("time", TitleContains("standup"), "09:00", 0.8, "Standup meetings typically at 9 AM"),
    DefaultRule("time", TitleContains("lunch"), "12:00", 0.9, "Lunch meetings typically at noon"),
    DefaultRule("time", TitleContains("review"), "14:00", 0.7, "Review meetings typically in afternoon"),
    DefaultRule("location", TitleContains("remote"), "Google Meet", 0.85, "Remote indicates online meeting"),
    DefaultRule("location", MoreAttendeesThan(5), "Conference Room", 0.7, "Large meetings need conference room"),
    DefaultRule("date", TitleContains("urgent"), today_iso, 0.8, "Urgent tasks scheduled for today"),
    DefaultRule("date", TitleContains("weekly"), next_monday, 0.75, "Weekly meetings typically on Monday"),
)

CONTEXT_RULES: tuple[ContextRule, ...] = (
    ContextRule("time", re.compile(r"sáng", re.IGNORECASE), "09:00", 0.6),
    ContextRule("time", re.compile(r"chiều", re.IGNORECASE), "14:00", 0.6),
    ContextRule("time", re.compile(r"tối", re.IGNORECASE), "19:00", 0.6),
    ContextRule("time", re.compile(r"morning", re.IGNORECASE), "09:00", 0.6),
    ContextRule("time", re.compile(r"afternoon", re.IGNORECASE), "14:00", 0.6),
    ContextRule("time", re.compile(r"evening", re.IGNORECASE), "18:00", 0.6),
    ContextRule("date", re.compile(r"hôm nay|today", re.IGNORECASE), lambda m, d: today_iso(d), 0.9),
    ContextRule("date", re.compile(r"ngày mai|tomorrow", re.IGNORECASE), lambda m, d: tomorrow_iso(d), 0.9),
    ContextRule("date", re.compile(r"tuần sau|next week", re.IGNORECASE), lambda m, d: next_week_iso(d), 0.8),
    ContextRule("location", re.compile(r"zoom", re.IGNORECASE), "Zoom Meeting", 0.9),
    ContextRule("location", re.compile(r"teams", re.IGNORECASE), "Microsoft Teams", 0.9),
    ContextRule("location", re.compile(r"google meet", re.IGNORECASE), "Google Meet", 0.9),
    ContextRule("location", re.compile(r"phòng (\w+)", re.IGNORECASE), lambda m, d: f"Phòng {m.group(1)}", 0.8),
)


def _ordered_fields(rules: Sequence[DefaultRule] | Sequence[ContextRule]) -> list[str]:
    """Distinct rule fields in order of first declaration."""
    return list(dict.fromkeys(rule.field for rule in rules))


class InferenceEngine:
    """Applies default and context rules to a conversation's draft."""

    def __init__(
        self,
        default_rules: Sequence[DefaultRule] = DEFAULT_RULES,
        context_rules: Sequence[ContextRule] = CONTEXT_RULES,
        max_attempts: int = MAX_INFERENCE_ATTEMPTS,
        min_confidence: float = MIN_CONFIDENCE_THRESHOLD,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.default_rules = tuple(default_rules)
        self.context_rules = tuple(context_rules)
        self.max_attempts = max_attempts
        self.min_confidence = min_confidence
        self._today = today

    def today(self) -> date:
        return self._today()

    def apply_smart_inference(self, state: ConversationState) -> list[InferenceResult]:
        """Fill empty fields of ``state.current_task`` from rules.

        Counts one attempt per call. Once ``max_attempts`` is reached this is a
        no-op returning an empty list.
        """
        if state.inference_attempts >= self.max_attempts:
            logger.debug("Inference limit reached for user %s", state.user_id)
            return []
        state.inference_attempts += 1

        today = self.today()
        results = self._apply_default_rules(state.current_task, today)
        results.extend(self._apply_context_rules(state, today))
        return results

    def _apply_default_rules(self, task: TaskDraft, today: date) -> list[InferenceResult]:
        results: list[InferenceResult] = []
        for field_name in _ordered_fields(self.default_rules):
            if task.has(field_name):
                continue
            for rule in self.default_rules:
                if rule.field != field_name or not rule.predicate(task):
                    continue
                result = InferenceResult(
                    field=field_name,
                    value=rule.resolve(today),
                    confidence=rule.confidence,
                    reasoning=rule.reasoning,
                    success=rule.confidence >= self.min_confidence,
                )
                self._record(task, result)
                results.append(result)
                break
        return results

    def _apply_context_rules(self, state: ConversationState, today: date) -> list[InferenceResult]:
        results: list[InferenceResult] = []
        task = state.current_task
        context = " ".join(state.conversation_history)
        for field_name in _ordered_fields(self.context_rules):
            if task.has(field_name):
                continue
            for rule in self.context_rules:
                if rule.field != field_name:
                    continue
                match = rule.pattern.search(context)
                if not match:
                    continue
                result = InferenceResult(
                    field=field_name,
                    value=rule.resolve(match, today),
                    confidence=rule.confidence,
                    reasoning=f'Inferred from conversation context: "{match.group(0)}"',
                    success=rule.confidence >= self.min_confidence,
                )
                self._record(task, result)
                results.append(result)
                break
        return results

    def _record(self, task: TaskDraft, result: InferenceResult) -> None:
        if result.success:
            setattr(task, result.field, result.value)
            logger.info("Inferred %s=%s (%s)", result.field, result.value, result.reasoning)
        else:
            logger.debug(
                "Skipped %s=%s below threshold (%.2f)", result.field, result.value, result.confidence
            )


def optimization_confidence(results: Sequence[InferenceResult], missing_fields: Sequence[str]) -> float:
    """Blend how many fields are resolved with how sure the inferences were."""
    avg_confidence = sum(r.confidence for r in results) / len(results) if results else 0.0
    reduction_rate = 1 - len(missing_fields) / len(ALL_FIELDS)
    return min(0.95, reduction_rate * 0.7 + avg_confidence * 0.3)
