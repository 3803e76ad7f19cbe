"""Progressive fallback chain used when LLM extraction is unavailable or fails.

Strategies run from most to least precise. The first result that succeeds
with confidence above ``ACCEPTANCE_THRESHOLD`` is returned; if none does, an
emergency result built from the raw message is returned instead, so callers
always receive a successful result.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import date
from typing import Any

from src.extraction import patterns
from src.extraction.commands import strip_new_command
from src.extraction.models import ExtractionResult, MeetingType
from src.extraction.normalize import normalize_date, normalize_time

logger = logging.getLogger(__name__)

ACCEPTANCE_THRESHOLD = 0.3
ADDITIONAL_INFO_BONUS = 0.1
REGEX_CONFIDENCE_CAP = 0.8
EMERGENCY_LEVEL = 99


def extract_additional_info(
    message: str, result: ExtractionResult, today: date | None = None
) -> float:
    """Fill still-empty fields of ``result`` from ``message``.

    Tries time, date, location (which also sets the meeting type), emails and
    attendees, in that order. Each successful sub-extraction is worth
    ``ADDITIONAL_INFO_BONUS``; the summed bonus is returned.
    """
    bonus = 0.0

    if not result.time:
        match = patterns.first_match(patterns.TIME_PATTERNS, message)
        if match:
            result.time = normalize_time(match.group(0))
            bonus += ADDITIONAL_INFO_BONUS

    if not result.date:
        match = patterns.first_match(patterns.DATE_PATTERNS, message)
        if match:
            result.date = normalize_date(match.group(0), today)
            bonus += ADDITIONAL_INFO_BONUS

    if not result.location:
        location = patterns.find_location(message)
        if location:
            result.location = location
            result.meeting_type = meeting_type_for(location)
            bonus += ADDITIONAL_INFO_BONUS

    emails = patterns.extract_emails(message)
    if emails:
        result.emails = emails
        bonus += ADDITIONAL_INFO_BONUS

    if not result.attendees:
        names = patterns.find_people(message)
        if names:
            result.attendees = names
            bonus += ADDITIONAL_INFO_BONUS

    return bonus


def meeting_type_for(location: str) -> MeetingType:
    lowered = location.lower()
    if "zoom" in lowered:
        return MeetingType.ZOOM
    if "teams" in lowered:
        return MeetingType.TEAMS
    if "google meet" in lowered:
        return MeetingType.GOOGLE_MEET
    return MeetingType.IN_PERSON


def truncate(text: str, limit: int, keep: int) -> str:
    """Cut ``text`` to ``keep`` characters plus an ellipsis when longer than ``limit``."""
    return text[:keep] + "..." if len(text) > limit else text


class FallbackStrategy(ABC):
    """One extraction strategy of the chain."""

    level: int
    name: str

    def __init__(self, today: date | None = None) -> None:
        self._today = today

    def _result(self, title: str, **kwargs: Any) -> ExtractionResult:
        return ExtractionResult(title=title, strategy_level=self.level, strategy_name=self.name, **kwargs)

    @abstractmethod
    def extract(self, message: str) -> ExtractionResult:
        """Extract a confidence-scored draft from ``message``."""


class RegexStrategy(FallbackStrategy):
    level = 1
    name = "Enhanced Regex Patterns"

    def extract(self, message: str) -> ExtractionResult:
        result = self._result(message)
        confidence = 0.0
        matched = False

        hit = patterns.first_action_match(patterns.MEETING_PATTERNS, message)
        if hit:
            candidate, match = hit
            result.title = f"{match.group('verb')} {match.group('subject')}".strip()
            self._fill_slot(result, candidate.slot, match)
            confidence += 0.3
            matched = True
        else:
            hit = patterns.first_action_match(patterns.TASK_PATTERNS, message)
            if hit:
                candidate, match = hit
                result.title = match.group("subject").strip()
                self._fill_slot(result, candidate.slot, match)
                confidence += 0.25
                matched = True

        confidence += extract_additional_info(message, result, self._today)
        result.confidence = min(confidence, REGEX_CONFIDENCE_CAP)
        result.success = matched
        return result

    def _fill_slot(self, result: ExtractionResult, slot: str | None, match: re.Match[str]) -> None:
        value = match.groupdict().get("value")
        if not slot or not value:
            return
        if slot == "time":
            result.time = normalize_time(value)
        elif slot == "date":
            result.date = normalize_date(value, self._today)
        else:
            result.location = value.strip()
            result.meeting_type = meeting_type_for(result.location)


class KeywordStrategy(FallbackStrategy):
    level = 2
    name = "Keyword Extraction"

    def extract(self, message: str) -> ExtractionResult:
        action_found = patterns.contains_action_keyword(message)
        people = patterns.capitalized_words(message)
        result = self._result(
            message,
            attendees=people,
            confidence=0.5 if action_found else 0.3,
            success=action_found or bool(people),
        )
        # Fills missing fields; the keyword confidence stays as is.
        extract_additional_info(message, result, self._today)
        return result


class TemplateStrategy(FallbackStrategy):
    level = 3
    name = "Template Matching"

    def extract(self, message: str) -> ExtractionResult:
        for template in patterns.SENTENCE_TEMPLATES:
            match = template.pattern.match(message.strip())
            if not match:
                continue
            title, tail = match.group(1).strip(), match.group(3).strip()
            # "at" is shared with the location template
            if template.slot == "time" and patterns.first_match(patterns.TIME_PATTERNS, tail) is None:
                continue
            result = self._result(title or message, confidence=template.confidence, success=True)
            if template.slot == "time":
                result.time = normalize_time(tail)
            elif template.slot == "attendees":
                result.attendees = [tail]
            else:
                result.location = tail
                result.meeting_type = meeting_type_for(tail)
            return result

        return self._result(message, confidence=0.2, success=False)


class StructureStrategy(FallbackStrategy):
    level = 4
    name = "Basic Structure Detection"

    def extract(self, message: str) -> ExtractionResult:
        sentences = [s.strip() for s in patterns.SENTENCE_SPLIT.split(message) if s.strip()]
        title = sentences[0] if sentences else message
        result = self._result(title, confidence=0.4, success=True)
        extract_additional_info(message, result, self._today)
        return result


class MinimalStrategy(FallbackStrategy):
    level = 5
    name = "Minimal Fallback"

    def extract(self, message: str) -> ExtractionResult:
        return self._result(truncate(message, 50, 47), confidence=0.2, success=True)


def emergency_fallback(message: str) -> ExtractionResult:
    """Result of last resort: a labelled, truncated copy of the message."""
    return ExtractionResult(
        title="Task: " + truncate(message, 30, 27),
        strategy_level=EMERGENCY_LEVEL,
        strategy_name="Emergency Fallback",
        confidence=0.1,
        success=True,
    )


def default_strategies(today: date | None = None) -> tuple[FallbackStrategy, ...]:
    return (
        RegexStrategy(today),
        KeywordStrategy(today),
        TemplateStrategy(today),
        StructureStrategy(today),
        MinimalStrategy(today),
    )


class FallbackChain:
    """Ordered strategies with a shared acceptance bar."""

    def __init__(
        self,
        strategies: Sequence[FallbackStrategy] | None = None,
        threshold: float = ACCEPTANCE_THRESHOLD,
    ) -> None:
        self.strategies = tuple(strategies) if strategies is not None else default_strategies()
        self.threshold = threshold

    def execute_progressive_fallback(
        self, message: str, prior_error: BaseException | None = None
    ) -> ExtractionResult:
        """Run the strategies in order and return the first adequate result.

        Args:
            message: The raw utterance. A leading ``/new`` command is stripped.
            prior_error: The upstream (LLM) failure that triggered the chain.

        Returns:
            A successful ExtractionResult; the emergency result if no strategy
            clears the acceptance bar.
        """
        logger.warning("LLM parsing unavailable, running fallback chain: %s", prior_error or "no LLM")
        text = strip_new_command(message)

        for strategy in self.strategies:
            try:
                result = strategy.extract(text)
            except Exception:
                logger.exception("Fallback strategy %s failed", strategy.name)
                continue

            if result.success and result.confidence > self.threshold:
                logger.info(
                    "Fallback level %d (%s) accepted with confidence %.2f",
                    strategy.level,
                    strategy.name,
                    result.confidence,
                )
                return result

            logger.debug(
                "Fallback level %d rejected (success=%s, confidence=%.2f)",
                strategy.level,
                result.success,
                result.confidence,
            )

        logger.warning("All fallback strategies rejected, using emergency fallback")
        return emergency_fallback(text)

    def stats(self) -> dict[str, Any]:
        return {
            "available_strategies": len(self.strategies),
            "pattern_version": patterns.PATTERN_VERSION,
            "pattern_count": patterns.pattern_stats(),
        }


def execute_progressive_fallback(
    message: str, prior_error: BaseException | None = None
) -> ExtractionResult:
    """Run the default fallback chain over ``message``."""
    return FallbackChain().execute_progressive_fallback(message, prior_error)
