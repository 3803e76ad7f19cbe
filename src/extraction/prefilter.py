"""Cheap pre-filter that answers greetings and small talk without extraction."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

GREETING_REPLY = (
    "Xin chào! Tôi là trợ lý quản lý công việc. Bạn muốn tạo task hay lịch hẹn gì không?"
)
SHORT_REPLY = "Xin chào! Bạn cần tôi giúp gì? Hãy mô tả công việc hoặc lịch hẹn bạn muốn tạo."
QUESTION_REPLY = (
    "Tôi là trợ lý giúp bạn quản lý công việc và lịch hẹn. Hãy cho tôi biết task cần tạo nhé!"
)
NON_TASK_REPLY = "Mình ghi nhận rồi. Khi cần tạo task hay lịch hẹn, bạn cứ nhắn nhé!"

_GREETING_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^(xin chào|chào|hi|hello|good morning|good afternoon|good evening)[!.]*$", re.IGNORECASE),
    re.compile(r"^(chào bạn|chào em|chào anh|chào chị)[!.]*$", re.IGNORECASE),
    re.compile(r"^(tôi|mình|em) (tên|là) ", re.IGNORECASE),
]

_QUESTION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^(bạn|em|anh|chị) (là ai|tên gì|làm gì|ở đâu)", re.IGNORECASE),
    re.compile(r"^(ai|gì|sao|tại sao|như thế nào|thế nào)\b", re.IGNORECASE),
    re.compile(r"^(có thể|bạn có thể) (giúp|hỗ trợ|làm gì)", re.IGNORECASE),
]

_NON_TASK_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"^(cảm ơn|thanks|thank you|tạm biệt|bye|chào tạm biệt)[!.]*$", re.IGNORECASE),
    re.compile(r"^(thế nào|như thế nào|tình hình)\b", re.IGNORECASE),
    re.compile(r"\b(thời tiết|weather|ăn gì|uống gì|mệt|vui|buồn)\b", re.IGNORECASE),
]

_TASK_INDICATORS: list[re.Pattern[str]] = [
    re.compile(r"\b(\d{1,2}:\d{2}|\d{1,2}h\d{0,2}|sáng|chiều|tối|ngày mai|hôm nay|tuần sau)\b", re.IGNORECASE),
    re.compile(r"\b(gặp|họp|meeting|call|gọi|làm|thực hiện|hoàn thành|submit|nộp|deadline|nhắc|remind)\b", re.IGNORECASE),
    re.compile(r"\b(lịch|calendar|cuộc họp|appointment|sự kiện|event|task|nhiệm vụ)\b", re.IGNORECASE),
    re.compile(r"\b(với|cùng|tại|ở|phòng|zoom|teams|google meet)\b", re.IGNORECASE),
]

# Our own follow-up questions; an utterance right after one is an answer
_DETAIL_REQUEST_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"\b(thời gian|time|khi nào|lúc nào|mấy giờ)\b", re.IGNORECASE),
    re.compile(r"\b(ai|who|với ai|cùng ai)\b", re.IGNORECASE),
    re.compile(r"\b(ở đâu|where|tại đâu|địa điểm)\b", re.IGNORECASE),
    re.compile(r"\b(mô tả|chi tiết|details|description|ghi chú)\b", re.IGNORECASE),
]


@dataclass
class PreFilterResult:
    """Verdict on whether a message is worth extracting."""

    is_task_likely: bool
    confidence: float
    reason: str
    quick_reply: str | None = None


def pre_filter(message: str) -> PreFilterResult:
    """Classify ``message`` as likely task or not, without any extraction."""
    normalized = message.strip().lower()

    if len(normalized) < 3:
        return PreFilterResult(False, 0.9, "Message too short", SHORT_REPLY)

    if any(p.search(normalized) for p in _GREETING_PATTERNS):
        return PreFilterResult(False, 0.85, "Pure greeting detected", GREETING_REPLY)

    indicator_count = sum(1 for p in _TASK_INDICATORS if p.search(normalized))

    if indicator_count == 0 and any(p.search(normalized) for p in _NON_TASK_PATTERNS):
        return PreFilterResult(False, 0.85, "Non-task pattern detected", NON_TASK_REPLY)

    if indicator_count == 0 and any(p.search(normalized) for p in _QUESTION_PATTERNS):
        return PreFilterResult(False, 0.75, "Question pattern detected", QUESTION_REPLY)

    if indicator_count >= 2:
        return PreFilterResult(True, 0.9, f"Multiple task indicators found ({indicator_count})")
    if indicator_count == 1:
        return PreFilterResult(True, 0.7, "Task indicator found")

    if len(normalized) > 20 and len(normalized.split()) > 3:
        return PreFilterResult(True, 0.6, "Complex message, might contain a task")

    return PreFilterResult(False, 0.5, "Unclear intent")


def pre_filter_with_context(message: str, history: Sequence[str] | None = None) -> PreFilterResult:
    """Like :func:`pre_filter`, but trusts messages that follow a detail request."""
    result = pre_filter(message)
    if history and is_task_detail_request(history[-1]):
        return PreFilterResult(
            is_task_likely=True,
            confidence=max(result.confidence, 0.8),
            reason="Following task detail request",
        )
    return result


def is_task_detail_request(message: str) -> bool:
    return any(p.search(message) for p in _DETAIL_REQUEST_PATTERNS)
