"""Plan the fewest follow-up questions that close the remaining gaps."""

from __future__ import annotations

from collections.abc import Sequence

from src.conversation.models import ConversationState
from src.extraction.models import TaskDraft

# Fields asked together, in priority order
FIELD_GROUPS: tuple[tuple[str, ...], ...] = (
    ("date", "time"),
    ("attendees", "location"),
)

SINGLE_FIELD_QUESTIONS: dict[str, str] = {
    "title": "Bạn muốn tạo công việc gì?",
    "date": "Khi nào bạn muốn lên lịch? (ví dụ: hôm nay, ngày mai, 15/6)",
    "time": "Mấy giờ? (ví dụ: 9:00, 14:30)",
    "attendees": "Ai sẽ tham gia? (tên hoặc email)",
    "location": "Ở đâu? (địa điểm hoặc Zoom/Teams)",
    "description": "Có ghi chú gì thêm không?",
}

GROUP_QUESTIONS: dict[tuple[str, ...], str] = {
    ("date", "time"): "Khi nào? (ví dụ: hôm nay 14:00, ngày mai 9:30)",
    ("attendees", "location"): "Ai tham gia và ở đâu? (ví dụ: John, Mary tại phòng họp A1)",
}


def calculate_missing_fields(task: TaskDraft) -> list[str]:
    """Fields that still need an answer.

    Only the title is always required; date and time are required for
    calendar events.
    """
    missing: list[str] = []
    if not task.title.strip():
        missing.append("title")
    if task.is_calendar:
        if not task.date:
            missing.append("date")
        if not task.time:
            missing.append("time")
    return missing


def group_related_fields(fields: Sequence[str]) -> list[tuple[str, ...]]:
    """Greedily merge related fields; everything else stays on its own.

    Groups come out in priority order: date+time, attendees+location, then
    the remaining fields in their given order.
    """
    remaining = list(fields)
    groups: list[tuple[str, ...]] = []
    for group in FIELD_GROUPS:
        if all(f in remaining for f in group):
            groups.append(group)
            remaining = [f for f in remaining if f not in group]
    groups.extend((f,) for f in remaining)
    return groups


def question_for(group: tuple[str, ...], state: ConversationState | None = None) -> str:
    if len(group) > 1:
        return GROUP_QUESTIONS.get(group, f"Vui lòng cung cấp: {', '.join(group)}")

    field_name = group[0]
    if field_name == "time" and state is not None:
        return f"Mấy giờ? (ví dụ: 9:00, 14:30; mặc định {state.smart_defaults.default_time})"
    return SINGLE_FIELD_QUESTIONS.get(field_name, f"Vui lòng cung cấp {field_name}")


def generate_optimized_questions(
    missing_fields: Sequence[str], state: ConversationState | None = None
) -> list[str]:
    """One question per field group, in priority order."""
    return [question_for(group, state) for group in group_related_fields(missing_fields)]
