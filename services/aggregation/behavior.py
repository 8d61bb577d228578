"""
Behavior Note Grouper

평면적인 행동 기록 목록을 학생별로 묶고 등급별 건수와 최신 기록을 계산.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from schemas.aggregates import BehaviorSummary, GroupedBehaviorNote
from schemas.records import BehaviorLevel, BehaviorNote
from services.aggregation.errors import ValidationError
from services.aggregation.normalizer import normalize_behavior_note

logger = logging.getLogger(__name__)

UNKNOWN_STUDENT = "Unknown Student"


def _coerce_note(note: Union[BehaviorNote, Dict[str, Any]]) -> Optional[BehaviorNote]:
    """원본 dict 는 정규화, 실패하면 None (로그만 남김)"""
    if isinstance(note, BehaviorNote):
        return note
    try:
        return normalize_behavior_note(note)
    except ValidationError as e:
        logger.warning(f"행동 기록 집계에서 제외: {e}")
        return None


def group_notes_by_student(
    notes: Iterable[Union[BehaviorNote, Dict[str, Any]]],
    student_names: Optional[Mapping[str, str]] = None,
) -> List[GroupedBehaviorNote]:
    """
    학생별 행동 기록 묶음

    - 누적 단계는 한 번의 순회(O(n)), 정렬은 출력 단계에서만
    - latest_note: 더 늦은 created_at 이 나올 때만 교체 → 동시각이면 먼저 나온 기록 유지
    - 출력 순서: latest_note.created_at 내림차순 (같으면 처음 등장한 학생 먼저)
    - 등급을 알 수 없는 기록은 notes / note_count / 등급 카운트 모두에서 제외
    """
    student_names = student_names or {}
    groups: Dict[str, Dict[str, Any]] = {}

    for raw in notes:
        note = _coerce_note(raw)
        if note is None:
            continue

        group = groups.get(note.student_id)
        if group is None:
            group = groups[note.student_id] = {
                "student_id": note.student_id,
                "student_name": None,
                "notes": [],
                "latest_note": note,
                "counts": {level: 0 for level in BehaviorLevel},
            }

        group["notes"].append(note)
        group["counts"][note.level] += 1
        if group["student_name"] is None and note.student_name:
            group["student_name"] = note.student_name

        if note.created_at > group["latest_note"].created_at:
            group["latest_note"] = note

    grouped = [
        GroupedBehaviorNote(
            student_id=student_id,
            student_name=student_names.get(student_id) or group["student_name"] or UNKNOWN_STUDENT,
            notes=sorted(group["notes"], key=lambda n: n.created_at, reverse=True),
            latest_note=group["latest_note"],
            note_count=len(group["notes"]),
            **{level.counter_field: count for level, count in group["counts"].items()},
        )
        for student_id, group in groups.items()
    ]
    # sorted 는 안정 정렬이므로 동시각 그룹은 처음 등장 순서 유지
    return sorted(grouped, key=lambda g: g.latest_note.created_at, reverse=True)


def compute_behavior_summary(notes: Iterable[Union[BehaviorNote, Dict[str, Any]]]) -> BehaviorSummary:
    counts = {level.counter_field: 0 for level in BehaviorLevel}
    for raw in notes:
        note = _coerce_note(raw)
        if note is not None:
            counts[note.level.counter_field] += 1
    return BehaviorSummary(**counts)


def latest_behavior_note(notes: Iterable[Union[BehaviorNote, Dict[str, Any]]]) -> Optional[BehaviorNote]:
    latest: Optional[BehaviorNote] = None
    for raw in notes:
        note = _coerce_note(raw)
        if note is not None and (latest is None or note.created_at > latest.created_at):
            latest = note
    return latest


def find_group(grouped: Iterable[GroupedBehaviorNote], student_id: str) -> Optional[GroupedBehaviorNote]:
    return next((g for g in grouped if g.student_id == student_id), None)
