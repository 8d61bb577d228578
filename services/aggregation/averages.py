"""
Weighted Average Calculator

평가 요소별 가중치를 반영한 과목 평균 / 전체 평균 / 반 통계 계산.

- 내부 표준 척도는 0~100 백분율 (0~10 표시는 화면 단에서 변환)
- 결석 점수는 분자·분모 모두에서 제외 (0점 처리 아님)
- 순수 함수: I/O 없음, 입력 레코드를 수정하지 않음
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

from schemas.aggregates import (
    AggregationPolicy,
    ComponentContribution,
    ScoreStats,
    StudentScoreStats,
    SubjectAverage,
)
from schemas.records import ScoreRecord
from services.aggregation.errors import ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 등급 기준 (0~100)
LETTER_GRADE_CUTOFFS: Sequence[Tuple[float, str]] = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)

DISTRIBUTION_BUCKETS: Sequence[Tuple[str, float, float]] = (
    ("0-59", 0.0, 60.0),
    ("60-69", 60.0, 70.0),
    ("70-79", 70.0, 80.0),
    ("80-89", 80.0, 90.0),
    ("90-100", 90.0, float("inf")),
)


def letter_grade(percentage: float) -> str:
    for cutoff, letter in LETTER_GRADE_CUTOFFS:
        if percentage >= cutoff:
            return letter
    return "F"


def _is_countable(record: ScoreRecord) -> bool:
    """결석이 아니고 값이 유효한 점수인지 판단 (잘못된 값은 경고 로그)"""
    if record.is_absent:
        return False
    if record.max_score <= 0:
        logger.warning(f"만점이 0 이하인 점수 제외: score={record.score_id} component={record.grade_component_id}")
        return False
    if record.weight <= 0:
        logger.warning(f"가중치가 0 이하인 점수 제외: score={record.score_id} component={record.grade_component_id}")
        return False
    if not 0 <= record.score <= record.max_score:
        logger.warning(f"범위를 벗어난 점수 제외: score={record.score_id} value={record.score}/{record.max_score}")
        return False
    return True


def _weighted_components(records: Iterable[ScoreRecord]):
    """
    평가 요소별 (가중치 합, 가중 백분율 합, 건수, 이름) 누적
    - 요소 순서는 처음 등장한 순서
    """
    components: Dict[str, List] = {}
    for record in records:
        if not _is_countable(record):
            continue
        percentage = record.score / record.max_score * 100
        entry = components.setdefault(record.grade_component_id, [0.0, 0.0, 0, record.component_name])
        entry[0] += record.weight
        entry[1] += percentage * record.weight
        entry[2] += 1
    return components


def _weighted_average(records: Iterable[ScoreRecord]) -> float:
    components = _weighted_components(records)
    total_weight = sum(c[0] for c in components.values())
    if total_weight <= 0:
        return 0.0
    return round(sum(c[1] for c in components.values()) / total_weight, 2)


# =========================================================
# 1) 과목 평균
# =========================================================

def compute_subject_average(
    records: Iterable[ScoreRecord],
    *,
    student_id: str,
    subject_id: str,
) -> SubjectAverage:
    """
    (학생, 과목) 한 쌍의 가중 평균

    average = Σ(백분율 × 가중치) / Σ(가중치), 결석 제외
    포함된 점수가 하나도 없으면 average = 0, component_breakdown = []
    """
    records = list(records)
    if records and not subject_id:
        raise ConfigurationError("subject_id is required when scores are given")
    if records and not student_id:
        raise ConfigurationError("student_id is required when scores are given")
    for record in records:
        if record.student_id != student_id or record.subject_id != subject_id:
            raise ConfigurationError(
                f"score {record.score_id} belongs to ({record.student_id}, {record.subject_id}), "
                f"not ({student_id}, {subject_id})"
            )

    components = _weighted_components(records)
    total_weight = sum(c[0] for c in components.values())
    subject_name = next((r.subject_name for r in records if r.subject_name), None)

    if total_weight <= 0:
        return SubjectAverage(subject_id=subject_id, student_id=student_id, subject_name=subject_name)

    weighted_sum = sum(c[1] for c in components.values())
    average = round(weighted_sum / total_weight, 2)
    breakdown = [
        ComponentContribution(
            grade_component_id=component_id,
            component_name=name,
            weight=weight,
            average_percentage=round(pct_sum / weight, 2),
            contribution=round(pct_sum / total_weight, 2),
            assessments_counted=count,
        )
        for component_id, (weight, pct_sum, count, name) in components.items()
    ]
    return SubjectAverage(
        subject_id=subject_id,
        student_id=student_id,
        subject_name=subject_name,
        average=average,
        letter_grade=letter_grade(average),
        component_breakdown=breakdown,
    )


def compute_subject_averages(records: Iterable[ScoreRecord], *, student_id: str) -> List[SubjectAverage]:
    """한 학생의 점수를 과목별로 묶어 평균 계산 (과목 순서는 처음 등장한 순서)"""
    by_subject: Dict[str, List[ScoreRecord]] = {}
    for record in records:
        if not record.subject_id:
            logger.warning(f"과목 ID 없는 점수 제외: score={record.score_id} student={record.student_id}")
            continue
        by_subject.setdefault(record.subject_id, []).append(record)
    return [
        compute_subject_average(subject_records, student_id=student_id, subject_id=subject_id)
        for subject_id, subject_records in by_subject.items()
    ]


def compute_overall_average(
    subject_averages: Iterable[SubjectAverage],
    policy: Optional[AggregationPolicy] = None,
    mode: Optional[str] = None,
) -> float:
    """
    과목 평균들의 전체 평균
    - unweighted: 단순 평균 (기본값)
    - weighted: policy.subject_weights 기준 가중 평균 (미지정 과목은 1.0)
    - 점수가 하나도 없는 과목은 제외
    """
    policy = policy or AggregationPolicy()
    mode = mode or policy.overall_average_mode
    included = [s for s in subject_averages if s.component_breakdown]
    if not included:
        return 0.0

    if mode == "unweighted":
        return round(sum(s.average for s in included) / len(included), 2)
    if mode == "weighted":
        weights = [policy.subject_weights.get(s.subject_id, 1.0) for s in included]
        if any(w <= 0 for w in weights):
            raise ConfigurationError("subject weights must be positive")
        return round(sum(s.average * w for s, w in zip(included, weights)) / sum(weights), 2)
    raise ConfigurationError(f"unknown overall average mode: {mode!r}")


# =========================================================
# 2) 성적부 통계
# =========================================================

def student_score_stats(student_id: str, full_name: str, records: Sequence[ScoreRecord]) -> StudentScoreStats:
    total = len(records)
    completed = sum(1 for r in records if not r.is_absent)
    return StudentScoreStats(
        student_id=student_id,
        full_name=full_name,
        average_score=_weighted_average(records),
        completed_assessments=completed,
        total_assessments=total,
        completion_rate=round(completed / total * 100, 2) if total else 0.0,
    )


def score_stats(averages: Sequence[float], total_students: int, pass_threshold: float) -> ScoreStats:
    """
    반 통계
    - 평균 0 인 학생(점수 없음)은 평균/최고/최저 계산에서 제외
    - 합격률의 분모는 반 전체 인원
    """
    valid = [a for a in averages if a > 0]
    if not valid:
        return ScoreStats(total_students=total_students)
    passed = sum(1 for a in valid if a >= pass_threshold)
    return ScoreStats(
        average=round(sum(valid) / len(valid), 2),
        highest=round(max(valid), 2),
        lowest=round(min(valid), 2),
        total_students=total_students,
        passed_students=passed,
        pass_rate=round(passed / total_students * 100, 2) if total_students else 0.0,
    )


def rank_by_average(items: Iterable[T], key: Callable[[T], float]) -> List[Tuple[int, T]]:
    """높은 순 정렬 + 공동 순위 (1, 2, 2, 4)"""
    ordered = sorted(items, key=key, reverse=True)
    ranked: List[Tuple[int, T]] = []
    previous = None
    for position, item in enumerate(ordered, start=1):
        value = key(item)
        rank = ranked[-1][0] if ranked and value == previous else position
        ranked.append((rank, item))
        previous = value
    return ranked


def score_distribution(averages: Iterable[float]) -> Dict[str, int]:
    distribution = {label: 0 for label, _, _ in DISTRIBUTION_BUCKETS}
    for avg in averages:
        for label, low, high in DISTRIBUTION_BUCKETS:
            if low <= avg < high:
                distribution[label] += 1
                break
    return distribution
