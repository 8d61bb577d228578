"""
Dashboard Summary Composer

과목 평균 / 행동 기록 묶음 / 평가 일정 / 공지를 역할별 대시보드 뷰모델로 조합.

- "현재 시각"(now)과 정책(policy)은 항상 인자로 받음 (순수 함수)
- 입력이 비어 있으면 0/빈 목록으로 채운 뷰모델을 반환 (에러 아님)
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from schemas.aggregates import (
    AggregationPolicy,
    BehaviorSummary,
    GroupedBehaviorNote,
    SubjectAverage,
)
from schemas.dashboards import (
    ChildOverview,
    ClassBehaviorView,
    GradebookRow,
    ParentDashboard,
    StudentDashboard,
    TeacherGradebook,
)
from schemas.records import Announcement, Assessment, RecentScore, ScoreRecord, StudentRef
from services.aggregation.averages import (
    compute_overall_average,
    compute_subject_average,
    letter_grade,
    rank_by_average,
    score_distribution,
    score_stats,
    student_score_stats,
)
from services.aggregation.behavior import group_notes_by_student
from services.aggregation.errors import ConfigurationError


ALERT_LOW_AVERAGE = "LOW_AVERAGE"
ALERT_BEHAVIOR = "BEHAVIOR"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


# ==========================================================
# 목록 필터/정렬
# ==========================================================

def upcoming_assessments(
    assessments: Iterable[Assessment], now: datetime, limit: Optional[int] = None
) -> List[Assessment]:
    """마감일이 now 이후인 평가, 마감일 오름차순"""
    upcoming = sorted((a for a in assessments if a.due_date > now), key=lambda a: a.due_date)
    return upcoming if limit is None else upcoming[:limit]


def recent_announcements(
    announcements: Iterable[Announcement],
    now: Optional[datetime] = None,
    *,
    urgent_only: bool = False,
    include_expired: bool = False,
    limit: Optional[int] = None,
) -> List[Announcement]:
    """
    최신 공지 (created_at 내림차순)
    - now 가 주어지면 만료된 공지는 제외 (include_expired=True 면 포함)
    - 같은 id 가 여러 번 들어오면 하나만 남김 (여러 자녀의 반 공지 병합 시)
    """
    seen = set()
    selected: List[Announcement] = []
    for a in announcements:
        if a.announcement_id in seen:
            continue
        seen.add(a.announcement_id)
        if urgent_only and not a.is_urgent:
            continue
        if now is not None and not include_expired and a.expires_at is not None and a.expires_at < now:
            continue
        selected.append(a)
    selected.sort(key=lambda a: a.created_at, reverse=True)
    return selected if limit is None else selected[:limit]


def recent_scores(records: Iterable[ScoreRecord], limit: Optional[int] = None) -> List[RecentScore]:
    ordered = sorted(records, key=lambda r: r.created_at or _EPOCH, reverse=True)
    if limit is not None:
        ordered = ordered[:limit]
    return [
        RecentScore(
            title=r.assessment_name or r.component_name or "Assessment",
            subject_id=r.subject_id,
            score=r.score,
            max_score=r.max_score,
            percentage=0.0 if r.is_absent else round(r.score / r.max_score * 100, 2),
            is_absent=r.is_absent,
            created_at=r.created_at,
        )
        for r in ordered
    ]


# ==========================================================
# [학생] / [학부모] 대시보드
# ==========================================================

def compose_student_dashboard(
    student: StudentRef,
    subject_averages: Sequence[SubjectAverage],
    behavior: Optional[GroupedBehaviorNote],
    assessments: Iterable[Assessment],
    announcements: Iterable[Announcement],
    scores: Iterable[ScoreRecord],
    now: datetime,
    policy: Optional[AggregationPolicy] = None,
    term_id: Optional[str] = None,
) -> StudentDashboard:
    policy = policy or AggregationPolicy()
    if behavior is not None and behavior.student_id != student.student_id:
        raise ConfigurationError(
            f"behavior group for {behavior.student_id} passed to dashboard of {student.student_id}"
        )

    overall = compute_overall_average(subject_averages, policy)
    has_scores = any(s.component_breakdown for s in subject_averages)
    return StudentDashboard(
        student=student,
        term_id=term_id,
        subjects=list(subject_averages),
        overall_average=overall,
        letter_grade=letter_grade(overall) if has_scores else "-",
        behavior_summary=behavior.summary() if behavior else BehaviorSummary(),
        latest_behavior_note=behavior.latest_note if behavior else None,
        recent_scores=recent_scores(scores, policy.recent_scores_limit),
        upcoming_assessments=upcoming_assessments(assessments, now),
        recent_announcements=recent_announcements(
            announcements, now, limit=policy.recent_announcements_limit
        ),
        generated_at=now,
    )


def alert_reasons(dashboard: StudentDashboard, policy: AggregationPolicy) -> List[str]:
    """
    학부모 경고 규칙
    - 최신 행동 기록 등급이 policy.urgent_behavior_level
    - 점수가 있는 과목이 있고 전체 평균이 policy.urgent_average_threshold 미만
    """
    reasons = []
    has_scores = any(s.component_breakdown for s in dashboard.subjects)
    if has_scores and dashboard.overall_average < policy.urgent_average_threshold:
        reasons.append(ALERT_LOW_AVERAGE)
    note = dashboard.latest_behavior_note
    if note is not None and note.level == policy.urgent_behavior_level:
        reasons.append(ALERT_BEHAVIOR)
    return reasons


def compose_child_overview(
    student: StudentRef,
    subject_averages: Sequence[SubjectAverage],
    behavior: Optional[GroupedBehaviorNote],
    assessments: Iterable[Assessment],
    announcements: Iterable[Announcement],
    scores: Iterable[ScoreRecord],
    now: datetime,
    policy: Optional[AggregationPolicy] = None,
    term_id: Optional[str] = None,
) -> ChildOverview:
    policy = policy or AggregationPolicy()
    dashboard = compose_student_dashboard(
        student, subject_averages, behavior, assessments, announcements, scores, now, policy, term_id
    )
    reasons = alert_reasons(dashboard, policy)
    return ChildOverview(**dict(dashboard), is_urgent=bool(reasons), alert_reasons=reasons)


def compose_parent_dashboard(
    parent_id: str,
    children: Sequence[ChildOverview],
    announcements: Iterable[Announcement],
    now: datetime,
    policy: Optional[AggregationPolicy] = None,
    term_id: Optional[str] = None,
) -> ParentDashboard:
    policy = policy or AggregationPolicy()
    scored = [c for c in children if any(s.component_breakdown for s in c.subjects)]
    family_average = (
        round(sum(c.overall_average for c in scored) / len(scored), 2) if scored else 0.0
    )
    return ParentDashboard(
        parent_id=parent_id,
        term_id=term_id,
        children=list(children),
        urgent_alerts=[c.student.student_id for c in children if c.is_urgent],
        family_average=family_average,
        total_behavior_issues=sum(c.behavior_summary.issue_count for c in children),
        recent_announcements=recent_announcements(
            announcements, now, limit=policy.recent_announcements_limit
        ),
        generated_at=now,
    )


# ==========================================================
# [교사] 성적부 / 반 행동 기록
# ==========================================================

def compose_teacher_gradebook(
    class_id: str,
    subject_id: str,
    term_id: Optional[str],
    roster: Iterable[StudentRef],
    records: Iterable[ScoreRecord],
    policy: Optional[AggregationPolicy] = None,
) -> TeacherGradebook:
    """
    반 × 과목 성적부
    - 명단에 없는데 점수가 있는 학생도 행으로 포함 (이름은 Unknown Student)
    - 통계/분포/지도 필요 목록은 점수가 있는 학생만 대상
    """
    policy = policy or AggregationPolicy()
    records = list(records)
    if records and not subject_id:
        raise ConfigurationError("subject_id is required when scores are given")

    names: Dict[str, str] = {}
    for student in roster:
        names.setdefault(student.student_id, student.full_name)
    by_student: Dict[str, List[ScoreRecord]] = {sid: [] for sid in names}
    for record in records:
        by_student.setdefault(record.student_id, []).append(record)

    rows = []
    for student_id, student_records in by_student.items():
        average = compute_subject_average(student_records, student_id=student_id, subject_id=subject_id)
        stats = student_score_stats(student_id, names.get(student_id, "Unknown Student"), student_records)
        rows.append(GradebookRow(
            student_id=student_id,
            full_name=stats.full_name,
            average=average.average,
            letter_grade=average.letter_grade,
            completed_assessments=stats.completed_assessments,
            total_assessments=stats.total_assessments,
            completion_rate=stats.completion_rate,
            components=average.component_breakdown,
        ))

    ranked = []
    for rank, row in rank_by_average(rows, key=lambda r: r.average):
        ranked.append(row.model_copy(update={"rank": rank}))

    scored = [r for r in ranked if r.components]
    return TeacherGradebook(
        class_id=class_id,
        subject_id=subject_id,
        term_id=term_id,
        rows=ranked,
        stats=score_stats([r.average for r in ranked], len(ranked), policy.pass_threshold),
        distribution=score_distribution(r.average for r in scored),
        need_guidance=[r.student_id for r in scored if r.average < policy.guidance_threshold],
    )


def compose_class_behavior(
    class_id: str,
    term_id: Optional[str],
    notes,
    student_names: Optional[Mapping[str, str]] = None,
) -> ClassBehaviorView:
    grouped = group_notes_by_student(notes, student_names)
    totals = BehaviorSummary()
    for g in grouped:
        totals = BehaviorSummary(
            excellent_count=totals.excellent_count + g.excellent_count,
            good_count=totals.good_count + g.good_count,
            fair_count=totals.fair_count + g.fair_count,
            needs_improvement_count=totals.needs_improvement_count + g.needs_improvement_count,
            poor_count=totals.poor_count + g.poor_count,
        )
    return ClassBehaviorView(
        class_id=class_id,
        term_id=term_id,
        students=grouped,
        summary=totals,
        total_notes=sum(g.note_count for g in grouped),
    )
