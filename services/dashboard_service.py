"""
services/dashboard_service.py

- 라우터와 집계 엔진 사이의 조립 계층
- 흐름: provider 조회 → normalizer → {평균 계산, 행동 기록 묶음} → 대시보드 조합
- 집계 엔진은 I/O 가 없으므로 데이터 조회와 현재 시각 결정은 여기서만 수행
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from schemas.aggregates import AggregationPolicy, GroupedBehaviorNote, SubjectAverage
from schemas.dashboards import (
    ChildOverview,
    ClassBehaviorView,
    ParentDashboard,
    StudentDashboard,
    TeacherGradebook,
)
from schemas.records import Announcement, StudentRef
from services.aggregation.averages import compute_overall_average, compute_subject_averages, letter_grade
from services.aggregation.behavior import find_group, group_notes_by_student
from services.aggregation.dashboards import (
    compose_child_overview,
    compose_class_behavior,
    compose_parent_dashboard,
    compose_student_dashboard,
    compose_teacher_gradebook,
    recent_announcements,
)
from services.aggregation.errors import ValidationError
from services.aggregation.normalizer import (
    normalize_announcements,
    normalize_assessments,
    normalize_behavior_notes,
    normalize_scores,
    normalize_student,
    normalize_students,
)
from services.providers.base import SchoolDataProvider

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DashboardService:
    def __init__(self, provider: SchoolDataProvider, policy: Optional[AggregationPolicy] = None):
        self.provider = provider
        self.policy = policy or AggregationPolicy()

    # ==========================================================
    # [공통] 학생 단위 데이터 수집
    # ==========================================================
    def _student_ref(self, student_id: str) -> Optional[StudentRef]:
        raw = self.provider.get_student(student_id)
        if raw is None:
            return None
        try:
            return normalize_student(raw)
        except ValidationError as e:
            logger.warning(f"학생 정보 형식 오류: student={student_id} - {e}")
            return StudentRef(student_id=student_id)

    def _student_parts(self, student: StudentRef, term_id: Optional[str]):
        sid = student.student_id
        scores = normalize_scores(self.provider.get_student_scores(sid, term_id), student_id=sid)
        # 다른 학생 점수가 섞여 들어오면 평균 계산에서 ConfigurationError 가 나므로 여기서 걸러냄
        scores = [s for s in scores if s.student_id == sid]
        subject_averages = compute_subject_averages(scores, student_id=sid)

        notes = normalize_behavior_notes(self.provider.get_student_behavior_notes(sid, term_id), student_id=sid)
        group = find_group(group_notes_by_student(notes, {sid: student.full_name}), sid)

        assessments = normalize_assessments(self.provider.get_student_assessments(sid, term_id))
        announcements = (
            normalize_announcements(self.provider.get_class_announcements(student.class_id))
            if student.class_id else []
        )
        return scores, subject_averages, group, assessments, announcements

    # ==========================================================
    # [학생] 대시보드 / 성적
    # ==========================================================
    def build_student_dashboard(
        self, student_id: str, term_id: Optional[str] = None, now: Optional[datetime] = None
    ) -> Optional[StudentDashboard]:
        student = self._student_ref(student_id)
        if student is None:
            return None
        scores, averages, group, assessments, announcements = self._student_parts(student, term_id)
        return compose_student_dashboard(
            student, averages, group, assessments, announcements, scores,
            now or _utcnow(), self.policy, term_id,
        )

    def build_student_grades(self, student_id: str, term_id: Optional[str] = None) -> Optional[dict]:
        student = self._student_ref(student_id)
        if student is None:
            return None
        scores = normalize_scores(self.provider.get_student_scores(student_id, term_id), student_id=student_id)
        averages: List[SubjectAverage] = compute_subject_averages(
            [s for s in scores if s.student_id == student_id], student_id=student_id
        )
        overall = compute_overall_average(averages, self.policy)
        return {
            "student": student,
            "term_id": term_id,
            "subjects": averages,
            "overall_average": overall,
            "letter_grade": letter_grade(overall) if any(a.component_breakdown for a in averages) else "-",
            "overall_average_mode": self.policy.overall_average_mode,
        }

    def build_student_behavior(self, student_id: str, term_id: Optional[str] = None) -> Optional[GroupedBehaviorNote]:
        notes = normalize_behavior_notes(
            self.provider.get_student_behavior_notes(student_id, term_id), student_id=student_id
        )
        return find_group(group_notes_by_student(notes), student_id)

    # ==========================================================
    # [학부모] 대시보드
    # ==========================================================
    def build_parent_dashboard(
        self, parent_id: str, term_id: Optional[str] = None, now: Optional[datetime] = None
    ) -> ParentDashboard:
        now = now or _utcnow()
        children: List[ChildOverview] = []
        announcements: List[Announcement] = []
        for student in normalize_students(self.provider.get_parent_children(parent_id)):
            scores, averages, group, assessments, child_announcements = self._student_parts(student, term_id)
            children.append(compose_child_overview(
                student, averages, group, assessments, child_announcements, scores,
                now, self.policy, term_id,
            ))
            announcements.extend(child_announcements)
        return compose_parent_dashboard(parent_id, children, announcements, now, self.policy, term_id)

    # ==========================================================
    # [교사] 성적부 / 행동 기록 / 공지
    # ==========================================================
    def build_teacher_gradebook(
        self, class_id: str, subject_id: str, term_id: Optional[str] = None
    ) -> TeacherGradebook:
        roster = normalize_students(self.provider.get_class_students(class_id))
        records = normalize_scores(
            self.provider.get_class_scores(class_id, subject_id, term_id),
            subject_id=subject_id, term_id=term_id,
        )
        return compose_teacher_gradebook(
            class_id, subject_id, term_id, roster,
            [r for r in records if r.subject_id == subject_id], self.policy,
        )

    def build_class_behavior(self, class_id: str, term_id: Optional[str] = None) -> ClassBehaviorView:
        roster = normalize_students(self.provider.get_class_students(class_id))
        notes = normalize_behavior_notes(self.provider.get_class_behavior_notes(class_id, term_id))
        return compose_class_behavior(
            class_id, term_id, notes, {s.student_id: s.full_name for s in roster}
        )

    def class_announcements(
        self,
        class_id: str,
        urgent_only: bool = False,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[Announcement]:
        announcements = normalize_announcements(self.provider.get_class_announcements(class_id))
        return recent_announcements(
            announcements, now or _utcnow(), urgent_only=urgent_only,
            limit=self.policy.recent_announcements_limit if limit is None else limit,
        )
