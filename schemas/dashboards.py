from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from schemas.aggregates import (
    BehaviorSummary,
    ComponentContribution,
    GroupedBehaviorNote,
    ScoreStats,
    SubjectAverage,
)
from schemas.records import Announcement, Assessment, BehaviorNote, RecentScore, StudentRef


# ==========================================================
# [학생] 대시보드
# ==========================================================
class StudentDashboard(BaseModel):
    student: StudentRef
    term_id: Optional[str] = None
    subjects: List[SubjectAverage] = Field(default_factory=list)
    overall_average: float = 0.0                 # 0~100
    letter_grade: str = "-"
    behavior_summary: BehaviorSummary = Field(default_factory=BehaviorSummary)
    latest_behavior_note: Optional[BehaviorNote] = None
    recent_scores: List[RecentScore] = Field(default_factory=list)
    upcoming_assessments: List[Assessment] = Field(default_factory=list)
    recent_announcements: List[Announcement] = Field(default_factory=list)
    generated_at: datetime


# ==========================================================
# [학부모] 자녀 요약 + 대시보드
# ==========================================================
class ChildOverview(StudentDashboard):
    is_urgent: bool = False
    alert_reasons: List[str] = Field(default_factory=list)   # LOW_AVERAGE / BEHAVIOR


class ParentDashboard(BaseModel):
    parent_id: str
    term_id: Optional[str] = None
    children: List[ChildOverview] = Field(default_factory=list)
    urgent_alerts: List[str] = Field(default_factory=list)    # 경고 대상 자녀 student_id
    family_average: float = 0.0
    total_behavior_issues: int = 0
    recent_announcements: List[Announcement] = Field(default_factory=list)
    generated_at: datetime


# ==========================================================
# [교사] 과목 성적부
# ==========================================================
class GradebookRow(BaseModel):
    student_id: str
    full_name: str = "Unknown Student"
    average: float = 0.0
    letter_grade: str = "-"
    rank: int = 0
    completed_assessments: int = 0
    total_assessments: int = 0
    completion_rate: float = 0.0
    components: List[ComponentContribution] = Field(default_factory=list)


class TeacherGradebook(BaseModel):
    class_id: str
    subject_id: str
    term_id: Optional[str] = None
    rows: List[GradebookRow] = Field(default_factory=list)    # rank 순
    stats: ScoreStats = Field(default_factory=ScoreStats)
    distribution: Dict[str, int] = Field(default_factory=dict)
    need_guidance: List[str] = Field(default_factory=list)    # 지도 필요 학생 student_id


# ==========================================================
# [교사] 반 행동 기록
# ==========================================================
class ClassBehaviorView(BaseModel):
    class_id: str
    term_id: Optional[str] = None
    students: List[GroupedBehaviorNote] = Field(default_factory=list)
    summary: BehaviorSummary = Field(default_factory=BehaviorSummary)
    total_notes: int = 0
