"""
schemas/aggregates.py

- 집계 엔진이 만들어내는 파생 모델 (요청마다 새로 계산, 저장하지 않음)
- 점수는 모두 내부 표준 척도(0~100 백분율)
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, computed_field

from schemas.records import BehaviorLevel, BehaviorNote


# =========================================================
# 1) 과목 평균
# =========================================================

class ComponentContribution(BaseModel):
    """평가 요소(grade component) 하나가 과목 평균에 기여한 몫"""
    grade_component_id: str
    component_name: str = ""
    weight: float = Field(..., ge=0)            # 포함된 점수들의 가중치 합
    average_percentage: float = Field(..., ge=0, le=100)
    contribution: float = Field(..., ge=0)      # 최종 평균 중 이 요소가 차지하는 점수
    assessments_counted: int = Field(..., ge=0)


class SubjectAverage(BaseModel):
    subject_id: str
    student_id: str
    subject_name: Optional[str] = None
    average: float = 0.0                        # 점수가 하나도 없으면 0 (정책값)
    letter_grade: str = "-"                     # 점수가 없으면 "-"
    component_breakdown: List[ComponentContribution] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def has_scores(self) -> bool:
        return bool(self.component_breakdown)


# =========================================================
# 2) 행동 기록 집계
# =========================================================

class BehaviorSummary(BaseModel):
    excellent_count: int = 0
    good_count: int = 0
    fair_count: int = 0
    needs_improvement_count: int = 0
    poor_count: int = 0

    @computed_field  # type: ignore[misc]
    @property
    def total(self) -> int:
        return (
            self.excellent_count + self.good_count + self.fair_count
            + self.needs_improvement_count + self.poor_count
        )

    @property
    def issue_count(self) -> int:
        # 개선 필요 + 미흡
        return self.needs_improvement_count + self.poor_count


class GroupedBehaviorNote(BaseModel):
    student_id: str
    student_name: str = "Unknown Student"
    notes: List[BehaviorNote] = Field(default_factory=list)   # created_at 내림차순
    latest_note: BehaviorNote
    note_count: int = 0
    excellent_count: int = 0
    good_count: int = 0
    fair_count: int = 0
    needs_improvement_count: int = 0
    poor_count: int = 0

    def summary(self) -> BehaviorSummary:
        return BehaviorSummary(
            excellent_count=self.excellent_count,
            good_count=self.good_count,
            fair_count=self.fair_count,
            needs_improvement_count=self.needs_improvement_count,
            poor_count=self.poor_count,
        )

    def count_for(self, level: BehaviorLevel) -> int:
        return getattr(self, level.counter_field)


# =========================================================
# 3) 성적 통계
# =========================================================

class ScoreStats(BaseModel):
    """반 전체 성적 통계 (교사 성적부)"""
    average: float = 0.0
    highest: float = 0.0
    lowest: float = 0.0
    total_students: int = 0
    passed_students: int = 0
    pass_rate: float = 0.0


class StudentScoreStats(BaseModel):
    student_id: str
    full_name: str = "Unknown Student"
    average_score: float = 0.0
    completed_assessments: int = 0
    total_assessments: int = 0
    completion_rate: float = 0.0


# =========================================================
# 4) 집계 정책
# =========================================================

class AggregationPolicy(BaseModel):
    """
    학교별로 달라질 수 있는 업무 규칙 모음 (0~100 척도)
    - 엔진은 settings 를 직접 읽지 않고 이 객체만 받음
    """
    urgent_average_threshold: float = 50.0
    urgent_behavior_level: BehaviorLevel = BehaviorLevel.POOR
    pass_threshold: float = 50.0
    guidance_threshold: float = 65.0
    overall_average_mode: Literal["unweighted", "weighted"] = "unweighted"
    subject_weights: Dict[str, float] = Field(default_factory=dict)
    recent_announcements_limit: int = Field(10, ge=0)
    recent_scores_limit: int = Field(6, ge=0)

    @classmethod
    def from_settings(cls, settings) -> "AggregationPolicy":
        return cls(
            urgent_average_threshold=settings.URGENT_AVERAGE_THRESHOLD,
            urgent_behavior_level=BehaviorLevel.parse(settings.URGENT_BEHAVIOR_LEVEL),
            pass_threshold=settings.PASS_THRESHOLD,
            guidance_threshold=settings.GUIDANCE_THRESHOLD,
            overall_average_mode=settings.OVERALL_AVERAGE_MODE,
            subject_weights=dict(settings.SUBJECT_WEIGHTS),
            recent_announcements_limit=settings.RECENT_ANNOUNCEMENTS_LIMIT,
            recent_scores_limit=settings.RECENT_SCORES_LIMIT,
        )
