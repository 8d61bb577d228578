"""
schemas/records.py

- 외부 REST API 응답을 정규화한 뒤의 표준 레코드 스키마
- 집계 엔진(services/aggregation)은 이 모델만 입력으로 다룸
- 모든 시각(datetime)은 timezone-aware (naive 값은 UtcDatetime 이 UTC 로 간주)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


def _ensure_utc(value: datetime) -> datetime:
    # 모델을 직접 만들 때도 aware 보장 (정규화된 dict 와 섞여도 비교 가능)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_ensure_utc)]


# =========================================================
# 1) Enum
# =========================================================

class AssessmentKind(str, Enum):
    """평가 유형"""
    QUIZ = "quiz"
    TEST = "test"
    MIDTERM = "midterm"
    FINAL = "final"
    PROJECT = "project"
    ORAL = "oral"
    ATTENDANCE = "attendance"
    OTHER = "other"


class BehaviorLevel(str, Enum):
    """
    행동 평가 등급 (선언 순서 = 바람직한 순서, 표시용)
    - 정렬 기준으로는 사용하지 않음
    """
    EXCELLENT = "Excellent"
    GOOD = "Good"
    FAIR = "Fair"
    NEEDS_IMPROVEMENT = "Needs improvement"
    POOR = "Poor"

    @classmethod
    def parse(cls, raw) -> "BehaviorLevel":
        """
        엔드포인트마다 다른 표기를 표준 값으로 변환
        - "Needs improvement", "needs_improvement", "NEEDS-IMPROVEMENT" → NEEDS_IMPROVEMENT
        - 알 수 없는 값은 ValueError
        """
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            raise ValueError(f"behavior level must be a string, got {type(raw).__name__}")
        key = " ".join(raw.replace("_", " ").replace("-", " ").split()).lower()
        for level in cls:
            if level.value.lower() == key:
                return level
        raise ValueError(f"unknown behavior level: {raw!r}")

    @property
    def counter_field(self) -> str:
        # BehaviorSummary 의 카운터 필드명
        return self.name.lower() + "_count"


# =========================================================
# 2) 성적
# =========================================================

class ScoreRecord(BaseModel):
    """
    정규화된 점수 레코드 (평가 1건 × 학생 1명)
    - 불변식(0 <= score <= max_score, weight > 0)은 normalizer 에서 검증
    """
    student_id: str
    subject_id: str = ""
    subject_name: Optional[str] = None
    grade_component_id: str
    component_name: str = ""
    kind: AssessmentKind = AssessmentKind.OTHER
    weight: float = 1.0
    max_score: float = 10.0
    score: float = 0.0
    is_absent: bool = False
    comment: str = ""
    created_at: Optional[UtcDatetime] = None

    score_id: Optional[str] = None
    assessment_id: Optional[str] = None
    assessment_name: Optional[str] = None
    term_id: Optional[str] = None

    # 가중치가 원본에 없어서 1.0 으로 채운 경우 (데이터 품질 경고)
    weight_defaulted: bool = False

    model_config = ConfigDict(frozen=True, extra="ignore")


# =========================================================
# 3) 행동 기록
# =========================================================

class BehaviorNote(BaseModel):
    """교사가 작성한 행동 기록 (집계 과정에서 수정되지 않음)"""
    id: str
    student_id: str
    class_id: str = ""
    term_id: str = ""
    note: str = ""
    level: BehaviorLevel
    created_by: str = ""
    created_at: UtcDatetime

    student_name: Optional[str] = None
    teacher_name: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


# =========================================================
# 4) 학생 / 평가 일정 / 공지
# =========================================================

class StudentRef(BaseModel):
    student_id: str
    full_name: str = "Unknown Student"
    class_id: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")


class Assessment(BaseModel):
    """예정된 평가 (대시보드의 '다가오는 평가' 목록용)"""
    assessment_id: str
    title: str = ""
    due_date: UtcDatetime
    subject_id: Optional[str] = None
    subject_name: Optional[str] = None
    grade_component_id: Optional[str] = None
    kind: AssessmentKind = AssessmentKind.OTHER
    description: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")


class Announcement(BaseModel):
    announcement_id: str
    title: str = ""
    content: str = ""
    created_at: UtcDatetime
    expires_at: Optional[UtcDatetime] = None
    is_urgent: bool = False
    class_id: Optional[str] = None
    subject_id: Optional[str] = None
    sender_id: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class RecentScore(BaseModel):
    """최근 점수 카드 (대시보드 표시용)"""
    title: str
    subject_id: str = ""
    score: float = 0.0
    max_score: float = Field(default=10.0)
    percentage: float = 0.0
    is_absent: bool = False
    created_at: Optional[UtcDatetime] = None
