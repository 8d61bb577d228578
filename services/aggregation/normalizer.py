"""
Score / Behavior Normalizer

외부 REST API 응답(엔드포인트마다 camelCase/snake_case, 중첩 구조가 다름)을
schemas/records.py 의 표준 모델로 변환하는 어댑터 계층.

- 집계 로직 없음, I/O 없음
- 단건 함수(normalize_*)는 잘못된 레코드에 ValidationError 를 던짐
- 배치 함수(normalize_*s)는 잘못된 레코드를 로그로 남기고 건너뜀 (부분 실패 허용)
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from schemas.records import (
    Announcement,
    Assessment,
    AssessmentKind,
    BehaviorLevel,
    BehaviorNote,
    ScoreRecord,
    StudentRef,
)
from services.aggregation.errors import ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DATETIME = TypeAdapter(datetime)  # ISO-8601 / 날짜만 / unix time 허용 (pydantic lax 모드)

# 학교 포털의 기본 채점 척도 (0~10)
DEFAULT_MAX_SCORE = 10.0
DEFAULT_WEIGHT = 1.0


# =========================================================
# 공통 헬퍼
# =========================================================

def _pick(raw: Dict[str, Any], *paths, default=None):
    """
    후보 키 중 처음으로 값이 있는 것을 반환
    - 문자열: 최상위 키, 튜플: 중첩 경로 ("assessment", "grade_component", "weight")
    """
    for path in paths:
        keys = path if isinstance(path, tuple) else (path,)
        value = raw
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
            else:
                value = None
                break
        if value is not None and value != "":
            return value
    return default


def _as_id(value, field: str, record_id: Optional[str] = None, required: bool = True) -> Optional[str]:
    if value is None:
        if required:
            raise ValidationError(f"missing required field '{field}'", field=field, record_id=record_id)
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError(
            f"field '{field}' must be a string id, got {type(value).__name__}",
            field=field, record_id=record_id,
        )
    return str(value)


def _as_number(value, field: str, record_id: Optional[str] = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(
            f"field '{field}' must be a number, got {type(value).__name__}",
            field=field, record_id=record_id,
        )
    return float(value)


def _as_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "y")
    return bool(value)


def _as_datetime(value, field: str, record_id: Optional[str] = None, required: bool = False) -> Optional[datetime]:
    """ISO 문자열/unix time/datetime → aware datetime (naive 값은 UTC 로 간주)"""
    if value is None:
        if required:
            raise ValidationError(f"missing required field '{field}'", field=field, record_id=record_id)
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float, datetime)):
        raise ValidationError(
            f"field '{field}' must be a timestamp, got {type(value).__name__}",
            field=field, record_id=record_id,
        )
    try:
        parsed = _DATETIME.validate_python(value.strip() if isinstance(value, str) else value)
    except PydanticValidationError:
        raise ValidationError(
            f"field '{field}' is not a valid timestamp: {value!r}",
            field=field, record_id=record_id,
        )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_timestamp(value) -> Optional[datetime]:
    return _as_datetime(value, "timestamp")


def _as_kind(value, record_id: Optional[str] = None) -> AssessmentKind:
    if value is None:
        return AssessmentKind.OTHER
    try:
        return AssessmentKind(str(value).strip().lower())
    except ValueError:
        logger.debug(f"알 수 없는 평가 유형 → other 처리: kind={value!r} record={record_id}")
        return AssessmentKind.OTHER


def _normalize_batch(raws: Optional[Iterable[Any]], fn: Callable[..., T], label: str, **context) -> List[T]:
    results: List[T] = []
    for raw in raws or []:
        try:
            results.append(fn(raw, **context))
        except ValidationError as e:
            logger.warning(f"{label} 레코드 건너뜀: {e}")
    return results


def _require_mapping(raw, label: str) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise ValidationError(f"{label} record must be an object, got {type(raw).__name__}")
    return raw


# =========================================================
# 1) 점수
# =========================================================

def normalize_score(
    raw: Dict[str, Any],
    *,
    student_id: Optional[str] = None,
    subject_id: Optional[str] = None,
    term_id: Optional[str] = None,
) -> ScoreRecord:
    """
    점수 페이로드 1건 → ScoreRecord
    - score1/score, gradeComponentId/grade_component_id 등 표기 차이를 흡수
    - 키워드 인자로 받은 id 는 페이로드에 값이 없을 때만 사용
    """
    raw = _require_mapping(raw, "score")
    record_id = _as_id(_pick(raw, "scoreId", "score_id", "id"), "score_id", required=False)

    sid = _as_id(_pick(raw, "studentId", "student_id", ("student", "id")) or student_id,
                 "student_id", record_id)
    gcid = _as_id(
        _pick(
            raw, "gradeComponentId", "grade_component_id",
            ("assessment", "grade_component_id"),
            ("assessment", "grade_component", "id"),
            ("gradeComponent", "id"),
        ),
        "grade_component_id", record_id,
    )
    subj = _as_id(
        _pick(raw, "subjectId", "subject_id", ("assessment", "grade_component", "subject_id"))
        or subject_id,
        "subject_id", record_id, required=False,
    )

    is_absent = _as_bool(_pick(raw, "isAbsent", "is_absent"))

    # 가중치: 없으면 1.0 으로 채우되 데이터 품질 문제로 표시
    raw_weight = _pick(raw, "weight", ("assessment", "grade_component", "weight"), ("gradeComponent", "weight"))
    weight_defaulted = raw_weight is None
    if weight_defaulted:
        logger.warning(f"가중치 누락 → {DEFAULT_WEIGHT} 적용 (데이터 품질 확인 필요): score={record_id} student={sid}")
        weight = DEFAULT_WEIGHT
    else:
        weight = _as_number(raw_weight, "weight", record_id)
    if weight <= 0:
        raise ValidationError(f"weight must be positive, got {weight}", field="weight", record_id=record_id)

    raw_max = _pick(raw, "maxScore", "max_score",
                    ("assessment", "grade_component", "max_score"), ("gradeComponent", "maxScore"))
    if raw_max is None:
        logger.warning(f"만점 누락 → {DEFAULT_MAX_SCORE} 적용: score={record_id} student={sid}")
        max_score = DEFAULT_MAX_SCORE
    else:
        max_score = _as_number(raw_max, "max_score", record_id)
    if max_score <= 0:
        raise ValidationError(f"max_score must be positive, got {max_score}", field="max_score", record_id=record_id)

    raw_score = _pick(raw, "score1", "score")
    if is_absent:
        # 결석이면 점수는 의미 없음 (숫자가 아니면 0)
        score = 0.0
        if isinstance(raw_score, (int, float)) and not isinstance(raw_score, bool):
            score = float(raw_score)
    else:
        if raw_score is None:
            raise ValidationError("missing required field 'score'", field="score", record_id=record_id)
        score = _as_number(raw_score, "score", record_id)
        if not 0 <= score <= max_score:
            raise ValidationError(
                f"score {score} outside [0, {max_score}]", field="score", record_id=record_id,
            )

    comment = _pick(raw, "comment")
    return ScoreRecord(
        student_id=sid,
        subject_id=subj or "",
        subject_name=_pick(raw, "subjectName", "subject_name", ("assessment", "grade_component", "subject", "name")),
        grade_component_id=gcid,
        component_name=str(_pick(
            raw, "gradeComponentName", "componentName", "component_name",
            ("assessment", "grade_component", "name"), default="",
        )),
        kind=_as_kind(_pick(raw, "kind", ("assessment", "grade_component", "kind")), record_id),
        weight=weight,
        max_score=max_score,
        score=score,
        is_absent=is_absent,
        comment="" if comment is None else str(comment),
        created_at=_as_datetime(_pick(raw, "createdAt", "created_at", "updatedAt", "updated_at"),
                                "created_at", record_id),
        score_id=record_id,
        assessment_id=_as_id(_pick(raw, "assessmentId", "assessment_id", ("assessment", "id")),
                             "assessment_id", record_id, required=False),
        assessment_name=_pick(raw, "assessmentName", "assessment_name", ("assessment", "title")),
        term_id=_as_id(_pick(raw, "termId", "term_id") or term_id, "term_id", record_id, required=False),
        weight_defaulted=weight_defaulted,
    )


def normalize_scores(raws: Optional[Iterable[Any]], **context) -> List[ScoreRecord]:
    """잘못된 레코드는 건너뛰고 나머지를 모두 정규화"""
    return _normalize_batch(raws, normalize_score, "점수", **context)


# =========================================================
# 2) 행동 기록
# =========================================================

def normalize_behavior_note(raw: Dict[str, Any], *, student_id: Optional[str] = None) -> BehaviorNote:
    """
    행동 기록 페이로드 1건 → BehaviorNote
    - 등급 표기("Needs improvement" / "needs_improvement")는 BehaviorLevel.parse 로 통일
    - 알 수 없는 등급은 ValidationError (조용히 버리지 않음)
    """
    raw = _require_mapping(raw, "behavior note")
    record_id = _as_id(_pick(raw, "id", "behaviorNoteId", "noteId"), "id")

    raw_level = _pick(raw, "level")
    if raw_level is None:
        raise ValidationError("missing required field 'level'", field="level", record_id=record_id)
    try:
        level = BehaviorLevel.parse(raw_level)
    except ValueError as e:
        raise ValidationError(str(e), field="level", record_id=record_id)

    return BehaviorNote(
        id=record_id,
        student_id=_as_id(_pick(raw, "studentId", "student_id", ("student", "id")) or student_id,
                          "student_id", record_id),
        class_id=_as_id(_pick(raw, "classId", "class_id", ("class", "id")), "class_id", record_id,
                        required=False) or "",
        term_id=_as_id(_pick(raw, "termId", "term_id", ("term", "termId"), ("term", "id")), "term_id",
                       record_id, required=False) or "",
        note=str(_pick(raw, "note", "content", default="")),
        level=level,
        created_by=_as_id(_pick(raw, "createdBy", "created_by", ("teacher", "createdBy")), "created_by",
                          record_id, required=False) or "",
        created_at=_as_datetime(_pick(raw, "createdAt", "created_at"), "created_at", record_id, required=True),
        student_name=_pick(raw, "studentName", "student_name", ("student", "full_name"), ("student", "fullName")),
        teacher_name=_pick(raw, "teacherName", ("teacher", "teacherName"), ("created_by_user", "full_name")),
    )


def normalize_behavior_notes(raws: Optional[Iterable[Any]], **context) -> List[BehaviorNote]:
    return _normalize_batch(raws, normalize_behavior_note, "행동 기록", **context)


# =========================================================
# 3) 학생 / 평가 / 공지
# =========================================================

def normalize_student(raw: Dict[str, Any]) -> StudentRef:
    raw = _require_mapping(raw, "student")
    sid = _as_id(_pick(raw, "studentId", "student_id", "id"), "student_id")
    return StudentRef(
        student_id=sid,
        full_name=str(_pick(raw, "fullName", "full_name", "studentName", "student_name", "name",
                            default="Unknown Student")),
        class_id=_as_id(_pick(raw, "classId", "class_id", ("class", "id")), "class_id", sid,
                        required=False) or "",
    )


def normalize_students(raws: Optional[Iterable[Any]]) -> List[StudentRef]:
    return _normalize_batch(raws, normalize_student, "학생")


def normalize_assessment(raw: Dict[str, Any]) -> Assessment:
    raw = _require_mapping(raw, "assessment")
    record_id = _as_id(_pick(raw, "assessmentId", "assessment_id", "id"), "assessment_id")
    return Assessment(
        assessment_id=record_id,
        title=str(_pick(raw, "title", "assessmentName", "name", default="")),
        due_date=_as_datetime(_pick(raw, "dueDate", "due_date"), "due_date", record_id, required=True),
        subject_id=_as_id(_pick(raw, "subjectId", "subject_id"), "subject_id", record_id, required=False),
        subject_name=_pick(raw, "subjectName", "subject_name"),
        grade_component_id=_as_id(_pick(raw, "gradeComponentId", "grade_component_id"),
                                  "grade_component_id", record_id, required=False),
        kind=_as_kind(_pick(raw, "kind"), record_id),
        description=str(_pick(raw, "description", default="")),
    )


def normalize_assessments(raws: Optional[Iterable[Any]]) -> List[Assessment]:
    return _normalize_batch(raws, normalize_assessment, "평가")


def normalize_announcement(raw: Dict[str, Any]) -> Announcement:
    raw = _require_mapping(raw, "announcement")
    record_id = _as_id(_pick(raw, "id", "announcementId", "announcement_id"), "announcement_id")
    return Announcement(
        announcement_id=record_id,
        title=str(_pick(raw, "title", default="")),
        content=str(_pick(raw, "content", default="")),
        created_at=_as_datetime(_pick(raw, "createdAt", "created_at"), "created_at", record_id, required=True),
        expires_at=_as_datetime(_pick(raw, "expiresAt", "expires_at"), "expires_at", record_id),
        is_urgent=_as_bool(_pick(raw, "isUrgent", "is_urgent")),
        class_id=_as_id(_pick(raw, "classId", "class_id"), "class_id", record_id, required=False),
        subject_id=_as_id(_pick(raw, "subjectId", "subject_id"), "subject_id", record_id, required=False),
        sender_id=_as_id(_pick(raw, "senderId", "sender_id"), "sender_id", record_id, required=False),
    )


def normalize_announcements(raws: Optional[Iterable[Any]]) -> List[Announcement]:
    return _normalize_batch(raws, normalize_announcement, "공지")


# =========================================================
# 4) 중첩 API 응답 평탄화 (API provider 전용 어댑터)
# =========================================================

def unwrap_list(body) -> List[Any]:
    """응답 본문이 배열이거나 {"data": [...]} 로 감싸진 경우 모두 처리"""
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        return body["data"]
    return []


def flatten_class_scores(payload, subject_id: str, term_id: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    성적부 응답 (학생별 scores 배열) → 점수 레코드 평탄화
    [{"studentId", "fullName", "scores": [...]}, ...]
    """
    flat: List[Dict[str, Any]] = []
    for student in unwrap_list(payload):
        if not isinstance(student, dict):
            logger.warning(f"성적부 학생 항목 형식 오류 건너뜀: {type(student).__name__}")
            continue
        context = {
            "studentId": _pick(student, "studentId", "student_id"),
            "subjectId": subject_id,
            "termId": term_id,
        }
        for score in student.get("scores") or []:
            if isinstance(score, dict):
                flat.append({**{k: v for k, v in context.items() if v is not None}, **score})
            else:
                flat.append(score)
    return flat


def _iter_subject_assessments(payload):
    for subject in unwrap_list(payload):
        if not isinstance(subject, dict):
            continue
        for component in subject.get("components") or []:
            if not isinstance(component, dict):
                continue
            for assessment in component.get("assessments") or []:
                if isinstance(assessment, dict):
                    yield subject, component, assessment


def flatten_student_subjects(payload, student_id: str) -> List[Dict[str, Any]]:
    """
    학생 과목 응답 (subjects → components → assessments) → 점수 레코드 평탄화
    - 아직 채점되지 않은 평가(score 없음, 결석 아님)는 점수가 아니므로 제외
    """
    flat: List[Dict[str, Any]] = []
    for subject, component, assessment in _iter_subject_assessments(payload):
        if assessment.get("score") is None and not _as_bool(assessment.get("isAbsent")):
            logger.debug(f"미채점 평가 제외: assessment={assessment.get('assessmentId')}")
            continue
        flat.append({
            "studentId": student_id,
            "subjectId": subject.get("subjectId"),
            "subjectName": subject.get("subjectName"),
            "gradeComponentId": component.get("gradeComponentId"),
            "componentName": component.get("componentName"),
            "kind": component.get("kind"),
            "weight": component.get("weight"),
            "maxScore": component.get("maxScore"),
            "assessmentId": assessment.get("assessmentId"),
            "assessmentName": assessment.get("title"),
            "score": assessment.get("score"),
            "isAbsent": assessment.get("isAbsent"),
            "comment": assessment.get("comment"),
            "createdAt": assessment.get("dueDate"),
        })
    return flat


def extract_student_assessments(payload) -> List[Dict[str, Any]]:
    """학생 과목 응답에서 평가 일정만 추출 (다가오는 평가 계산용)"""
    return [
        {
            "assessmentId": assessment.get("assessmentId"),
            "title": assessment.get("title"),
            "dueDate": assessment.get("dueDate"),
            "subjectId": subject.get("subjectId"),
            "subjectName": subject.get("subjectName"),
            "gradeComponentId": component.get("gradeComponentId"),
            "kind": component.get("kind"),
        }
        for subject, component, assessment in _iter_subject_assessments(payload)
    ]
