from typing import Optional

from fastapi import APIRouter, Depends

from dependencies.providers import get_dashboard_service
from schemas.aggregates import BehaviorSummary
from schemas.common import ok
from services.dashboard_service import DashboardService

router = APIRouter(prefix="/behavior", tags=["행동 기록"])


# ==========================================================
# [교사] 반 행동 기록 (학생별 묶음)
# ==========================================================

# ✅ [READ] 최근 기록이 있는 학생 순으로 정렬된 묶음
@router.get("/classes/{class_id}")
def read_class_behavior(
    class_id: str,
    term_id: Optional[str] = None,
    service: DashboardService = Depends(get_dashboard_service),
):
    view = service.build_class_behavior(class_id, term_id)
    return ok(view, f"행동 기록 {view.total_notes}건 (학생 {len(view.students)}명) 조회 완료")


# ==========================================================
# [학생/학부모] 개인 행동 기록 요약
# ==========================================================

# ✅ [READ] 기록이 없으면 빈 요약 반환 (404 아님)
@router.get("/students/{student_id}")
def read_student_behavior(
    student_id: str,
    term_id: Optional[str] = None,
    service: DashboardService = Depends(get_dashboard_service),
):
    group = service.build_student_behavior(student_id, term_id)
    if group is None:
        return ok(
            {"student_id": student_id, "notes": [], "note_count": 0,
             "latest_note": None, "summary": BehaviorSummary()},
            "행동 기록이 없습니다",
        )
    return ok(
        {**group.model_dump(mode="json"), "summary": group.summary()},
        f"행동 기록 {group.note_count}건 조회 완료",
    )
