from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from dependencies.providers import get_dashboard_service
from schemas.common import ok
from services.dashboard_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["대시보드"])


# ==========================================================
# [학생] 대시보드
# ==========================================================

# ✅ [READ] 학생 본인 대시보드 (과목 평균, 행동 요약, 다가오는 평가, 공지)
@router.get("/students/{student_id}")
def read_student_dashboard(
    student_id: str,
    term_id: Optional[str] = None,
    service: DashboardService = Depends(get_dashboard_service),
):
    dashboard = service.build_student_dashboard(student_id, term_id)
    if dashboard is None:
        raise HTTPException(status_code=404, detail=f"학생을 찾을 수 없습니다: {student_id}")
    return ok(dashboard, "학생 대시보드 조회 완료")


# ==========================================================
# [학부모] 대시보드
# ==========================================================

# ✅ [READ] 자녀 전체 요약 + 긴급 알림
@router.get("/parents/{parent_id}")
def read_parent_dashboard(
    parent_id: str,
    term_id: Optional[str] = None,
    service: DashboardService = Depends(get_dashboard_service),
):
    dashboard = service.build_parent_dashboard(parent_id, term_id)
    return ok(
        dashboard,
        f"자녀 {len(dashboard.children)}명 요약 조회 완료 (긴급 알림 {len(dashboard.urgent_alerts)}건)",
    )
