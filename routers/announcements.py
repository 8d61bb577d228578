from typing import Optional

from fastapi import APIRouter, Depends, Query

from dependencies.providers import get_dashboard_service
from schemas.common import ok
from services.dashboard_service import DashboardService

router = APIRouter(prefix="/announcements", tags=["공지사항"])


# ✅ [RECENT] 반 최신 공지 (만료 제외, 긴급만 선택 가능)
@router.get("/classes/{class_id}")
def read_class_announcements(
    class_id: str,
    urgent_only: bool = False,
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    service: DashboardService = Depends(get_dashboard_service),
):
    items = service.class_announcements(class_id, urgent_only=urgent_only, limit=limit)
    return ok(items, f"최신 공지 {len(items)}개 조회 성공")
