from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from dependencies.providers import get_dashboard_service
from schemas.common import ok
from services.dashboard_service import DashboardService

router = APIRouter(prefix="/grades", tags=["성적"])


# ==========================================================
# [학생] 과목별 가중 평균
# ==========================================================

# ✅ [READ] 학생 과목 평균 + 전체 평균 + 등급
@router.get("/students/{student_id}")
def read_student_grades(
    student_id: str,
    term_id: Optional[str] = None,
    service: DashboardService = Depends(get_dashboard_service),
):
    grades = service.build_student_grades(student_id, term_id)
    if grades is None:
        raise HTTPException(status_code=404, detail=f"학생을 찾을 수 없습니다: {student_id}")
    return ok(grades, f"{len(grades['subjects'])}개 과목 평균 계산 완료")


# ==========================================================
# [교사] 반 × 과목 성적부
# ==========================================================

# ✅ [READ] 학생별 평균/순위 + 반 통계 + 분포 + 지도 필요 학생
@router.get("/classes/{class_id}/subjects/{subject_id}")
def read_class_gradebook(
    class_id: str,
    subject_id: str,
    term_id: Optional[str] = None,
    service: DashboardService = Depends(get_dashboard_service),
):
    gradebook = service.build_teacher_gradebook(class_id, subject_id, term_id)
    return ok(gradebook, f"성적부 조회 완료 (학생 {gradebook.stats.total_students}명)")
