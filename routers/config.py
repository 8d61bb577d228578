from fastapi import APIRouter, Depends

from dependencies.providers import get_policy
from schemas.aggregates import AggregationPolicy
from schemas.common import ok

router = APIRouter(prefix="/config", tags=["설정"])


# ==========================================================
# 집계 정책 조회
# ==========================================================

# ✅ [READ] 현재 적용 중인 임계값/평균 방식 (0~100 척도)
@router.get("/policy")
def get_policy_config(policy: AggregationPolicy = Depends(get_policy)):
    """화면 단에서 0~10 척도로 표시할 때는 값을 10으로 나눠 사용"""
    return ok(policy, f"집계 정책 반환 (전체 평균 방식: {policy.overall_average_mode})")
