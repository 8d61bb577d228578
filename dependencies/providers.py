from functools import lru_cache

from fastapi import Depends

from config.settings import settings
from schemas.aggregates import AggregationPolicy
from services.dashboard_service import DashboardService
from services.providers.api_provider import ApiDataProvider
from services.providers.base import SchoolDataProvider
from services.providers.memory_provider import MemoryDataProvider
from services.providers.sql_provider import SqlDataProvider


def build_provider(config=settings) -> SchoolDataProvider:
    """DATA_PROVIDER 설정에 맞는 공급자 생성"""
    if config.DATA_PROVIDER == "api":
        return ApiDataProvider.from_settings(config)
    if config.DATA_PROVIDER == "sql":
        return SqlDataProvider()
    return MemoryDataProvider.from_json_file(config.SNAPSHOT_PATH)


# ✅ 프로세스당 하나 (테스트에서는 app.dependency_overrides 로 교체)
@lru_cache(maxsize=1)
def get_data_provider() -> SchoolDataProvider:
    return build_provider(settings)


def get_policy() -> AggregationPolicy:
    return AggregationPolicy.from_settings(settings)


def get_dashboard_service(
    provider: SchoolDataProvider = Depends(get_data_provider),
    policy: AggregationPolicy = Depends(get_policy),
) -> DashboardService:
    return DashboardService(provider, policy)
