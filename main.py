import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# HTTP 라이브러리 디버그 로그 비활성화
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


# ✅ 미들웨어 임포트
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ 인증 의존성 (API_INTERNAL_TOKEN 설정 시 Bearer 토큰 필수)
from dependencies.security import require_internal_token

# ✅ 라우터 임포트
from routers import (
    announcements,
    behavior,
    config,
    dashboards,
    grades,
)

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS 설정 (프론트엔드 연동, CORS_ORIGINS 환경변수)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ 요청 지연 측정 미들웨어 (응답 헤더 X-Latency-Ms 추가)
app.add_middleware(TimingMiddleware)

# ✅ 전역 에러 핸들러 등록 (일관된 JSON 에러 포맷)
add_error_handlers(app)

# ✅ /v1 프리픽스 라우터 등록
auth = [Depends(require_internal_token)]
app.include_router(dashboards.router,     prefix="/v1", dependencies=auth)
app.include_router(grades.router,         prefix="/v1", dependencies=auth)
app.include_router(behavior.router,       prefix="/v1", dependencies=auth)
app.include_router(announcements.router,  prefix="/v1", dependencies=auth)
app.include_router(config.router,         prefix="/v1", dependencies=auth)

# ✅ 헬스체크 엔드포인트
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running", "data_provider": settings.DATA_PROVIDER}

# ✅ 루트 엔드포인트
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - 성적/행동 기록 대시보드 집계"}
