import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schemas.common import error_body
from services.aggregation.errors import ConfigurationError
from services.providers.base import ProviderError

logger = logging.getLogger(__name__)

# HTTP 상태 → 에러 코드
_HTTP_CODES = {401: "UNAUTHORIZED", 403: "FORBIDDEN", 404: "NOT_FOUND"}


def add_error_handlers(app: FastAPI):
    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        # 상위 코드의 파라미터 불일치 → 버그이므로 500
        logger.error(f"집계 설정 오류: {request.method} {request.url.path} - {exc}")
        return JSONResponse(status_code=500, content=error_body("CONFIGURATION_ERROR", str(exc)))

    @app.exception_handler(ProviderError)
    async def provider_error_handler(request: Request, exc: ProviderError):
        logger.error(f"데이터 소스 오류: {request.method} {request.url.path} - {exc}")
        return JSONResponse(status_code=502, content=error_body("UPSTREAM_ERROR", str(exc)))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(_HTTP_CODES.get(exc.status_code, "HTTP_ERROR"), str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"처리되지 않은 예외: {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content=error_body("INTERNAL_ERROR", str(exc)))
