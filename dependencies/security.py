"""
대시보드 API 내부 토큰 검사

학교 포털 프론트엔드(BFF)만 /v1 대시보드 API 를 호출하므로
공유 Bearer 토큰(API_INTERNAL_TOKEN) 하나로 호출자를 확인한다.
학생/학부모/교사 단위 권한은 포털이 이미 걸러서 넘겨준다.
"""

from typing import Optional, Annotated
from fastapi import Header, HTTPException
from config.settings import settings
import hmac

AuthHeader = Annotated[Optional[str], Header(alias="Authorization")]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})


def require_internal_token(authorization: AuthHeader = None):
    # 로컬 개발(dev)은 토큰 없이 대시보드 조회 허용, stage/prod 는 설정 누락 자체가 서버 오류
    if not settings.API_INTERNAL_TOKEN:
        if settings.ENV == "dev":
            return {"caller": "local-dev"}
        raise HTTPException(status_code=500, detail="API_INTERNAL_TOKEN is not configured")

    if not authorization:
        raise _unauthorized("Missing Authorization header")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise _unauthorized("Expected 'Bearer <portal token>'")

    if not hmac.compare_digest(token.strip(), settings.API_INTERNAL_TOKEN):
        raise _unauthorized("Invalid portal token")

    return {"caller": "portal"}
