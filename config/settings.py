"""
config/settings.py

- .env에 정의한 환경변수를 읽어 애플리케이션 전역 설정으로 제공합니다.
- pydantic v2 / pydantic-settings v2 사용.
- 모든 항목에 기본값이 있으므로 .env 없이도 개발/테스트 환경에서 바로 기동됩니다.
- 집계 정책(임계값 등)은 학교마다 다를 수 있으므로 하드코딩하지 않고 여기서 관리합니다.
  점수 관련 값은 모두 내부 표준 척도(0~100 백분율) 기준입니다.
"""

import json
from typing import Annotated, Dict, List, Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    # =========================
    # 앱/런타임
    # =========================
    ENV: Literal["dev", "stage", "prod"] = "dev"
    APP_TITLE: str = "School Dashboard API"
    APP_DESCRIPTION: str = "교사/학생/학부모 대시보드 성적·행동 집계 API"
    APP_VERSION: str = "1.0.0"

    # =========================
    # CORS
    # =========================
    # 콤마(,)로 구분된 문자열 → List[str] 로 파싱
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            # "a,b , c" → ["a","b","c"]
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    # =========================
    # 데이터 소스
    # =========================
    # api: 외부 REST API / sql: 스냅샷 DB / memory: JSON 스냅샷(데모, 테스트)
    DATA_PROVIDER: Literal["api", "sql", "memory"] = "memory"

    SCHOOL_API_BASE_URL: str = "http://localhost:5000/api"
    SCHOOL_API_TOKEN: str = ""
    SCHOOL_API_TIMEOUT: int = 10

    DATABASE_URL: str = "sqlite:///./school_snapshot.db"
    SNAPSHOT_PATH: str = "data/demo_snapshot.json"

    # =========================
    # 내부 호출 인증 (선택)
    # =========================
    # 비어 있으면 dev 환경에서만 인증 없이 허용
    API_INTERNAL_TOKEN: str = ""

    # =========================
    # 집계 정책 (0~100 척도)
    # =========================
    URGENT_AVERAGE_THRESHOLD: float = 50.0   # 0~10 척도의 5.0
    URGENT_BEHAVIOR_LEVEL: str = "Poor"
    PASS_THRESHOLD: float = 50.0
    GUIDANCE_THRESHOLD: float = 65.0
    OVERALL_AVERAGE_MODE: Literal["unweighted", "weighted"] = "unweighted"
    SUBJECT_WEIGHTS: Annotated[Dict[str, float], NoDecode] = {}
    RECENT_ANNOUNCEMENTS_LIMIT: int = 10
    RECENT_SCORES_LIMIT: int = 6

    @field_validator("SUBJECT_WEIGHTS", mode="before")
    @classmethod
    def _parse_subject_weights(cls, v):
        # "math=2,lit=1.5" 형식도 허용 (JSON 문자열은 그대로 파싱)
        if isinstance(v, str):
            text = v.strip()
            if not text:
                return {}
            if text.startswith("{"):
                return json.loads(text)
            pairs = [p.split("=", 1) for p in text.split(",") if p.strip()]
            return {k.strip(): float(w) for k, w in pairs}
        return v

    # =========================
    # Logging / Misc
    # =========================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # =========================
    # BaseSettings Config
    # =========================
    model_config = SettingsConfigDict(
        env_file=".env",               # .env에서 값 로드
        env_file_encoding="utf-8",
        case_sensitive=False,          # 환경변수 대소문자 비구분
        extra="ignore",                # 정의되지 않은 키는 무시
    )


# ✅ settings 객체를 통해 어디서든 접근 가능
settings = Settings()
