from sqlalchemy import create_engine               # SQLAlchemy 엔진 생성 도구
from sqlalchemy.orm import declarative_base, sessionmaker

from config.settings import settings               # ✅ 환경변수 설정 파일 불러오기


def make_engine(url: str):
    # SQLite 는 요청 스레드와 생성 스레드가 다를 수 있으므로 검사 해제
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


# ✅ 스냅샷 DB 엔진 (DATA_PROVIDER=sql 일 때 사용, 읽기 전용)
engine = make_engine(settings.DATABASE_URL)

# ✅ 세션 팩토리
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# ✅ 모델 정의 시 상속할 Base 클래스
Base = declarative_base()
