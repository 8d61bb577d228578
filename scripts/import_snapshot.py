import json
import sys
from datetime import timezone

from sqlalchemy import DateTime
from sqlalchemy.orm import Session

from database.db import Base, SessionLocal, engine
from models.announcements import Announcement as AnnouncementModel
from models.assessments import Assessment as AssessmentModel
from models.behavior_notes import BehaviorNote as BehaviorNoteModel
from models.scores import Score as ScoreModel
from models.students import ParentStudent as ParentStudentModel
from models.students import Student as StudentModel
from services.aggregation.normalizer import parse_timestamp

SNAPSHOT_PATH = "data/demo_snapshot.json"  # ✅ 기본 파일 경로

# ✅ 스냅샷 키 → 모델
TABLES = {
    "students": StudentModel,
    "parent_students": ParentStudentModel,
    "scores": ScoreModel,
    "assessments": AssessmentModel,
    "behavior_notes": BehaviorNoteModel,
    "announcements": AnnouncementModel,
}


def _to_row(model, record: dict):
    values = {}
    for column in model.__table__.columns:
        if column.name not in record:
            continue
        value = record[column.name]
        if isinstance(column.type, DateTime):
            value = parse_timestamp(value)   # ISO 문자열 → datetime
            if value is not None:
                value = value.astimezone(timezone.utc)   # SQLite 는 오프셋을 버리므로 UTC 로 저장
        values[column.name] = value
    return model(**values)


def import_snapshot(snapshot: dict, db: Session) -> dict:
    """
    JSON 스냅샷을 테이블에 적재 (같은 키는 덮어씀)
    - 반환값: 테이블별 적재 건수
    """
    counts = {}
    for key, model in TABLES.items():
        records = snapshot.get(key) or []
        for record in records:
            db.merge(_to_row(model, record))
        counts[key] = len(records)
    db.commit()
    return counts


def main(path: str = SNAPSHOT_PATH):
    Base.metadata.create_all(bind=engine)
    with open(path, encoding="utf-8") as f:
        snapshot = json.load(f)

    db: Session = SessionLocal()
    try:
        counts = import_snapshot(snapshot, db)
    finally:
        db.close()
    print(f"✅ 스냅샷 JSON → DB 적재 완료: {counts}")


if __name__ == "__main__":
    main(*sys.argv[1:2])
