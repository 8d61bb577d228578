import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database.db import SessionLocal
from models.announcements import Announcement as AnnouncementModel
from models.assessments import Assessment as AssessmentModel
from models.behavior_notes import BehaviorNote as BehaviorNoteModel
from models.scores import Score as ScoreModel
from models.students import ParentStudent as ParentStudentModel
from models.students import Student as StudentModel
from services.providers.base import ProviderError, RawRecord, SchoolDataProvider

logger = logging.getLogger(__name__)


def _row_to_dict(row) -> RawRecord:
    return {c.name: getattr(row, c.name) for c in row.__table__.columns}


class SqlDataProvider(SchoolDataProvider):
    """
    스냅샷 DB 기반 공급자 (읽기 전용)
    - 외부 API 대신 import_snapshot 스크립트로 적재한 테이블을 조회
    """

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def _query(self, fn):
        db: Session = self._session_factory()
        try:
            return fn(db)
        except SQLAlchemyError as e:
            logger.error(f"스냅샷 DB 조회 실패: {e}")
            raise ProviderError(f"snapshot database query failed: {e}")
        finally:
            db.close()

    def _rows(self, model, *filters) -> List[RawRecord]:
        return self._query(lambda db: [_row_to_dict(r) for r in db.query(model).filter(*filters).all()])

    # ==========================================================
    # 학생
    # ==========================================================
    def get_student(self, student_id: str) -> Optional[RawRecord]:
        rows = self._rows(StudentModel, StudentModel.id == student_id)
        return rows[0] if rows else None

    def get_parent_children(self, parent_id: str) -> List[RawRecord]:
        return self._query(lambda db: [
            _row_to_dict(student)
            for student in (
                db.query(StudentModel)
                .join(ParentStudentModel, ParentStudentModel.student_id == StudentModel.id)
                .filter(ParentStudentModel.parent_id == parent_id)
                .order_by(StudentModel.full_name)
                .all()
            )
        ])

    def get_class_students(self, class_id: str) -> List[RawRecord]:
        return self._rows(StudentModel, StudentModel.class_id == class_id)

    # ==========================================================
    # 점수 / 평가
    # ==========================================================
    def get_student_scores(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        filters = [ScoreModel.student_id == student_id]
        if term_id:
            filters.append(ScoreModel.term_id == term_id)
        return self._rows(ScoreModel, *filters)

    def get_class_scores(self, class_id: str, subject_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        def query(db: Session):
            q = (
                db.query(ScoreModel)
                .join(StudentModel, StudentModel.id == ScoreModel.student_id)
                .filter(StudentModel.class_id == class_id, ScoreModel.subject_id == subject_id)
            )
            if term_id:
                q = q.filter(ScoreModel.term_id == term_id)
            return [_row_to_dict(r) for r in q.all()]
        return self._query(query)

    def get_student_assessments(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        student = self.get_student(student_id)
        if student is None:
            return []
        filters = [AssessmentModel.class_id == student["class_id"]]
        if term_id:
            filters.append(AssessmentModel.term_id == term_id)
        return self._rows(AssessmentModel, *filters)

    # ==========================================================
    # 행동 기록 / 공지
    # ==========================================================
    def get_student_behavior_notes(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        filters = [BehaviorNoteModel.student_id == student_id]
        if term_id:
            filters.append(BehaviorNoteModel.term_id == term_id)
        return self._rows(BehaviorNoteModel, *filters)

    def get_class_behavior_notes(self, class_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        filters = [BehaviorNoteModel.class_id == class_id]
        if term_id:
            filters.append(BehaviorNoteModel.term_id == term_id)
        return self._rows(BehaviorNoteModel, *filters)

    def get_class_announcements(self, class_id: str) -> List[RawRecord]:
        return self._rows(AnnouncementModel, AnnouncementModel.class_id == class_id)
