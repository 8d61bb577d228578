from sqlalchemy import Column, DateTime, String
from database.db import Base

class BehaviorNote(Base):
    __tablename__ = "behavior_notes"  # 행동 기록 (삭제하지 않고 누적)

    id = Column(String(36), primary_key=True, index=True)           # 기록 ID
    student_id = Column(String(36), nullable=False, index=True)     # 학생 ID
    class_id = Column(String(36), index=True)                       # 반 ID
    term_id = Column(String(36))                                    # 학기 ID
    note = Column(String(1000), nullable=False)                     # 관찰 내용
    level = Column(String(30), nullable=False)                      # Excellent / Good / Fair / Needs improvement / Poor
    created_by = Column(String(36))                                 # 작성 교사 ID
    created_at = Column(DateTime(timezone=True), nullable=False)    # 작성 시각
