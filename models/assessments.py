from sqlalchemy import Column, DateTime, String
from database.db import Base

class Assessment(Base):
    __tablename__ = "assessments"  # 평가 일정

    id = Column(String(36), primary_key=True, index=True)           # 평가 ID
    class_id = Column(String(36), index=True)                       # 대상 반 ID
    subject_id = Column(String(36))                                 # 과목 ID
    subject_name = Column(String(100))                              # 과목명 (참고용)
    term_id = Column(String(36))                                    # 학기 ID
    grade_component_id = Column(String(36))                         # 평가 요소 ID
    kind = Column(String(20))                                       # 평가 유형
    title = Column(String(200), nullable=False)                     # 평가 제목
    due_date = Column(DateTime(timezone=True), nullable=False)      # 마감/시행 일시
    description = Column(String(500))                               # 설명
