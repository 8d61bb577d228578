from sqlalchemy import Boolean, Column, DateTime, Float, String
from database.db import Base

class Score(Base):
    __tablename__ = "scores"  # 평가별 학생 점수 스냅샷 (평가 요소 정보 중복 저장)

    id = Column(String(36), primary_key=True, index=True)           # 점수 ID
    student_id = Column(String(36), nullable=False, index=True)     # 학생 ID
    class_id = Column(String(36))                                   # 반 ID
    subject_id = Column(String(36), nullable=False, index=True)     # 과목 ID
    subject_name = Column(String(100))                              # 과목명 (참고용)
    term_id = Column(String(36), index=True)                        # 학기 ID
    grade_component_id = Column(String(36), nullable=False)         # 평가 요소 ID
    component_name = Column(String(100))                            # 평가 요소명 (예: 15분 퀴즈)
    kind = Column(String(20))                                       # quiz / test / midterm / final ...
    weight = Column(Float)                                          # 평가 요소 가중치
    max_score = Column(Float)                                       # 만점
    assessment_id = Column(String(36))                              # 평가 ID
    assessment_name = Column(String(200))                           # 평가 제목
    score = Column(Float)                                           # 점수 (결석이면 의미 없음)
    is_absent = Column(Boolean, default=False, nullable=False)      # 결석 여부
    comment = Column(String(500))                                   # 교사 코멘트
    created_at = Column(DateTime(timezone=True))                    # 입력 시각
