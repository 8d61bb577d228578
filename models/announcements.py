from sqlalchemy import Boolean, Column, DateTime, String
from database.db import Base

class Announcement(Base):
    __tablename__ = "announcements"  # 공지사항

    id = Column(String(36), primary_key=True, index=True)           # 공지 ID
    class_id = Column(String(36), index=True)                       # 대상 반 ID
    subject_id = Column(String(36))                                 # 관련 과목 ID (선택)
    sender_id = Column(String(36))                                  # 작성 교사 ID
    title = Column(String(200), nullable=False)                     # 제목
    content = Column(String(2000), nullable=False)                  # 내용
    created_at = Column(DateTime(timezone=True), nullable=False)    # 작성 시각
    expires_at = Column(DateTime(timezone=True))                    # 만료 시각 (선택)
    is_urgent = Column(Boolean, default=False, nullable=False)      # 긴급 여부
