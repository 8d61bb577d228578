from sqlalchemy import Column, String
from database.db import Base

class Student(Base):
    __tablename__ = "students"  # 학생 기본 정보 스냅샷

    id = Column(String(36), primary_key=True, index=True)           # 학생 ID (외부 API 의 UUID)
    full_name = Column(String(100), nullable=False)                 # 학생 이름
    class_id = Column(String(36), index=True)                       # 현재 소속 반 ID


class ParentStudent(Base):
    __tablename__ = "parent_students"  # 학부모-자녀 관계

    parent_id = Column(String(36), primary_key=True)                # 학부모 사용자 ID
    student_id = Column(String(36), primary_key=True)               # 자녀 학생 ID
    relationship = Column(String(20))                               # father / mother / guardian ...
