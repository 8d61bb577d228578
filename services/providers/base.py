from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

RawRecord = Dict[str, Any]


class ProviderError(Exception):
    """데이터 소스(외부 API, DB) 호출 실패"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SchoolDataProvider(ABC):
    """
    대시보드 집계에 필요한 원본 데이터 공급자
    - 반환값은 정규화 전의 dict 목록 (표기 차이는 normalizer 가 처리)
    - 목록 조회는 데이터가 없으면 빈 리스트, 단건 조회는 None
    """

    @abstractmethod
    def get_student(self, student_id: str) -> Optional[RawRecord]: ...
    @abstractmethod
    def get_parent_children(self, parent_id: str) -> List[RawRecord]: ...
    @abstractmethod
    def get_class_students(self, class_id: str) -> List[RawRecord]: ...
    @abstractmethod
    def get_student_scores(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]: ...
    @abstractmethod
    def get_class_scores(self, class_id: str, subject_id: str, term_id: Optional[str] = None) -> List[RawRecord]: ...
    @abstractmethod
    def get_student_assessments(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]: ...
    @abstractmethod
    def get_student_behavior_notes(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]: ...
    @abstractmethod
    def get_class_behavior_notes(self, class_id: str, term_id: Optional[str] = None) -> List[RawRecord]: ...
    @abstractmethod
    def get_class_announcements(self, class_id: str) -> List[RawRecord]: ...
