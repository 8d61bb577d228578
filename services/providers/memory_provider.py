import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from services.providers.base import RawRecord, SchoolDataProvider

logger = logging.getLogger(__name__)

SNAPSHOT_KEYS = ("students", "parent_students", "scores", "assessments", "behavior_notes", "announcements")


def _match(record: Dict[str, Any], **criteria) -> bool:
    # None 조건은 무시
    return all(value is None or str(record.get(key)) == str(value) for key, value in criteria.items())


class MemoryDataProvider(SchoolDataProvider):
    """
    메모리 스냅샷 기반 공급자 (데모/테스트용)

    snapshot = {
        "students": [...], "parent_students": [...], "scores": [...],
        "assessments": [...], "behavior_notes": [...], "announcements": [...],
    }
    - 반환하는 dict 는 복사본 (스냅샷 원본은 변경되지 않음)
    """

    def __init__(self, snapshot: Optional[Dict[str, Iterable[RawRecord]]] = None):
        snapshot = snapshot or {}
        unknown = set(snapshot) - set(SNAPSHOT_KEYS)
        if unknown:
            logger.warning(f"스냅샷의 알 수 없는 키 무시: {sorted(unknown)}")
        self._data: Dict[str, List[RawRecord]] = {
            key: [dict(r) for r in snapshot.get(key) or []] for key in SNAPSHOT_KEYS
        }

    @classmethod
    def from_json_file(cls, path) -> "MemoryDataProvider":
        with open(Path(path), encoding="utf-8") as f:
            return cls(json.load(f))

    def _select(self, key: str, **criteria) -> List[RawRecord]:
        return [dict(r) for r in self._data[key] if _match(r, **criteria)]

    def _class_student_ids(self, class_id: str) -> set:
        return {str(s.get("id")) for s in self._data["students"] if _match(s, class_id=class_id)}

    def get_student(self, student_id: str) -> Optional[RawRecord]:
        found = self._select("students", id=student_id)
        return found[0] if found else None

    def get_parent_children(self, parent_id: str) -> List[RawRecord]:
        child_ids = [str(link.get("student_id")) for link in self._select("parent_students", parent_id=parent_id)]
        by_id = {str(s.get("id")): s for s in self._data["students"]}
        return [dict(by_id[sid]) for sid in child_ids if sid in by_id]

    def get_class_students(self, class_id: str) -> List[RawRecord]:
        return self._select("students", class_id=class_id)

    def get_student_scores(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        return self._select("scores", student_id=student_id, term_id=term_id)

    def get_class_scores(self, class_id: str, subject_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        members = self._class_student_ids(class_id)
        return [
            r for r in self._select("scores", subject_id=subject_id, term_id=term_id)
            if str(r.get("student_id")) in members
        ]

    def get_student_assessments(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        student = self.get_student(student_id)
        if student is None:
            return []
        return self._select("assessments", class_id=student.get("class_id"), term_id=term_id)

    def get_student_behavior_notes(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        return self._select("behavior_notes", student_id=student_id, term_id=term_id)

    def get_class_behavior_notes(self, class_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        return self._select("behavior_notes", class_id=class_id, term_id=term_id)

    def get_class_announcements(self, class_id: str) -> List[RawRecord]:
        return self._select("announcements", class_id=class_id)
