import logging
from typing import Any, Dict, List, Optional

import httpx

from services.aggregation.errors import ConfigurationError
from services.aggregation.normalizer import (
    extract_student_assessments,
    flatten_class_scores,
    flatten_student_subjects,
    unwrap_list,
)
from services.providers.base import ProviderError, RawRecord, SchoolDataProvider

logger = logging.getLogger(__name__)


def _term_of(record: Dict[str, Any]) -> Optional[str]:
    term = record.get("termId") or record.get("term_id")
    if term is None and isinstance(record.get("term"), dict):
        term = record["term"].get("termId") or record["term"].get("id")
    return None if term is None else str(term)


def _filter_term(records: List[RawRecord], term_id: Optional[str]) -> List[RawRecord]:
    # 학기 정보가 없는 기록은 남겨 둠
    if not term_id:
        return records
    return [r for r in records if not isinstance(r, dict) or _term_of(r) in (None, term_id)]


class ApiDataProvider(SchoolDataProvider):
    """
    외부 학교 REST API 클라이언트
    - Bearer 토큰 인증
    - 단건 조회 404 → None, 그 외 실패 → ProviderError
    - 재시도/캐시 없음
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 10,
        client: Optional[httpx.Client] = None,
    ):
        self.base = base_url.rstrip("/")
        self.headers = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self.timeout = timeout
        self._client = client   # 테스트에서 MockTransport 클라이언트 주입

    @classmethod
    def from_settings(cls, settings) -> "ApiDataProvider":
        return cls(
            base_url=settings.SCHOOL_API_BASE_URL,
            token=settings.SCHOOL_API_TOKEN,
            timeout=settings.SCHOOL_API_TIMEOUT,
        )

    # ==========================================================
    # HTTP 공통
    # ==========================================================
    def _send(self, client: httpx.Client, path: str, params: Optional[dict]) -> httpx.Response:
        return client.get(f"{self.base}{path}", params=params, headers=self.headers)

    def get(self, path: str, params: Optional[dict] = None, allow_404: bool = False):
        params = {k: v for k, v in (params or {}).items() if v is not None} or None
        try:
            if self._client is not None:
                r = self._send(self._client, path, params)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    r = self._send(client, path, params)
        except httpx.HTTPError as e:
            logger.error(f"학교 API 호출 실패: GET {path} - {e}")
            raise ProviderError(f"school API request failed: GET {path}: {e}")

        if allow_404 and r.status_code == 404:
            return None
        if r.is_error:
            logger.error(f"학교 API 오류 응답: GET {path} → {r.status_code}")
            raise ProviderError(f"school API returned {r.status_code} for GET {path}", status_code=r.status_code)
        try:
            return r.json()
        except ValueError:
            raise ProviderError(f"school API returned a non-JSON body for GET {path}", status_code=r.status_code)

    def get_list(self, path: str, params: Optional[dict] = None) -> List[RawRecord]:
        return unwrap_list(self.get(path, params))

    # ==========================================================
    # 엔드포인트
    # ==========================================================
    def get_student(self, student_id: str) -> Optional[RawRecord]:
        body = self.get(f"/Student/{student_id}", allow_404=True)
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            return body["data"]
        return body

    def get_parent_children(self, parent_id: str) -> List[RawRecord]:
        return self.get_list(f"/Student/parent/{parent_id}")

    def get_class_students(self, class_id: str) -> List[RawRecord]:
        return self.get_list(f"/Student/class/{class_id}")

    def get_student_scores(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        payload = self.get(f"/Subject/student/{student_id}", {"termId": term_id})
        return flatten_student_subjects(payload, student_id)

    def get_class_scores(self, class_id: str, subject_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        # 학교 API 경로에 학기가 포함되므로 생략 불가
        if not term_id:
            raise ConfigurationError("term_id is required to load class scores from the school API")
        payload = self.get(f"/Score/class/{class_id}/subject/{subject_id}/term/{term_id}/scores")
        return flatten_class_scores(payload, subject_id, term_id)

    def get_student_assessments(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        payload = self.get(f"/Subject/student/{student_id}", {"termId": term_id})
        return extract_student_assessments(payload)

    def get_student_behavior_notes(self, student_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        notes = self.get_list(f"/BehaviorNote/student/{student_id}")
        # 학생별 엔드포인트는 studentId 를 내려주지 않음
        notes = [{"studentId": student_id, **n} if isinstance(n, dict) else n for n in notes]
        return _filter_term(notes, term_id)

    def get_class_behavior_notes(self, class_id: str, term_id: Optional[str] = None) -> List[RawRecord]:
        return _filter_term(self.get_list(f"/BehaviorNote/class/{class_id}"), term_id)

    def get_class_announcements(self, class_id: str) -> List[RawRecord]:
        return self.get_list(f"/Announcement/class/{class_id}")
