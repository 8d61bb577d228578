from typing import Optional


class AggregationError(Exception):
    """집계 엔진 공통 예외"""


class ValidationError(AggregationError):
    """
    단일 입력 레코드가 구조적으로 잘못된 경우 (필수 필드 누락, 타입 오류, 범위 초과)
    - 배치 함수에서는 로그를 남기고 해당 레코드만 건너뜀
    """

    def __init__(self, message: str, field: Optional[str] = None, record_id: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.record_id = record_id

    def __str__(self):
        prefix = f"[{self.record_id}] " if self.record_id else ""
        return f"{prefix}{self.args[0]}"


class ConfigurationError(AggregationError):
    """
    호출자가 서로 모순되는 파라미터를 넘긴 경우 (상위 코드 버그)
    - 건너뛰지 않고 즉시 호출자에게 전파
    """
