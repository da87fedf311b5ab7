from __future__ import annotations
from typing import Any


class StampfeedError(Exception):
    """Base error."""


class TransportError(StampfeedError):
    """dial/read/write 실패. retryable=True 이면 스트림 루프가 고정 지연 후 재시도."""

    def __init__(self, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class FeedError(TransportError):
    """오더북 피드가 치명적 스트림 오류로 종료됨."""


class DecodeError(StampfeedError):
    """malformed JSON 또는 스키마 위반 (프레임/레코드 1개 단위)."""

    def __init__(self, message: str, partial: list[Any] | None = None) -> None:
        super().__init__(message)
        # 트레이드 배치 디코드 실패 시 실패 지점 전까지 만들어진 결과
        self.partial = partial if partial is not None else []


class ValidationError(DecodeError):
    """레코드 안의 숫자/arity 위반. field 에 문제 필드(bids/asks/price ...)."""

    def __init__(self, message: str, field: str) -> None:
        super().__init__(message)
        self.field = field


class ResourceError(StampfeedError):
    """REST/파일 I/O 실패 (원래 예외는 __cause__)."""


def is_retryable(exc: BaseException) -> bool:
    return bool(getattr(exc, "retryable", False))
