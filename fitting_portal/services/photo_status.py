"""
사진 처리 상태 정의 및 전이 규칙.

상태는 PENDING → PROCESSING → COMPLETED/FAILED 방향으로만 진행합니다.
COMPLETED/FAILED는 종결 상태이며 서로 간에도 전이할 수 없습니다.
"""
from __future__ import annotations

from enum import Enum


class PhotoStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def api_value(self) -> str:
        return self.value.lower()


class PhotoStatusTransitionError(ValueError):
    def __init__(self, current: PhotoStatus, target: PhotoStatus) -> None:
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from {current.api_value} to {target.api_value}")


_STATUS_RANK: dict[PhotoStatus, int] = {
    PhotoStatus.PENDING: 0,
    PhotoStatus.PROCESSING: 1,
    PhotoStatus.COMPLETED: 2,
    PhotoStatus.FAILED: 2,
}


def status_rank(status: PhotoStatus) -> int:
    return _STATUS_RANK[PhotoStatus(status)]


def can_transition(current: PhotoStatus, target: PhotoStatus) -> bool:
    if current == target:
        return True
    return status_rank(target) > status_rank(current)


def ensure_transition(current: PhotoStatus, target: PhotoStatus) -> None:
    if not can_transition(current, target):
        raise PhotoStatusTransitionError(current, target)


def parse_status(value: str | None) -> PhotoStatus:
    """'pending', 'Completed' 등 대소문자 무관하게 PhotoStatus로 변환."""
    if not isinstance(value, str) or not value.strip():
        raise ValueError("status is empty")
    try:
        return PhotoStatus[value.strip().upper()]
    except KeyError:
        raise ValueError(f"invalid status: {value}") from None
