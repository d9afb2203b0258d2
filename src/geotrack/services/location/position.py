"""Device position sources."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Protocol, Union

from ...models.domain import Coordinate


class PositionErrorCode(IntEnum):
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


_FAILURE_MESSAGES: dict[PositionErrorCode, Optional[str]] = {
    # Denial is the user's choice, not an error to display
    PositionErrorCode.PERMISSION_DENIED: None,
    PositionErrorCode.POSITION_UNAVAILABLE: "Location information unavailable",
    PositionErrorCode.TIMEOUT: "Location request timed out",
}


@dataclass(frozen=True, slots=True)
class PositionFailure:
    code: PositionErrorCode
    message: Optional[str] = None

    @classmethod
    def from_code(cls, code: int) -> "PositionFailure":
        try:
            known = PositionErrorCode(code)
        except ValueError:
            return cls(code=PositionErrorCode.POSITION_UNAVAILABLE, message="Unable to get your location")
        return cls(code=known, message=_FAILURE_MESSAGES[known])

    @property
    def permission_denied(self) -> bool:
        return self.code is PositionErrorCode.PERMISSION_DENIED


@dataclass(frozen=True, slots=True)
class PositionOptions:
    enable_high_accuracy: bool = True
    timeout_ms: int = 15_000
    maximum_age_ms: int = 300_000


PositionResult = Union[Coordinate, PositionFailure]


class PositionSource(Protocol):
    async def get_current_position(self, options: PositionOptions) -> PositionResult:
        ...


class StaticPositionSource:
    """Answers every request with the same coordinate or failure."""

    def __init__(self, result: PositionResult) -> None:
        self.result = result

    async def get_current_position(self, options: PositionOptions) -> PositionResult:
        return self.result
