"""Repeat policy models."""

from enum import Enum, IntEnum
from typing import Optional
from pydantic import BaseModel


class RepeatUnit(str, Enum):
    """User-facing repeat units."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class RepeatMode(IntEnum):
    """Vikunja repeat_mode flag."""
    DEFAULT = 0  # use repeat_after
    MONTHLY = 1  # repeat_after is ignored
    FROM_CURRENT_DATE = 2


class RepeatConfiguration(BaseModel):
    """Remote representation of a repeat policy."""
    repeat_after: Optional[int] = None
    repeat_mode: Optional[RepeatMode] = None

    def to_payload(self) -> dict[str, int]:
        payload: dict[str, int] = {}
        if self.repeat_after is not None:
            payload["repeat_after"] = self.repeat_after
        if self.repeat_mode is not None:
            payload["repeat_mode"] = int(self.repeat_mode)
        return payload
