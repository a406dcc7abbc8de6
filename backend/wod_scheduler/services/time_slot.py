"""
TimeSlot: immutable hour:minute value used as the scheduling cursor.

Arithmetic goes through minutes-since-midnight and wraps at 24h, so a value
is always normalized (hours 0-23, minutes 0-59).

UTC conversion uses a fixed offset table. There is no daylight-saving or
IANA tz-database support; unknown zone names fall back to offset 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Union

MINUTES_PER_DAY = 24 * 60

TIMEZONE_OFFSETS: Dict[str, int] = {
    "UTC": 0,
    "EST": -5,
    "CST": -6,
    "MST": -7,
    "PST": -8,
    "CET": 1,
    "JST": 9,
    "AEST": 10,
}


@dataclass(frozen=True, order=True)
class TimeSlot:
    hours: int
    minutes: int

    def __post_init__(self):
        if not (0 <= self.hours <= 23) or not (0 <= self.minutes <= 59):
            raise ValueError(f"Invalid time values: {self.hours}:{self.minutes}")

    @classmethod
    def from_string(cls, value: str) -> "TimeSlot":
        """Parse 'HH:MM' (seconds, if present, are ignored)."""
        parts = value.strip().split(":")
        if len(parts) < 2:
            raise ValueError(f"Invalid time string: '{value}'")
        try:
            hours, minutes = int(parts[0]), int(parts[1])
        except ValueError:
            raise ValueError(f"Invalid time string: '{value}'")
        return cls(hours, minutes)

    @classmethod
    def from_minutes(cls, total_minutes: int) -> "TimeSlot":
        hours, minutes = divmod(total_minutes % MINUTES_PER_DAY, 60)
        return cls(hours, minutes)

    def add_minutes(self, minutes: int) -> "TimeSlot":
        return TimeSlot.from_minutes(self.to_minutes() + minutes)

    def to_minutes(self) -> int:
        return self.hours * 60 + self.minutes

    def minutes_since(self, other: "TimeSlot") -> int:
        """Forward distance from *other* to this slot, wrapping past midnight."""
        return (self.to_minutes() - other.to_minutes()) % MINUTES_PER_DAY

    def __str__(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}"


def convert_to_utc(local_time: Union[TimeSlot, str], timezone: str) -> str:
    """Shift a local 'HH:MM' to UTC using the static offset table."""
    slot = local_time if isinstance(local_time, TimeSlot) else TimeSlot.from_string(local_time)
    offset = TIMEZONE_OFFSETS.get(timezone, 0)
    return str(TimeSlot((slot.hours - offset) % 24, slot.minutes))
