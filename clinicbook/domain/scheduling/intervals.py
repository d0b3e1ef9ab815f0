"""Half-open time intervals over naive instants"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta

from .errors import InvalidInterval


@dataclass(frozen=True)
class TimeInterval:
    """``[start, end)`` - touching intervals do not overlap, so back-to-back bookings are legal."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start >= self.end:
            raise InvalidInterval(f"Interval start {self.start.isoformat()} must be before end {self.end.isoformat()}")

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> "TimeInterval":
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "TimeInterval") -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def same_as(self, other: "TimeInterval") -> bool:
        return self.start == other.start and self.end == other.end

    def spans_midnight(self) -> bool:
        """True when the interval ends on a later calendar date than it starts (including exactly at midnight)"""
        return self.end.date() != self.start.date()

    def wall_clock(self) -> tuple[time, time]:
        return self.start.time(), self.end.time()

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"
