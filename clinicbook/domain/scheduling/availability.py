"""
Staff availability: weekly wall-clock templates plus dated exclusions.

Templates are stored on ``Staff.availability`` as a JSON blob. The blob is parsed
into a ``WeeklyAvailability`` before it reaches the resolver. Accepted shapes per day:

    {"monday": [{"start": "09:00", "end": "12:00"}, {"start": "13:00", "end": "17:00"}]}
    {"monday": {"start": "09:00", "end": "17:00", "enabled": true}}

Day keys may be weekday names (any case, full or three-letter) or 0..6 with Monday = 0.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any, Optional, Sequence

from .errors import InvalidInterval
from .intervals import TimeInterval

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

OUTSIDE_TEMPLATE = "outside_template"
EXCLUDED = "excluded"


def parse_weekday(key: Any) -> Optional[int]:
    """Map a template key to 0..6 (Monday = 0), or None if unrecognised"""
    if isinstance(key, int) and not isinstance(key, bool):
        return key if 0 <= key <= 6 else None
    if not isinstance(key, str):
        return None
    value = key.strip().lower()
    if value.isdigit():
        return parse_weekday(int(value))
    for index, name in enumerate(WEEKDAY_NAMES):
        if value == name or value == name[:3]:
            return index
    return None


def parse_time(value: Any) -> time:
    """Parse "HH:MM" / "HH:MM:SS" (24h) or "HH:MM AM" (12h) into a ``time``"""
    if isinstance(value, time):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid time value: {value!r}")
    raw = value.strip()
    for fmt in ("%H:%M", "%H:%M:%S", "%I:%M %p"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time format: {value!r}. Expected HH:MM")


@dataclass(frozen=True, order=True)
class TimeWindow:
    start: time
    end: time

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Window start {self.start} must be before end {self.end}")

    def covers(self, start: time, end: time) -> bool:
        return self.start <= start and end <= self.end

    def to_dict(self) -> dict:
        return {"start": self.start.strftime("%H:%M"), "end": self.end.strftime("%H:%M")}


@dataclass
class WeeklyAvailability:
    windows: dict[int, list[TimeWindow]] = field(default_factory=dict)

    @classmethod
    def from_blob(cls, blob: Any) -> "WeeklyAvailability":
        """Tolerant parse used on the read path: bad entries are skipped, never raised"""
        return cls._parse(blob, strict=False)

    @classmethod
    def validate(cls, blob: Any) -> "WeeklyAvailability":
        """Strict parse used at the write boundary: any malformed entry raises ValueError"""
        return cls._parse(blob, strict=True)

    @classmethod
    def _parse(cls, blob: Any, strict: bool) -> "WeeklyAvailability":
        template = cls()
        if not blob:
            return template
        if not isinstance(blob, dict):
            if strict:
                raise ValueError("Availability must be an object keyed by day of week")
            logger.debug(f"Ignoring non-mapping availability blob: {type(blob).__name__}")
            return template

        for key, entries in blob.items():
            weekday = parse_weekday(key)
            if weekday is None:
                if strict:
                    raise ValueError(f"Unknown day of week: {key!r}")
                logger.debug(f"Skipping unknown availability day key: {key!r}")
                continue

            if isinstance(entries, dict):
                enabled = entries.get("enabled", entries.get("available", True))
                entries = [entries] if enabled else []
            elif entries is None:
                entries = []
            elif not isinstance(entries, list):
                if strict:
                    raise ValueError(f"Availability for {WEEKDAY_NAMES[weekday]} must be a list of windows")
                continue

            for entry in entries:
                try:
                    window = cls._window_from_entry(entry)
                except (TypeError, ValueError) as e:
                    if strict:
                        raise ValueError(f"{WEEKDAY_NAMES[weekday]}: {e}") from e
                    logger.debug(f"Skipping malformed availability window for {WEEKDAY_NAMES[weekday]}: {e}")
                    continue
                template.windows.setdefault(weekday, []).append(window)

        for day_windows in template.windows.values():
            day_windows.sort()
        return template

    @staticmethod
    def _window_from_entry(entry: Any) -> TimeWindow:
        if not isinstance(entry, dict):
            raise ValueError("window must be an object with start and end")
        start = entry.get("start", entry.get("startTime", entry.get("start_time")))
        end = entry.get("end", entry.get("endTime", entry.get("end_time")))
        return TimeWindow(parse_time(start), parse_time(end))

    def for_weekday(self, weekday: int) -> list[TimeWindow]:
        return list(self.windows.get(weekday, []))

    def for_date(self, day: date) -> list[TimeWindow]:
        return self.for_weekday(day.weekday())

    def is_empty(self) -> bool:
        return not any(self.windows.values())

    def to_blob(self) -> dict:
        return {
            WEEKDAY_NAMES[weekday]: [w.to_dict() for w in windows]
            for weekday, windows in sorted(self.windows.items())
            if windows
        }


class AvailabilityResolver:
    """Decides whether a staff member is nominally bookable during an interval"""

    def __init__(self, template: WeeklyAvailability, exclusions: Sequence[TimeInterval] = ()):
        self.template = template
        self.exclusions = list(exclusions)

    def unavailability_reason(self, interval: TimeInterval) -> Optional[str]:
        """Return why the interval is not bookable, or None when it is"""
        if interval.spans_midnight():
            raise InvalidInterval(
                f"Interval {interval} crosses a day boundary; availability cannot be resolved",
                reason="spans_midnight",
            )

        start, end = interval.wall_clock()
        windows = self.template.for_date(interval.start.date())
        if not any(window.covers(start, end) for window in windows):
            return OUTSIDE_TEMPLATE

        if any(exclusion.overlaps(interval) for exclusion in self.exclusions):
            return EXCLUDED

        return None

    def is_available(self, interval: TimeInterval) -> bool:
        return self.unavailability_reason(interval) is None
