"""Calendar queries - read-only views over appointments"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment
from ...shared.time_utils import to_naive_utc
from .availability import TimeWindow, WeeklyAvailability
from .errors import EntityNotFound, InvalidInterval
from .intervals import TimeInterval
from .repository import AppointmentRepository, EntityLookup

logger = logging.getLogger(__name__)


@dataclass
class CalendarFilter:
    staff_id: Optional[int] = None
    patient_id: Optional[int] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    status: Optional[str] = None


@dataclass
class StaffDay:
    """One staff member's bookable windows, blocked ranges and bookings for a date"""

    staff_id: int
    day: date
    windows: list[TimeWindow]
    exclusions: list
    appointments: list[Appointment]

    def free_windows(self) -> list[TimeInterval]:
        """Template windows minus exclusions, as dated intervals (appointments not subtracted)"""
        free: list[TimeInterval] = []
        blocked = sorted(
            (TimeInterval(e.start_time, e.end_time) for e in self.exclusions), key=lambda i: i.start
        )
        for window in self.windows:
            cursor = datetime.combine(self.day, window.start)
            window_end = datetime.combine(self.day, window.end)
            for block in blocked:
                if block.end <= cursor or block.start >= window_end:
                    continue
                if block.start > cursor:
                    free.append(TimeInterval(cursor, block.start))
                cursor = max(cursor, block.end)
            if cursor < window_end:
                free.append(TimeInterval(cursor, window_end))
        return free


class CalendarQueryService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def query_range(self, criteria: CalendarFilter) -> list[Appointment]:
        """Appointments of any status intersecting the range, earliest first"""
        start, end = to_naive_utc(criteria.start), to_naive_utc(criteria.end)
        if start and end and start >= end:
            raise InvalidInterval("startDate must be before endDate", reason="range")
        appointments = self.repo.query_range(
            self.db,
            staff_id=criteria.staff_id,
            patient_id=criteria.patient_id,
            start=start,
            end=end,
            status=criteria.status,
        )
        logger.debug(f"📅 Calendar query {criteria} returned {len(appointments)} appointments")
        return appointments

    def staff_day(self, staff_id: int, day: date) -> StaffDay:
        staff = EntityLookup.get_staff(self.db, staff_id)
        if not staff:
            raise EntityNotFound("Staff", staff_id)

        day_start = datetime.combine(day, time.min)
        day_end = day_start + timedelta(days=1)
        template = WeeklyAvailability.from_blob(staff.availability)

        return StaffDay(
            staff_id=staff.id,
            day=day,
            windows=template.for_date(day),
            exclusions=self.repo.get_exclusions(self.db, staff.id, day_start, day_end),
            appointments=self.repo.query_range(self.db, staff_id=staff.id, start=day_start, end=day_end),
        )

