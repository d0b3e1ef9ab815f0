"""Conflict detection against the existing set of scheduled appointments"""

import enum
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ...models import Appointment, AppointmentStatus, Service
from .intervals import TimeInterval


class ConflictReason(str, enum.Enum):
    STAFF_DOUBLE_BOOKED = "staff_double_booked"
    PATIENT_DOUBLE_BOOKED = "patient_double_booked"
    CAPACITY_EXCEEDED = "capacity_exceeded"


REASON_MESSAGES = {
    ConflictReason.STAFF_DOUBLE_BOOKED: "Staff member already has an appointment during this time",
    ConflictReason.PATIENT_DOUBLE_BOOKED: "Patient already has an appointment during this time",
    ConflictReason.CAPACITY_EXCEEDED: "Group session is already at full capacity",
}


@dataclass
class ConflictResult:
    has_conflict: bool
    reason: Optional[ConflictReason] = None
    conflicting_ids: list[int] = field(default_factory=list)
    occupants: int = 0

    @property
    def message(self) -> str:
        if not self.reason:
            return "No conflict"
        return REASON_MESSAGES[self.reason]

    def to_dict(self) -> dict:
        return {
            "hasConflict": self.has_conflict,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "conflictingIds": self.conflicting_ids,
        }


class ConflictDetector:
    """
    Checks a candidate booking against existing appointments.

    ``existing`` should hold the scheduled appointments of the candidate's staff member
    and patient (the repository query); anything else passed in is ignored.
    """

    def __init__(self, existing: Iterable[Appointment]):
        self.existing = list(existing)

    def check(
        self,
        staff_id: int,
        patient_id: int,
        interval: TimeInterval,
        service: Service,
        exclude_id: Optional[int] = None,
    ) -> ConflictResult:
        staff_clashes: list[int] = []
        patient_clashes: list[int] = []
        co_occupants: list[int] = []

        for appt in self.existing:
            if exclude_id is not None and appt.id == exclude_id:
                continue
            if appt.status != AppointmentStatus.SCHEDULED.value:
                continue
            if appt.staff_id != staff_id and appt.patient_id != patient_id:
                continue

            existing_interval = TimeInterval(appt.start_time, appt.end_time)
            if not existing_interval.overlaps(interval):
                continue

            # A patient can never be in two places at once, whatever the service
            if appt.patient_id == patient_id:
                patient_clashes.append(appt.id)
                continue

            if self._is_co_occupant(appt, existing_interval, interval, service):
                co_occupants.append(appt.id)
            else:
                staff_clashes.append(appt.id)

        if staff_clashes:
            return ConflictResult(True, ConflictReason.STAFF_DOUBLE_BOOKED, staff_clashes)
        if patient_clashes:
            return ConflictResult(True, ConflictReason.PATIENT_DOUBLE_BOOKED, patient_clashes)
        if co_occupants and len(co_occupants) >= (service.capacity or 1):
            return ConflictResult(True, ConflictReason.CAPACITY_EXCEEDED, co_occupants, occupants=len(co_occupants))
        return ConflictResult(False, occupants=len(co_occupants))

    @staticmethod
    def _is_co_occupant(
        appt: Appointment, existing_interval: TimeInterval, interval: TimeInterval, service: Service
    ) -> bool:
        """Same group session: group service, same service, identical slot (patient already known to differ)"""
        return service.is_group and appt.service_id == service.id and existing_interval.same_as(interval)
