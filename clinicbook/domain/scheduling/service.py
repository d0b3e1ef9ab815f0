"""Appointment scheduler - booking, rescheduling and status transitions

Every mutation runs as one transaction: lock the staff/patient rows involved,
resolve availability, detect conflicts, write, commit. Failures surface as
``SchedulingError`` subclasses and are never retried here.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from ...config import REJECT_PAST_BOOKINGS
from ...models import Appointment, AppointmentStatus, Patient, Service, Staff
from ...shared.time_utils import Clock, to_naive_utc, utcnow
from .availability import EXCLUDED, AvailabilityResolver, WeeklyAvailability
from .conflicts import ConflictDetector, ConflictReason, ConflictResult
from .errors import (
    ConcurrencyConflict,
    EntityNotFound,
    InvalidInterval,
    InvalidTransition,
    SchedulingConflict,
    SchedulingError,
    StaffUnavailable,
)
from .intervals import TimeInterval
from .repository import AppointmentRepository, EntityLookup

logger = logging.getLogger(__name__)

# Constraint names of the PostgreSQL exclusion backstop (see models.py)
_BACKSTOP_REASONS = {
    "ex_appointments_patient_overlap": ConflictReason.PATIENT_DOUBLE_BOOKED,
    "ex_appointments_staff_overlap": ConflictReason.STAFF_DOUBLE_BOOKED,
    "ex_appointments_staff_individual_overlap": ConflictReason.STAFF_DOUBLE_BOOKED,
}
# serialization_failure, deadlock_detected
_RACE_PGCODES = {"40001", "40P01"}


@dataclass
class AppointmentChanges:
    """Overrides applied by ``reschedule``; None means keep the current value"""

    staff_id: Optional[int] = None
    patient_id: Optional[int] = None
    service_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None

    def touches_slot(self) -> bool:
        return any(
            value is not None
            for value in (self.staff_id, self.patient_id, self.service_id, self.start_time, self.end_time)
        )


class AppointmentScheduler:
    """Service layer for the booking engine"""

    def __init__(self, db: Session, clock: Clock = utcnow, reject_past: bool = REJECT_PAST_BOOKINGS):
        self.db = db
        self.clock = clock
        self.reject_past = reject_past
        self.repo = AppointmentRepository()
        self.lookup = EntityLookup()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def book(
        self,
        patient_id: int,
        staff_id: int,
        service_id: int,
        start_time: datetime,
        notes: Optional[str] = None,
        recurring_rule_id: Optional[int] = None,
    ) -> Appointment:
        """Create a scheduled appointment after availability and conflict checks"""
        start_time = to_naive_utc(start_time)
        logger.info(
            f"📥 Booking request: patient={patient_id} staff={staff_id} service={service_id} "
            f"start={start_time.isoformat()}"
        )

        with self._transaction():
            patient = self._require_patient(patient_id)
            staff = self._require_staff(staff_id)
            service = self._require_service(service_id)
            if recurring_rule_id is not None and not self.lookup.get_recurring_rule(self.db, recurring_rule_id):
                raise EntityNotFound("RecurringRule", recurring_rule_id)

            interval = TimeInterval.from_duration(start_time, service.duration)
            self._ensure_single_day(interval)
            self._ensure_future(interval)

            self.repo.lock_participants(self.db, [staff.id], [patient.id])
            self._ensure_available(staff, interval)
            self._ensure_no_conflict(staff, patient, interval, service)

            now = self.clock()
            appointment = self.repo.add_appointment(
                self.db,
                patient_id=patient.id,
                staff_id=staff.id,
                service_id=service.id,
                start_time=interval.start,
                end_time=interval.end,
                status=AppointmentStatus.SCHEDULED.value,
                notes=notes,
                recurring_rule_id=recurring_rule_id,
                group_session=service.is_group,
                created_at=now,
                updated_at=now,
            )

        self.db.refresh(appointment)
        logger.info(f"✅ Appointment {appointment.id} booked for staff {staff_id} at {interval}")
        return appointment

    def reschedule(self, appointment_id: int, changes: AppointmentChanges) -> Appointment:
        """Move an appointment (time, staff, patient or service) re-running every check"""
        with self._transaction():
            appointment = self._require_appointment(appointment_id, for_update=True)
            self._ensure_scheduled(appointment, "rescheduled")

            staff = self._require_staff(self._pick(changes.staff_id, appointment.staff_id))
            patient = self._require_patient(self._pick(changes.patient_id, appointment.patient_id))
            service = self._require_service(self._pick(changes.service_id, appointment.service_id))

            start = to_naive_utc(changes.start_time) or appointment.start_time
            if changes.end_time is not None:
                end = to_naive_utc(changes.end_time)
            elif changes.start_time is not None or changes.service_id is not None:
                end = TimeInterval.from_duration(start, service.duration).end
            else:
                end = appointment.end_time
            interval = TimeInterval(start, end)

            if changes.touches_slot():
                self._ensure_single_day(interval)
                if changes.start_time is not None:
                    self._ensure_future(interval)
                self.repo.lock_participants(self.db, [staff.id], [patient.id])
                self._ensure_available(staff, interval)
                self._ensure_no_conflict(staff, patient, interval, service, exclude_id=appointment.id)

            appointment.staff_id = staff.id
            appointment.patient_id = patient.id
            appointment.service_id = service.id
            appointment.group_session = service.is_group
            appointment.start_time = interval.start
            appointment.end_time = interval.end
            if changes.notes is not None:
                appointment.notes = changes.notes
            appointment.updated_at = self.clock()

        self.db.refresh(appointment)
        logger.info(f"🔄 Appointment {appointment_id} rescheduled to {interval} with staff {staff.id}")
        return appointment

    def set_status(self, appointment_id: int, new_status) -> Appointment:
        """Move a scheduled appointment to a terminal status"""
        with self._transaction():
            appointment = self._require_appointment(appointment_id, for_update=True)
            try:
                target = AppointmentStatus(new_status)
            except ValueError:
                raise InvalidTransition(
                    f"Unknown appointment status: {new_status}", reason="unknown_status"
                ) from None
            self._ensure_scheduled(appointment, f"marked {target.value}")
            if target is AppointmentStatus.SCHEDULED:
                raise InvalidTransition(f"Appointment {appointment_id} is already scheduled", reason="no_op")

            appointment.status = target.value
            appointment.updated_at = self.clock()

        self.db.refresh(appointment)
        logger.info(f"📌 Appointment {appointment_id} status -> {target.value}")
        return appointment

    def cancel(self, appointment_id: int) -> Appointment:
        return self.set_status(appointment_id, AppointmentStatus.CANCELLED)

    def complete(self, appointment_id: int) -> Appointment:
        return self.set_status(appointment_id, AppointmentStatus.COMPLETED)

    def mark_no_show(self, appointment_id: int) -> Appointment:
        return self.set_status(appointment_id, AppointmentStatus.NO_SHOW)

    def delete(self, appointment_id: int) -> None:
        """Administrative hard delete - bypasses the state machine and cannot be undone"""
        with self._transaction():
            appointment = self._require_appointment(appointment_id, for_update=True)
            self.repo.delete_appointment(self.db, appointment)
        logger.warning(f"🗑️ Appointment {appointment_id} permanently deleted")

    # ------------------------------------------------------------------
    # Probes
    # ------------------------------------------------------------------

    def check_conflict(
        self,
        staff_id: int,
        patient_id: int,
        interval: TimeInterval,
        service_id: int,
        exclude_id: Optional[int] = None,
    ) -> ConflictResult:
        service = self._require_service(service_id)
        existing = self.repo.get_scheduled_for_participants(self.db, staff_id, patient_id, interval, exclude_id)
        return ConflictDetector(existing).check(staff_id, patient_id, interval, service, exclude_id)

    def is_available(self, staff_id: int, interval: TimeInterval) -> bool:
        return self.availability_reason(staff_id, interval) is None

    def availability_reason(self, staff_id: int, interval: TimeInterval) -> Optional[str]:
        staff = self._require_staff(staff_id)
        return self._resolver_for(staff, interval).unavailability_reason(interval)

    def get_appointment(self, appointment_id: int) -> Appointment:
        return self._require_appointment(appointment_id)

    def interval_for(
        self, service_id: int, start_time: datetime, end_time: Optional[datetime] = None
    ) -> TimeInterval:
        """Explicit [start, end) when end is given, otherwise start plus the service duration"""
        start_time = to_naive_utc(start_time)
        if end_time is not None:
            return TimeInterval(start_time, to_naive_utc(end_time))
        return TimeInterval.from_duration(start_time, self._require_service(service_id).duration)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def _ensure_single_day(self, interval: TimeInterval) -> None:
        if interval.spans_midnight():
            raise InvalidInterval(
                f"Appointment {interval} crosses midnight; split it or pick another slot",
                reason="spans_midnight",
            )

    def _ensure_future(self, interval: TimeInterval) -> None:
        if self.reject_past and interval.start <= self.clock():
            raise InvalidInterval(
                f"Cannot book an appointment in the past ({interval.start.isoformat()})",
                reason="in_past",
            )

    def _ensure_available(self, staff: Staff, interval: TimeInterval) -> None:
        reason = self._resolver_for(staff, interval).unavailability_reason(interval)
        if reason:
            logger.warning(f"⚠️ Staff {staff.id} unavailable for {interval}: {reason}")
            detail = "on leave or blocked" if reason == EXCLUDED else "outside working hours"
            raise StaffUnavailable(f"{staff.full_name} is not available at this time ({detail})", reason=reason)

    def _ensure_no_conflict(
        self,
        staff: Staff,
        patient: Patient,
        interval: TimeInterval,
        service: Service,
        exclude_id: Optional[int] = None,
    ) -> None:
        existing = self.repo.get_scheduled_for_participants(self.db, staff.id, patient.id, interval, exclude_id)
        result = ConflictDetector(existing).check(staff.id, patient.id, interval, service, exclude_id)
        if result.has_conflict:
            logger.warning(
                f"⚠️ Booking conflict for staff {staff.id} / patient {patient.id} at {interval}: "
                f"{result.reason.value} (ids {result.conflicting_ids})"
            )
            raise SchedulingConflict(result.message, reason=result.reason.value, conflicting_ids=result.conflicting_ids)

    def _ensure_scheduled(self, appointment: Appointment, action: str) -> None:
        if appointment.status != AppointmentStatus.SCHEDULED.value:
            raise InvalidTransition(
                f"Appointment {appointment.id} is {appointment.status} and cannot be {action}",
                reason=appointment.status,
            )

    def _resolver_for(self, staff: Staff, interval: TimeInterval) -> AvailabilityResolver:
        exclusions = [
            TimeInterval(e.start_time, e.end_time)
            for e in self.repo.get_exclusions(self.db, staff.id, interval.start, interval.end)
        ]
        return AvailabilityResolver(WeeklyAvailability.from_blob(staff.availability), exclusions)

    # ------------------------------------------------------------------
    # Lookups & transaction handling
    # ------------------------------------------------------------------

    @staticmethod
    def _pick(override, current):
        return current if override is None else override

    def _require_appointment(self, appointment_id: int, for_update: bool = False) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id, for_update=for_update)
        if not appointment:
            raise EntityNotFound("Appointment", appointment_id)
        return appointment

    def _require_patient(self, patient_id: int) -> Patient:
        patient = self.lookup.get_patient(self.db, patient_id)
        if not patient or not patient.is_active:
            raise EntityNotFound("Patient", patient_id)
        return patient

    def _require_staff(self, staff_id: int) -> Staff:
        staff = self.lookup.get_staff(self.db, staff_id)
        if not staff or not staff.is_active:
            raise EntityNotFound("Staff", staff_id)
        return staff

    def _require_service(self, service_id: int) -> Service:
        service = self.lookup.get_service(self.db, service_id)
        if not service or not service.is_active:
            raise EntityNotFound("Service", service_id)
        return service

    @contextmanager
    def _transaction(self):
        """Commit on success; roll back (releasing row locks) on any failure"""
        try:
            yield
            self.db.commit()
        except SchedulingError:
            self.db.rollback()
            raise
        except DBAPIError as e:
            self.db.rollback()
            conflict = self._race_to_conflict(e)
            if conflict is None:
                raise
            logger.warning(f"🔒 Storage backstop caught a concurrent booking: {conflict.reason}")
            raise conflict from e
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def _race_to_conflict(error: DBAPIError) -> Optional[ConcurrencyConflict]:
        message = str(error.orig)
        for constraint, reason in _BACKSTOP_REASONS.items():
            if constraint in message:
                return ConcurrencyConflict(
                    "Appointment conflicts with a booking made at the same time", reason=reason.value
                )
        if getattr(error.orig, "pgcode", None) in _RACE_PGCODES:
            return ConcurrencyConflict("Appointment conflicts with a booking made at the same time")
        return None
