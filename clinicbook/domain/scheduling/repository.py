"""Appointment repository - Database operations for the booking engine

Methods here never commit; the scheduler owns the transaction so that the
lock, the conflict query and the write land in one unit.
"""

from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import (
    Appointment,
    AppointmentStatus,
    Patient,
    RecurringAppointmentRule,
    Service,
    Staff,
    StaffAvailabilityExclusion,
)
from .intervals import TimeInterval


class EntityLookup:
    """Resolves the entities a booking references"""

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == patient_id).first()

    @staticmethod
    def get_staff(db: Session, staff_id: int) -> Optional[Staff]:
        return db.query(Staff).filter(Staff.id == staff_id).first()

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_recurring_rule(db: Session, rule_id: int) -> Optional[RecurringAppointmentRule]:
        return db.query(RecurringAppointmentRule).filter(RecurringAppointmentRule.id == rule_id).first()


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointment(db: Session, appointment_id: int, for_update: bool = False) -> Optional[Appointment]:
        """Get an appointment by ID, optionally row-locked until the transaction ends"""
        query = db.query(Appointment).filter(Appointment.id == appointment_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @staticmethod
    def lock_participants(db: Session, staff_ids: Iterable[int], patient_ids: Iterable[int]) -> None:
        """
        Serialize bookings touching the same staff member or patient.

        Rows are locked staff first, then patients, each in ascending id order, so two
        transactions locking overlapping sets cannot deadlock. Bookings for disjoint
        staff/patient pairs lock disjoint rows and proceed in parallel.
        """
        staff_ids = sorted(set(staff_ids))
        patient_ids = sorted(set(patient_ids))
        if staff_ids:
            db.query(Staff.id).filter(Staff.id.in_(staff_ids)).order_by(Staff.id).with_for_update().all()
        if patient_ids:
            db.query(Patient.id).filter(Patient.id.in_(patient_ids)).order_by(Patient.id).with_for_update().all()

    @staticmethod
    def get_scheduled_for_participants(
        db: Session,
        staff_id: int,
        patient_id: int,
        interval: Optional[TimeInterval] = None,
        exclude_id: Optional[int] = None,
    ) -> list[Appointment]:
        """Scheduled appointments held by the staff member OR the patient, optionally overlapping ``interval``"""
        query = db.query(Appointment).filter(
            Appointment.status == AppointmentStatus.SCHEDULED.value,
            or_(Appointment.staff_id == staff_id, Appointment.patient_id == patient_id),
        )
        if interval is not None:
            query = query.filter(Appointment.start_time < interval.end, Appointment.end_time > interval.start)
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.order_by(Appointment.start_time.asc(), Appointment.id.asc()).all()

    @staticmethod
    def get_exclusions(
        db: Session,
        staff_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[StaffAvailabilityExclusion]:
        """Exclusions for a staff member, optionally only those intersecting [start, end)"""
        query = db.query(StaffAvailabilityExclusion).filter(StaffAvailabilityExclusion.staff_id == staff_id)
        if start is not None:
            query = query.filter(StaffAvailabilityExclusion.end_time > start)
        if end is not None:
            query = query.filter(StaffAvailabilityExclusion.start_time < end)
        return query.order_by(StaffAvailabilityExclusion.start_time.asc()).all()

    @staticmethod
    def query_range(
        db: Session,
        staff_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> list[Appointment]:
        """Appointments of any status intersecting the (possibly open-ended) range, earliest first"""
        query = db.query(Appointment)
        if staff_id is not None:
            query = query.filter(Appointment.staff_id == staff_id)
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if start is not None:
            query = query.filter(Appointment.end_time > start)
        if end is not None:
            query = query.filter(Appointment.start_time < end)
        if status:
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.start_time.asc(), Appointment.id.asc()).all()

    @staticmethod
    def add_appointment(db: Session, **appointment_data) -> Appointment:
        """Stage a new appointment; flushed so the id is available before commit"""
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.flush()
