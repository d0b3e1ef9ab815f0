"""Tests for the booking engine against a real (SQLite) session."""

from datetime import datetime, timedelta, timezone

import pytest
from conftest import FIXED_NOW, MONDAY, at, create_exclusion, create_patient, create_service, create_staff
from sqlalchemy.exc import IntegrityError, OperationalError

from clinicbook.domain.scheduling.errors import (
    ConcurrencyConflict,
    EntityNotFound,
    InvalidInterval,
    InvalidTransition,
    SchedulingConflict,
    StaffUnavailable,
)
from clinicbook.domain.scheduling.service import AppointmentChanges, AppointmentScheduler
from clinicbook import models
from clinicbook.models import Appointment, AppointmentStatus

SUNDAY = MONDAY + timedelta(days=6)


@pytest.fixture
def scheduler(db_session):
    return AppointmentScheduler(db_session, clock=lambda: FIXED_NOW)


@pytest.fixture
def staff(db_session):
    return create_staff(db_session)


@pytest.fixture
def patient(db_session):
    return create_patient(db_session)


@pytest.fixture
def service(db_session):
    return create_service(db_session, duration=30)


def scheduled_count(db_session) -> int:
    return db_session.query(Appointment).filter(Appointment.status == "scheduled").count()


class TestBooking:
    def test_book_computes_end_from_duration(self, scheduler, staff, patient, service):
        appointment = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "09:00"), notes="First visit")

        assert appointment.id is not None
        assert appointment.end_time == at(MONDAY, "09:30")
        assert appointment.status == AppointmentStatus.SCHEDULED.value
        assert appointment.notes == "First visit"
        assert appointment.created_at == FIXED_NOW

    def test_no_double_booking_of_staff(self, scheduler, db_session, staff, service):
        """Two patients, one staff member, overlapping times"""
        first, second = create_patient(db_session), create_patient(db_session)
        booked = scheduler.book(first.id, staff.id, service.id, at(MONDAY, "10:00"))

        with pytest.raises(SchedulingConflict) as exc:
            scheduler.book(second.id, staff.id, service.id, at(MONDAY, "10:15"))

        assert exc.value.reason == "staff_double_booked"
        assert exc.value.conflicting_ids == [booked.id]
        assert scheduled_count(db_session) == 1

    def test_patient_exclusive_across_staff(self, scheduler, db_session, patient, service):
        staff_a, staff_b = create_staff(db_session), create_staff(db_session)
        scheduler.book(patient.id, staff_a.id, service.id, at(MONDAY, "10:00"))

        with pytest.raises(SchedulingConflict) as exc:
            scheduler.book(patient.id, staff_b.id, service.id, at(MONDAY, "10:15"))

        assert exc.value.reason == "patient_double_booked"

    def test_back_to_back_allowed(self, scheduler, db_session, staff, service):
        first, second = create_patient(db_session), create_patient(db_session)
        scheduler.book(first.id, staff.id, service.id, at(MONDAY, "10:00"))
        appointment = scheduler.book(second.id, staff.id, service.id, at(MONDAY, "10:30"))

        assert appointment.start_time == at(MONDAY, "10:30")
        assert scheduled_count(db_session) == 2

    def test_no_template_window_on_sunday(self, scheduler, staff, patient, service):
        with pytest.raises(StaffUnavailable) as exc:
            scheduler.book(patient.id, staff.id, service.id, at(SUNDAY, "10:00"))
        assert exc.value.reason == "outside_template"

    def test_booking_must_fit_inside_a_window(self, scheduler, staff, patient, service):
        with pytest.raises(StaffUnavailable):
            scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "16:45"))

    def test_staff_without_template_is_never_available(self, scheduler, db_session, patient, service):
        staff = create_staff(db_session, availability={})
        with pytest.raises(StaffUnavailable):
            scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))

    def test_exclusion_overrides_template(self, scheduler, db_session, staff, service):
        create_exclusion(db_session, staff, at(MONDAY, "13:00"), at(MONDAY, "14:00"))
        blocked, free = create_patient(db_session), create_patient(db_session)

        with pytest.raises(StaffUnavailable) as exc:
            scheduler.book(blocked.id, staff.id, service.id, at(MONDAY, "13:15"))
        assert exc.value.reason == "excluded"

        appointment = scheduler.book(free.id, staff.id, service.id, at(MONDAY, "12:00"))
        assert appointment.end_time == at(MONDAY, "12:30")

    def test_capacity_aware_group_booking(self, scheduler, db_session, staff):
        group = create_service(db_session, duration=60, capacity=3)
        patients = [create_patient(db_session) for _ in range(4)]

        booked = [scheduler.book(p.id, staff.id, group.id, at(MONDAY, "11:00")) for p in patients[:3]]
        assert len(booked) == 3
        assert all(a.group_session for a in booked)

        with pytest.raises(SchedulingConflict) as exc:
            scheduler.book(patients[3].id, staff.id, group.id, at(MONDAY, "11:00"))
        assert exc.value.reason == "capacity_exceeded"
        assert sorted(exc.value.conflicting_ids) == sorted(a.id for a in booked)

    def test_group_slot_must_match_exactly(self, scheduler, db_session, staff):
        group = create_service(db_session, duration=60, capacity=3)
        first, second = create_patient(db_session), create_patient(db_session)
        scheduler.book(first.id, staff.id, group.id, at(MONDAY, "11:00"))

        with pytest.raises(SchedulingConflict) as exc:
            scheduler.book(second.id, staff.id, group.id, at(MONDAY, "11:30"))
        assert exc.value.reason == "staff_double_booked"

    def test_cancelled_appointment_frees_the_slot(self, scheduler, db_session, staff, service):
        first, second = create_patient(db_session), create_patient(db_session)
        booked = scheduler.book(first.id, staff.id, service.id, at(MONDAY, "10:00"))
        scheduler.cancel(booked.id)

        appointment = scheduler.book(second.id, staff.id, service.id, at(MONDAY, "10:00"))
        assert appointment.id != booked.id

    def test_rejects_past_start(self, scheduler, staff, patient, service):
        with pytest.raises(InvalidInterval) as exc:
            scheduler.book(patient.id, staff.id, service.id, FIXED_NOW - timedelta(days=1))
        assert exc.value.reason == "in_past"

    def test_past_bookings_allowed_when_disabled(self, db_session, staff, patient, service):
        scheduler = AppointmentScheduler(db_session, clock=lambda: datetime(2031, 1, 1), reject_past=False)
        appointment = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "09:00"))
        assert appointment.id is not None

    def test_rejects_midnight_spanning_booking(self, scheduler, db_session, patient, service):
        night = create_staff(db_session, availability={"monday": [{"start": "00:00", "end": "23:59"}]})
        with pytest.raises(InvalidInterval) as exc:
            scheduler.book(patient.id, night.id, service.id, at(MONDAY, "23:45"))
        assert exc.value.reason == "spans_midnight"

    def test_aware_start_time_is_normalised(self, scheduler, staff, patient, service):
        start = at(MONDAY, "11:00").replace(tzinfo=timezone(timedelta(hours=2)))
        appointment = scheduler.book(patient.id, staff.id, service.id, start)
        assert appointment.start_time == at(MONDAY, "09:00")

    def test_inactive_or_missing_entities(self, scheduler, db_session, staff, patient, service):
        with pytest.raises(EntityNotFound):
            scheduler.book(999, staff.id, service.id, at(MONDAY, "10:00"))
        with pytest.raises(EntityNotFound):
            scheduler.book(patient.id, 999, service.id, at(MONDAY, "10:00"))

        service.is_active = False
        db_session.commit()
        with pytest.raises(EntityNotFound) as exc:
            scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))
        assert exc.value.reason == "service"

    def test_unknown_recurring_rule(self, scheduler, staff, patient, service):
        with pytest.raises(EntityNotFound):
            scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"), recurring_rule_id=42)


class TestScenario:
    def test_morning_template(self, scheduler, db_session, service):
        """Template Mon 09:00-12:00: book, staff clash, then patient clash with another staff member"""
        morning = create_staff(db_session, availability={"monday": [{"start": "09:00", "end": "12:00"}]})
        other = create_staff(db_session)
        p1, p2 = create_patient(db_session), create_patient(db_session)

        appointment = scheduler.book(p1.id, morning.id, service.id, at(MONDAY, "09:00"))
        assert appointment.end_time == at(MONDAY, "09:30")

        with pytest.raises(SchedulingConflict) as staff_clash:
            scheduler.book(p2.id, morning.id, service.id, at(MONDAY, "09:15"))
        assert staff_clash.value.reason == "staff_double_booked"

        with pytest.raises(SchedulingConflict) as patient_clash:
            scheduler.book(p1.id, other.id, service.id, at(MONDAY, "09:15"))
        assert patient_clash.value.reason == "patient_double_booked"


class TestReschedule:
    def test_overlapping_own_slot_is_allowed(self, scheduler, staff, patient, service):
        appointment = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))
        moved = scheduler.reschedule(appointment.id, AppointmentChanges(start_time=at(MONDAY, "10:15")))

        assert moved.start_time == at(MONDAY, "10:15")
        assert moved.end_time == at(MONDAY, "10:45")

    def test_explicit_end_wins(self, scheduler, staff, patient, service):
        appointment = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))
        moved = scheduler.reschedule(
            appointment.id, AppointmentChanges(start_time=at(MONDAY, "14:00"), end_time=at(MONDAY, "15:00"))
        )
        assert moved.end_time == at(MONDAY, "15:00")

    def test_service_change_recomputes_end(self, scheduler, db_session, staff, patient, service):
        longer = create_service(db_session, duration=90)
        appointment = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))
        moved = scheduler.reschedule(appointment.id, AppointmentChanges(service_id=longer.id))

        assert moved.service_id == longer.id
        assert moved.end_time == at(MONDAY, "11:30")

    def test_service_change_updates_group_flag(self, scheduler, db_session, staff, patient, service):
        group = create_service(db_session, duration=30, capacity=4)
        appointment = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))
        assert appointment.group_session is False

        moved = scheduler.reschedule(appointment.id, AppointmentChanges(service_id=group.id))

        assert moved.group_session is True

    def test_notes_only_change_skips_checks(self, scheduler, staff, patient, service):
        appointment = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))
        updated = scheduler.reschedule(appointment.id, AppointmentChanges(notes="Bring X-rays"))

        assert updated.notes == "Bring X-rays"
        assert updated.start_time == at(MONDAY, "10:00")

    def test_reschedule_into_conflict(self, scheduler, db_session, staff, service):
        first, second = create_patient(db_session), create_patient(db_session)
        scheduler.book(first.id, staff.id, service.id, at(MONDAY, "10:00"))
        other = scheduler.book(second.id, staff.id, service.id, at(MONDAY, "11:00"))

        with pytest.raises(SchedulingConflict):
            scheduler.reschedule(other.id, AppointmentChanges(start_time=at(MONDAY, "10:15")))

        db_session.refresh(other)
        assert other.start_time == at(MONDAY, "11:00")

    def test_reschedule_to_another_staff_checks_availability(self, scheduler, db_session, staff, patient, service):
        weekend_only = create_staff(db_session, availability={"saturday": [{"start": "09:00", "end": "12:00"}]})
        appointment = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))

        with pytest.raises(StaffUnavailable):
            scheduler.reschedule(appointment.id, AppointmentChanges(staff_id=weekend_only.id))

    def test_cancelled_cannot_be_rescheduled(self, scheduler, staff, patient, service):
        appointment = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))
        scheduler.cancel(appointment.id)

        with pytest.raises(InvalidTransition):
            scheduler.reschedule(appointment.id, AppointmentChanges(start_time=at(MONDAY, "11:00")))

    def test_missing_appointment(self, scheduler):
        with pytest.raises(EntityNotFound):
            scheduler.reschedule(999, AppointmentChanges(notes="x"))


class TestStatusTransitions:
    @pytest.fixture
    def appointment(self, scheduler, staff, patient, service):
        return scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))

    @pytest.mark.parametrize(
        "action,expected",
        [("cancel", "cancelled"), ("complete", "completed"), ("mark_no_show", "no_show")],
    )
    def test_terminal_transitions(self, scheduler, appointment, action, expected):
        updated = getattr(scheduler, action)(appointment.id)
        assert updated.status == expected

    def test_cancel_twice_is_rejected(self, scheduler, appointment):
        scheduler.cancel(appointment.id)
        with pytest.raises(InvalidTransition):
            scheduler.cancel(appointment.id)

    def test_terminal_status_is_final(self, scheduler, appointment):
        scheduler.complete(appointment.id)
        with pytest.raises(InvalidTransition):
            scheduler.mark_no_show(appointment.id)

    def test_unknown_status(self, scheduler, appointment):
        with pytest.raises(InvalidTransition) as exc:
            scheduler.set_status(appointment.id, "rescheduled")
        assert exc.value.reason == "unknown_status"

    def test_missing_appointment_reported_before_bad_status(self, scheduler):
        with pytest.raises(EntityNotFound):
            scheduler.set_status(999, "bogus")

    def test_scheduled_to_scheduled_is_rejected(self, scheduler, appointment):
        with pytest.raises(InvalidTransition) as exc:
            scheduler.set_status(appointment.id, "scheduled")
        assert exc.value.reason == "no_op"

    def test_delete_removes_row(self, scheduler, db_session, appointment):
        scheduler.delete(appointment.id)
        assert db_session.query(Appointment).count() == 0
        with pytest.raises(EntityNotFound):
            scheduler.delete(appointment.id)


class TestProbes:
    def test_check_conflict_does_not_write(self, scheduler, db_session, staff, patient, service):
        booked = scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))
        other = create_patient(db_session)
        interval = scheduler.interval_for(service.id, at(MONDAY, "10:15"))

        result = scheduler.check_conflict(staff.id, other.id, interval, service.id)
        assert result.has_conflict
        assert result.conflicting_ids == [booked.id]

        result = scheduler.check_conflict(staff.id, patient.id, interval, service.id, exclude_id=booked.id)
        assert not result.has_conflict
        assert db_session.query(Appointment).count() == 1

    def test_availability_probe(self, scheduler, db_session, staff, service):
        create_exclusion(db_session, staff, at(MONDAY, "13:00"), at(MONDAY, "14:00"))

        assert scheduler.is_available(staff.id, scheduler.interval_for(service.id, at(MONDAY, "09:00")))
        assert scheduler.availability_reason(
            staff.id, scheduler.interval_for(service.id, at(MONDAY, "13:30"))
        ) == "excluded"
        assert scheduler.availability_reason(
            staff.id, scheduler.interval_for(service.id, at(SUNDAY, "09:00"))
        ) == "outside_template"

    def test_interval_for_explicit_end(self, scheduler, service):
        interval = scheduler.interval_for(service.id, at(MONDAY, "09:00"), at(MONDAY, "10:00"))
        assert interval.end == at(MONDAY, "10:00")


class DriverError(Exception):
    """Stand-in for a psycopg2 error carrying a SQLSTATE"""

    def __init__(self, message: str, pgcode: str = None):
        super().__init__(message)
        self.pgcode = pgcode


def integrity_error(message: str, pgcode: str = None) -> IntegrityError:
    return IntegrityError("INSERT INTO appointments ...", {}, DriverError(message, pgcode))


class TestStorageBackstop:
    """Failures raised by PostgreSQL after the application checks passed"""

    def test_exclusion_constraint_names_the_reason(self):
        error = integrity_error(
            'conflicting key value violates exclusion constraint "ex_appointments_patient_overlap"'
        )

        conflict = AppointmentScheduler._race_to_conflict(error)

        assert isinstance(conflict, ConcurrencyConflict)
        assert conflict.reason == "patient_double_booked"
        assert conflict.status_code == 409

    def test_staff_constraint(self):
        error = integrity_error('violates exclusion constraint "ex_appointments_staff_overlap"')
        assert AppointmentScheduler._race_to_conflict(error).reason == "staff_double_booked"

    def test_individual_session_constraint(self):
        error = integrity_error('violates exclusion constraint "ex_appointments_staff_individual_overlap"')
        assert AppointmentScheduler._race_to_conflict(error).reason == "staff_double_booked"

    def test_individual_sessions_excluded_by_postgres_constraint(self):
        statements = [ddl.statement for ddl in models._appointment_overlap_ddl]
        individual = next(s for s in statements if "ex_appointments_staff_individual_overlap" in s)
        assert "service_id" not in individual
        assert "NOT group_session" in individual

    @pytest.mark.parametrize("pgcode", ["40001", "40P01"])
    def test_serialization_failure_and_deadlock(self, pgcode):
        error = OperationalError("UPDATE staff ...", {}, DriverError("could not serialize access", pgcode))

        conflict = AppointmentScheduler._race_to_conflict(error)

        assert isinstance(conflict, ConcurrencyConflict)
        assert conflict.reason is None

    def test_unrelated_errors_pass_through(self):
        error = integrity_error('null value in column "service_id" violates not-null constraint', "23502")
        assert AppointmentScheduler._race_to_conflict(error) is None

    def test_book_rolls_back_on_constraint_violation(
        self, scheduler, monkeypatch, db_session, staff, patient, service
    ):
        def violate(db, **appointment_data):
            db.add(Appointment(**appointment_data))
            db.flush()
            raise integrity_error('violates exclusion constraint "ex_appointments_patient_overlap"')

        monkeypatch.setattr(scheduler.repo, "add_appointment", violate)

        with pytest.raises(ConcurrencyConflict) as exc:
            scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))

        assert exc.value.reason == "patient_double_booked"
        assert db_session.query(Appointment).count() == 0

    def test_unrelated_database_error_is_reraised(
        self, scheduler, monkeypatch, db_session, staff, patient, service
    ):
        def broken(db, **appointment_data):
            raise integrity_error("disk full")

        monkeypatch.setattr(scheduler.repo, "add_appointment", broken)

        with pytest.raises(IntegrityError):
            scheduler.book(patient.id, staff.id, service.id, at(MONDAY, "10:00"))
        assert db_session.query(Appointment).count() == 0
