"""Scheduling router - FastAPI endpoints for appointments and staff calendars"""

import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_role
from ...database import get_db
from ...models import RecurringAppointmentRule, User
from ...rate_limiter import create_rate_limiter
from ...shared.time_utils import to_naive_utc
from .calendar import CalendarFilter, CalendarQueryService
from .errors import EntityNotFound
from .intervals import TimeInterval
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    ConflictCheckRequest,
    ConflictCheckResponse,
    ExclusionResponse,
    RecurringRuleCreate,
    RecurringRuleResponse,
    StaffDayResponse,
    TimeWindowResponse,
)
from .service import AppointmentChanges, AppointmentScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])
availability_router = APIRouter(prefix="/staff", tags=["Staff Availability"])
recurring_router = APIRouter(prefix="/recurring-rules", tags=["Recurring Rules"])

booking_rate_limit = create_rate_limiter(limit=60, window_seconds=60, key_prefix="booking")


def get_scheduler(db: Session = Depends(get_db)) -> AppointmentScheduler:
    """Dependency injection for AppointmentScheduler"""
    return AppointmentScheduler(db)


def get_calendar(db: Session = Depends(get_db)) -> CalendarQueryService:
    return CalendarQueryService(db)


# ============================================================================
# CALENDAR QUERIES
# ============================================================================


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    staffId: Optional[int] = Query(None),
    patientId: Optional[int] = Query(None),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    calendar: CalendarQueryService = Depends(get_calendar),
):
    """Appointments intersecting the optional date range, earliest first"""
    appointments = calendar.query_range(
        CalendarFilter(staff_id=staffId, patient_id=patientId, start=startDate, end=endDate, status=status)
    )
    return [AppointmentResponse.from_model(a) for a in appointments]


@router.post("/check-conflict", response_model=ConflictCheckResponse)
async def check_conflict(
    data: ConflictCheckRequest,
    current_user: User = Depends(get_current_user),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    """Dry-run conflict probe; nothing is written"""
    interval = scheduler.interval_for(data.serviceId, data.startTime, data.endTime)
    result = scheduler.check_conflict(
        data.staffId, data.patientId, interval, data.serviceId, exclude_id=data.excludeAppointmentId
    )
    return ConflictCheckResponse(**result.to_dict())


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    appointment = scheduler.get_appointment(appointment_id)
    return AppointmentResponse.from_model(appointment)


# ============================================================================
# BOOKING LIFECYCLE
# ============================================================================


@router.post("", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    _: None = Depends(booking_rate_limit),
):
    """Book an appointment; the end time is derived from the service duration"""
    appointment = scheduler.book(
        patient_id=data.patientId,
        staff_id=data.staffId,
        service_id=data.serviceId,
        start_time=data.startTime,
        notes=data.notes,
        recurring_rule_id=data.recurringRuleId,
    )
    return AppointmentResponse.from_model(appointment)


@router.patch("/{appointment_id}", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: int,
    data: AppointmentUpdate,
    current_user: User = Depends(get_current_user),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
    _: None = Depends(booking_rate_limit),
):
    """Move or reassign an appointment; omitted fields keep their value"""
    changes = AppointmentChanges(
        staff_id=data.staffId,
        patient_id=data.patientId,
        service_id=data.serviceId,
        start_time=data.startTime,
        end_time=data.endTime,
        notes=data.notes,
    )
    appointment = scheduler.reschedule(appointment_id, changes)
    return AppointmentResponse.from_model(appointment)


@router.post("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_status(
    appointment_id: int,
    data: AppointmentStatusUpdate,
    current_user: User = Depends(get_current_user),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    appointment = scheduler.set_status(appointment_id, data.status)
    return AppointmentResponse.from_model(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return AppointmentResponse.from_model(scheduler.cancel(appointment_id))


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return AppointmentResponse.from_model(scheduler.complete(appointment_id))


@router.post("/{appointment_id}/no-show", response_model=AppointmentResponse)
async def mark_no_show(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    return AppointmentResponse.from_model(scheduler.mark_no_show(appointment_id))


@router.delete("/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: int,
    current_user: User = Depends(require_role("admin", "doctor")),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    """Permanently remove an appointment (administrative; prefer cancel)"""
    scheduler.delete(appointment_id)
    return Response(status_code=204)


# ============================================================================
# STAFF AVAILABILITY
# ============================================================================


@availability_router.get("/{staff_id}/availability", response_model=StaffDayResponse)
async def get_staff_day(
    staff_id: int,
    day: date = Query(..., alias="date", description="Day to inspect (YYYY-MM-DD)"),
    current_user: User = Depends(get_current_user),
    calendar: CalendarQueryService = Depends(get_calendar),
):
    """Working windows, exclusions and appointments of a staff member for one day"""
    staff_day = calendar.staff_day(staff_id, day)
    return StaffDayResponse(
        staffId=staff_day.staff_id,
        date=staff_day.day,
        windows=[TimeWindowResponse(**w.to_dict()) for w in staff_day.windows],
        freeWindows=[
            TimeWindowResponse(start=i.start.strftime("%H:%M"), end=i.end.strftime("%H:%M"))
            for i in staff_day.free_windows()
        ],
        exclusions=[
            ExclusionResponse(id=e.id, startTime=e.start_time, endTime=e.end_time, reason=e.reason)
            for e in staff_day.exclusions
        ],
        appointments=[AppointmentResponse.from_model(a) for a in staff_day.appointments],
    )


@availability_router.post("/{staff_id}/availability/check", response_model=AvailabilityCheckResponse)
async def check_staff_availability(
    staff_id: int,
    data: AvailabilityCheckRequest,
    current_user: User = Depends(get_current_user),
    scheduler: AppointmentScheduler = Depends(get_scheduler),
):
    """Whether the staff member's template and exclusions allow the interval (bookings ignored)"""
    interval = TimeInterval(to_naive_utc(data.startTime), to_naive_utc(data.endTime))
    reason = scheduler.availability_reason(staff_id, interval)
    return AvailabilityCheckResponse(available=reason is None, reason=reason)


# ============================================================================
# RECURRING RULES
# ============================================================================


def _rule_response(rule: RecurringAppointmentRule) -> RecurringRuleResponse:
    return RecurringRuleResponse(
        id=rule.id,
        frequency=rule.frequency,
        interval=rule.interval,
        startDate=rule.start_date,
        endDate=rule.end_date,
        daysOfWeek=rule.days_of_week,
        dayOfMonth=rule.day_of_month,
        isActive=rule.is_active,
    )


@recurring_router.post("", response_model=RecurringRuleResponse, status_code=201)
async def create_recurring_rule(
    data: RecurringRuleCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Store a recurrence rule to attach to bookings via recurringRuleId"""
    rule = RecurringAppointmentRule(
        frequency=data.frequency,
        interval=data.interval,
        start_date=data.startDate,
        end_date=data.endDate,
        days_of_week=data.daysOfWeek,
        day_of_month=data.dayOfMonth,
    )
    db.add(rule)
    db.commit()
    db.refresh(rule)
    logger.info(f"🔁 Recurring rule {rule.id} created ({rule.frequency} every {rule.interval})")
    return _rule_response(rule)


@recurring_router.get("/{rule_id}", response_model=RecurringRuleResponse)
async def get_recurring_rule(
    rule_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    rule = db.query(RecurringAppointmentRule).filter(RecurringAppointmentRule.id == rule_id).first()
    if not rule:
        raise EntityNotFound("RecurringRule", rule_id)
    return _rule_response(rule)
