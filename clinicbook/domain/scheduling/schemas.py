"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import clean_text


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment; the end time comes from the service duration"""

    patientId: int
    staffId: int
    serviceId: int
    startTime: datetime
    notes: Optional[str] = None
    recurringRuleId: Optional[int] = None

    @field_validator("notes")
    @classmethod
    def sanitize_notes(cls, v):
        return clean_text(v)


class AppointmentUpdate(BaseModel):
    """Schema for rescheduling; omitted fields keep their current value"""

    patientId: Optional[int] = None
    staffId: Optional[int] = None
    serviceId: Optional[int] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def sanitize_notes(cls, v):
        return clean_text(v)


class AppointmentStatusUpdate(BaseModel):
    status: str


class ConflictCheckRequest(BaseModel):
    staffId: int
    patientId: int
    serviceId: int
    startTime: datetime
    endTime: Optional[datetime] = None
    excludeAppointmentId: Optional[int] = None


class ConflictCheckResponse(BaseModel):
    hasConflict: bool
    reason: Optional[str] = None
    message: str
    conflictingIds: list[int] = []


class AvailabilityCheckRequest(BaseModel):
    startTime: datetime
    endTime: datetime


class AvailabilityCheckResponse(BaseModel):
    available: bool
    reason: Optional[str] = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    patientId: int
    staffId: int
    serviceId: int
    startTime: datetime
    endTime: datetime
    status: str
    notes: Optional[str] = None
    recurringRuleId: Optional[int] = None
    patientName: Optional[str] = None
    staffName: Optional[str] = None
    serviceName: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, appt) -> "AppointmentResponse":
        return cls(
            id=appt.id,
            patientId=appt.patient_id,
            staffId=appt.staff_id,
            serviceId=appt.service_id,
            startTime=appt.start_time,
            endTime=appt.end_time,
            status=appt.status,
            notes=appt.notes,
            recurringRuleId=appt.recurring_rule_id,
            patientName=f"{appt.patient.first_name} {appt.patient.last_name}" if appt.patient else None,
            staffName=appt.staff.full_name if appt.staff else None,
            serviceName=appt.service.name if appt.service else None,
            createdAt=appt.created_at,
            updatedAt=appt.updated_at,
        )


class TimeWindowResponse(BaseModel):
    start: str
    end: str


class ExclusionResponse(BaseModel):
    id: int
    startTime: datetime
    endTime: datetime
    reason: Optional[str] = None


class StaffDayResponse(BaseModel):
    staffId: int
    date: date
    windows: list[TimeWindowResponse]
    freeWindows: list[TimeWindowResponse]
    exclusions: list[ExclusionResponse]
    appointments: list[AppointmentResponse]


class RecurringRuleCreate(BaseModel):
    """Recurrence metadata; appointments are never generated from it automatically"""

    frequency: str
    interval: int = 1
    startDate: datetime
    endDate: Optional[datetime] = None
    daysOfWeek: Optional[list[int]] = None
    dayOfMonth: Optional[int] = None

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v):
        if v not in ("weekly", "monthly"):
            raise ValueError("frequency must be 'weekly' or 'monthly'")
        return v

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v):
        if v < 1:
            raise ValueError("interval must be at least 1")
        return v

    @field_validator("daysOfWeek")
    @classmethod
    def validate_days(cls, v):
        if v is not None and any(day < 0 or day > 6 for day in v):
            raise ValueError("daysOfWeek entries must be between 0 (Monday) and 6 (Sunday)")
        return sorted(set(v)) if v else v

    @field_validator("dayOfMonth")
    @classmethod
    def validate_day_of_month(cls, v):
        if v is not None and not 1 <= v <= 31:
            raise ValueError("dayOfMonth must be between 1 and 31")
        return v


class RecurringRuleResponse(BaseModel):
    id: int
    frequency: str
    interval: int
    startDate: datetime
    endDate: Optional[datetime] = None
    daysOfWeek: Optional[list[int]] = None
    dayOfMonth: Optional[int] = None
    isActive: bool

    class Config:
        from_attributes = True
