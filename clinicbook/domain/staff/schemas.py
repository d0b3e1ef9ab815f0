"""Staff domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import clean_text, validate_email, validate_phone
from ..scheduling.availability import WeeklyAvailability


def _normalize_availability(v: Any) -> Optional[dict]:
    if v is None:
        return None
    # Strict parse, stored back in the canonical {"monday": [{"start", "end"}]} shape
    return WeeklyAvailability.validate(v).to_blob()


class StaffCreate(BaseModel):
    """Schema for creating a new staff member"""

    firstName: str
    lastName: str
    email: str
    phone: Optional[str] = None
    role: str
    availability: Optional[dict] = None
    userId: Optional[int] = None  # owning doctor, honoured for admins only

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("availability", mode="before")
    @classmethod
    def check_availability(cls, v):
        return _normalize_availability(v)


class StaffUpdate(BaseModel):
    """Schema for updating a staff member"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    isActive: Optional[bool] = None
    availability: Optional[dict] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("availability", mode="before")
    @classmethod
    def check_availability(cls, v):
        return _normalize_availability(v)


class AvailabilityTemplateIn(BaseModel):
    """Weekly template, e.g. {"monday": [{"start": "09:00", "end": "17:00"}]}"""

    availability: dict

    @field_validator("availability", mode="before")
    @classmethod
    def check_availability(cls, v):
        if v is None:
            raise ValueError("availability is required")
        return _normalize_availability(v)


class StaffResponse(BaseModel):
    """Schema for staff response"""

    id: int
    userId: Optional[int] = None
    firstName: str
    lastName: str
    email: str
    phone: Optional[str] = None
    role: str
    isActive: bool
    availability: Optional[dict] = None
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, staff) -> "StaffResponse":
        return cls(
            id=staff.id,
            userId=staff.user_id,
            firstName=staff.first_name,
            lastName=staff.last_name,
            email=staff.email,
            phone=staff.phone,
            role=staff.role,
            isActive=staff.is_active,
            availability=staff.availability,
            createdAt=staff.created_at,
        )


class ExclusionCreate(BaseModel):
    startTime: datetime
    endTime: datetime
    reason: Optional[str] = None

    @field_validator("reason")
    @classmethod
    def sanitize_reason(cls, v):
        return clean_text(v, max_length=500)

    @model_validator(mode="after")
    def check_range(self):
        if self.startTime >= self.endTime:
            raise ValueError("startTime must be before endTime")
        return self


class ExclusionOut(BaseModel):
    id: int
    staffId: int
    startTime: datetime
    endTime: datetime
    reason: Optional[str] = None


class ServiceAssignment(BaseModel):
    serviceId: int


class AssignedServiceResponse(BaseModel):
    id: int
    name: str
    duration: int
    capacity: int
