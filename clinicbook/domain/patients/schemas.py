"""Patient domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import clean_text, validate_email, validate_phone


class PatientBase(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None
    dateOfBirth: Optional[datetime] = None
    address: Optional[str] = None
    insuranceInfo: Optional[dict] = None
    medicalHistory: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("address")
    @classmethod
    def sanitize_address(cls, v):
        return clean_text(v, max_length=500)

    @field_validator("medicalHistory")
    @classmethod
    def sanitize_history(cls, v):
        return clean_text(v)


class PatientCreate(PatientBase):
    """Schema for registering a patient"""

    firstName: str
    lastName: str

    @field_validator("firstName", "lastName")
    @classmethod
    def check_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be empty")
        return v


class PatientUpdate(PatientBase):
    firstName: Optional[str] = None
    lastName: Optional[str] = None


class PatientResponse(BaseModel):
    """Schema for patient response"""

    id: int
    firstName: str
    lastName: str
    email: Optional[str] = None
    phone: Optional[str] = None
    dateOfBirth: Optional[datetime] = None
    address: Optional[str] = None
    insuranceInfo: Optional[dict] = None
    medicalHistory: Optional[str] = None
    isActive: bool
    createdAt: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, patient) -> "PatientResponse":
        return cls(
            id=patient.id,
            firstName=patient.first_name,
            lastName=patient.last_name,
            email=patient.email,
            phone=patient.phone,
            dateOfBirth=patient.date_of_birth,
            address=patient.address,
            insuranceInfo=patient.insurance_info,
            medicalHistory=patient.medical_history,
            isActive=patient.is_active,
            createdAt=patient.created_at,
        )
