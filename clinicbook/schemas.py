from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from .shared.validators import validate_email


class UserCreate(BaseModel):
    username: str
    email: str
    password: str
    firstName: str
    lastName: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("username")
    @classmethod
    def check_username(cls, v):
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    firstName: str
    lastName: str
    role: str
    isActive: bool
    subscriptionStatus: Optional[str] = None
    subscriptionStartDate: Optional[datetime] = None
    subscriptionEndDate: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            firstName=user.first_name,
            lastName=user.last_name,
            role=user.role,
            isActive=user.is_active,
            subscriptionStatus=user.subscription_status,
            subscriptionStartDate=user.subscription_start_date,
            subscriptionEndDate=user.subscription_end_date,
            createdAt=user.created_at,
        )


class TokenResponse(BaseModel):
    token: str
    user: UserResponse
