"""Billing domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import SubscriptionStatus


class SubscriptionCreateRequest(BaseModel):
    planId: Optional[str] = "professional"


class SubscriptionCreateResponse(BaseModel):
    clientSecret: str
    planId: Optional[str] = None
    message: str


class SubscriptionStatusResponse(BaseModel):
    status: Optional[str] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    planName: str
    nextBilling: Optional[datetime] = None


class SubscriptionStatusUpdate(BaseModel):
    """Admin override of a doctor's subscription"""

    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        allowed = {s.value for s in SubscriptionStatus}
        if v not in allowed:
            raise ValueError(f"status must be one of: {', '.join(sorted(allowed))}")
        return v
