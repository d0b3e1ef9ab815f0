"""Catalog schemas - services and service categories"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import clean_text


class ServiceCreate(BaseModel):
    """Schema for creating a bookable service"""

    name: str
    description: Optional[str] = None
    categoryId: Optional[int] = None
    duration: int  # minutes
    capacity: int = 1
    price: Optional[float] = None
    rules: Optional[dict] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Service name cannot be empty")
        return v

    @field_validator("description")
    @classmethod
    def sanitize_description(cls, v):
        return clean_text(v, max_length=1000)

    @field_validator("duration")
    @classmethod
    def check_duration(cls, v):
        if v <= 0:
            raise ValueError("duration must be a positive number of minutes")
        if v >= 24 * 60:
            raise ValueError("duration must be shorter than a day")
        return v

    @field_validator("capacity")
    @classmethod
    def check_capacity(cls, v):
        if v < 1:
            raise ValueError("capacity must be at least 1")
        return v

    @field_validator("price")
    @classmethod
    def check_price(cls, v):
        if v is not None and v < 0:
            raise ValueError("price cannot be negative")
        return v


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    categoryId: Optional[int] = None
    duration: Optional[int] = None
    capacity: Optional[int] = None
    price: Optional[float] = None
    rules: Optional[dict] = None
    isActive: Optional[bool] = None

    @field_validator("description")
    @classmethod
    def sanitize_description(cls, v):
        return clean_text(v, max_length=1000)

    @field_validator("duration")
    @classmethod
    def check_duration(cls, v):
        if v is not None and not 0 < v < 24 * 60:
            raise ValueError("duration must be between 1 minute and one day")
        return v

    @field_validator("capacity")
    @classmethod
    def check_capacity(cls, v):
        if v is not None and v < 1:
            raise ValueError("capacity must be at least 1")
        return v


class ServiceResponse(BaseModel):
    """Schema for service response"""

    id: int
    name: str
    description: Optional[str] = None
    categoryId: Optional[int] = None
    categoryName: Optional[str] = None
    duration: int
    capacity: int
    isGroup: bool
    price: Optional[float] = None
    rules: Optional[dict] = None
    isActive: bool
    createdAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, service) -> "ServiceResponse":
        return cls(
            id=service.id,
            name=service.name,
            description=service.description,
            categoryId=service.category_id,
            categoryName=service.category.name if service.category else None,
            duration=service.duration,
            capacity=service.capacity,
            isGroup=service.is_group,
            price=float(service.price) if service.price is not None else None,
            rules=service.rules,
            isActive=service.is_active,
            createdAt=service.created_at,
        )


class CategoryCreate(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator("description")
    @classmethod
    def sanitize_description(cls, v):
        return clean_text(v, max_length=1000)


class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    isActive: bool

    class Config:
        from_attributes = True
