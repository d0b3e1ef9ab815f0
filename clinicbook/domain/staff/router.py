"""Staff router - FastAPI endpoints for staff management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_role
from ...database import get_db
from ...models import User
from .schemas import (
    AssignedServiceResponse,
    AvailabilityTemplateIn,
    ExclusionCreate,
    ExclusionOut,
    ServiceAssignment,
    StaffCreate,
    StaffResponse,
    StaffUpdate,
)
from .service import StaffService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/staff", tags=["Staff"])

staff_manager = require_role("admin", "doctor")


def get_staff_service(db: Session = Depends(get_db)) -> StaffService:
    """Dependency injection for StaffService"""
    return StaffService(db)


def _exclusion_out(exclusion) -> ExclusionOut:
    return ExclusionOut(
        id=exclusion.id,
        staffId=exclusion.staff_id,
        startTime=exclusion.start_time,
        endTime=exclusion.end_time,
        reason=exclusion.reason,
    )


def _services_out(services) -> list[AssignedServiceResponse]:
    return [AssignedServiceResponse(id=s.id, name=s.name, duration=s.duration, capacity=s.capacity) for s in services]


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[StaffResponse])
async def get_staff_list(
    serviceId: Optional[int] = Query(None, description="Only staff offering this service"),
    includeInactive: bool = Query(False),
    current_user: User = Depends(get_current_user),
    service: StaffService = Depends(get_staff_service),
):
    """Active staff visible to the current user"""
    staff = service.get_staff_list(current_user, service_id=serviceId, include_inactive=includeInactive)
    return [StaffResponse.from_model(s) for s in staff]


@router.get("/{staff_id}", response_model=StaffResponse)
async def get_staff(
    staff_id: int,
    current_user: User = Depends(get_current_user),
    service: StaffService = Depends(get_staff_service),
):
    return StaffResponse.from_model(service.get_staff(staff_id, current_user))


@router.post("", response_model=StaffResponse, status_code=201)
async def create_staff(
    data: StaffCreate,
    current_user: User = Depends(staff_manager),
    service: StaffService = Depends(get_staff_service),
):
    """Create a staff member (doctors always own the staff they create)"""
    return StaffResponse.from_model(service.create_staff(data, current_user))


@router.patch("/{staff_id}", response_model=StaffResponse)
async def update_staff(
    staff_id: int,
    data: StaffUpdate,
    current_user: User = Depends(staff_manager),
    service: StaffService = Depends(get_staff_service),
):
    return StaffResponse.from_model(service.update_staff(staff_id, data, current_user))


@router.delete("/{staff_id}", status_code=204)
async def delete_staff(
    staff_id: int,
    current_user: User = Depends(staff_manager),
    service: StaffService = Depends(get_staff_service),
):
    """Deactivate a staff member; their appointment history is kept"""
    service.deactivate_staff(staff_id, current_user)
    return Response(status_code=204)


# ============================================================================
# AVAILABILITY TEMPLATE & EXCLUSIONS
# ============================================================================


@router.put("/{staff_id}/availability", response_model=StaffResponse)
async def set_availability(
    staff_id: int,
    data: AvailabilityTemplateIn,
    current_user: User = Depends(staff_manager),
    service: StaffService = Depends(get_staff_service),
):
    """Replace the weekly availability template"""
    return StaffResponse.from_model(service.set_availability(staff_id, data.availability, current_user))


@router.get("/{staff_id}/exclusions", response_model=list[ExclusionOut])
async def get_exclusions(
    staff_id: int,
    current_user: User = Depends(get_current_user),
    service: StaffService = Depends(get_staff_service),
):
    return [_exclusion_out(e) for e in service.get_exclusions(staff_id, current_user)]


@router.post("/{staff_id}/exclusions", response_model=ExclusionOut, status_code=201)
async def create_exclusion(
    staff_id: int,
    data: ExclusionCreate,
    current_user: User = Depends(staff_manager),
    service: StaffService = Depends(get_staff_service),
):
    """Block a dated range (leave, training...) for new bookings"""
    return _exclusion_out(service.create_exclusion(staff_id, data, current_user))


@router.delete("/{staff_id}/exclusions/{exclusion_id}", status_code=204)
async def delete_exclusion(
    staff_id: int,
    exclusion_id: int,
    current_user: User = Depends(staff_manager),
    service: StaffService = Depends(get_staff_service),
):
    service.delete_exclusion(staff_id, exclusion_id, current_user)
    return Response(status_code=204)


# ============================================================================
# SERVICE ASSIGNMENTS
# ============================================================================


@router.get("/{staff_id}/services", response_model=list[AssignedServiceResponse])
async def get_staff_services(
    staff_id: int,
    current_user: User = Depends(get_current_user),
    service: StaffService = Depends(get_staff_service),
):
    return _services_out(service.get_services(staff_id, current_user))


@router.post("/{staff_id}/services", response_model=list[AssignedServiceResponse])
async def assign_service(
    staff_id: int,
    data: ServiceAssignment,
    current_user: User = Depends(staff_manager),
    service: StaffService = Depends(get_staff_service),
):
    return _services_out(service.assign_service(staff_id, data.serviceId, current_user))


@router.delete("/{staff_id}/services/{service_id}", status_code=204)
async def unassign_service(
    staff_id: int,
    service_id: int,
    current_user: User = Depends(staff_manager),
    service: StaffService = Depends(get_staff_service),
):
    service.unassign_service(staff_id, service_id, current_user)
    return Response(status_code=204)
