"""Patient router - FastAPI endpoints for patient operations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import PatientCreate, PatientResponse, PatientUpdate
from .service import PatientService

router = APIRouter(prefix="/patients", tags=["Patients"])


def get_patient_service(db: Session = Depends(get_db)) -> PatientService:
    """Dependency injection for PatientService"""
    return PatientService(db)


@router.get("", response_model=list[PatientResponse])
async def get_patients(
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    """Get all active patients"""
    return [PatientResponse.from_model(p) for p in service.get_patients(search)]


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: int,
    current_user: User = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    return PatientResponse.from_model(service.get_patient(patient_id))


@router.post("", response_model=PatientResponse, status_code=201)
async def create_patient(
    data: PatientCreate,
    current_user: User = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    return PatientResponse.from_model(service.create_patient(data))


@router.patch("/{patient_id}", response_model=PatientResponse)
async def update_patient(
    patient_id: int,
    data: PatientUpdate,
    current_user: User = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    return PatientResponse.from_model(service.update_patient(patient_id, data))


@router.delete("/{patient_id}", status_code=204)
async def delete_patient(
    patient_id: int,
    current_user: User = Depends(get_current_user),
    service: PatientService = Depends(get_patient_service),
):
    service.deactivate_patient(patient_id)
    return Response(status_code=204)
