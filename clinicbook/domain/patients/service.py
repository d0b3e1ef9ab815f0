"""Patient service - Business logic for patient operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Patient
from .repository import PatientRepository
from .schemas import PatientCreate, PatientUpdate

logger = logging.getLogger(__name__)


class PatientService:
    """Service layer for patient business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatientRepository()

    def get_patients(self, search: Optional[str] = None) -> list[Patient]:
        return self.repo.get_patients(self.db, search)

    def get_patient(self, patient_id: int) -> Patient:
        patient = self.repo.get_patient_by_id(self.db, patient_id)
        if not patient or not patient.is_active:
            raise HTTPException(status_code=404, detail="Patient not found")
        return patient

    def create_patient(self, data: PatientCreate) -> Patient:
        patient = self.repo.create_patient(
            self.db,
            first_name=data.firstName,
            last_name=data.lastName,
            email=data.email,
            phone=data.phone,
            date_of_birth=data.dateOfBirth,
            address=data.address,
            insurance_info=data.insuranceInfo,
            medical_history=data.medicalHistory,
        )
        logger.info(f"✅ Patient {patient.id} registered")
        return patient

    def update_patient(self, patient_id: int, data: PatientUpdate) -> Patient:
        patient = self.get_patient(patient_id)
        updates = {
            "first_name": data.firstName.strip() if data.firstName else None,
            "last_name": data.lastName.strip() if data.lastName else None,
            "email": data.email,
            "phone": data.phone,
            "date_of_birth": data.dateOfBirth,
            "address": data.address,
            "insurance_info": data.insuranceInfo,
            "medical_history": data.medicalHistory,
        }
        return self.repo.update_patient(self.db, patient, **updates)

    def deactivate_patient(self, patient_id: int) -> None:
        """Soft delete; the patient can no longer be booked"""
        patient = self.get_patient(patient_id)
        self.repo.update_patient(self.db, patient, is_active=False)
        logger.info(f"🗑️ Patient {patient_id} deactivated")
