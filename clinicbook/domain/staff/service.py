"""Staff service - Business logic for staff, availability and service assignments"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_admin
from ...models import Appointment, AppointmentStatus, Service, Staff, StaffAvailabilityExclusion, User
from ...shared.time_utils import to_naive_utc
from .repository import StaffRepository
from .schemas import ExclusionCreate, StaffCreate, StaffUpdate

logger = logging.getLogger(__name__)


class StaffService:
    """Service layer for staff business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = StaffRepository()

    def get_staff_list(
        self, user: User, service_id: Optional[int] = None, include_inactive: bool = False
    ) -> list[Staff]:
        """Admins see every staff member, doctors only their own"""
        owner_id = None if is_admin(user) else user.id
        return self.repo.get_staff_list(self.db, owner_id, service_id, include_inactive)

    def get_staff(self, staff_id: int, user: User) -> Staff:
        staff = self.repo.get_staff_by_id(self.db, staff_id)
        if not staff:
            raise HTTPException(status_code=404, detail="Staff member not found")
        if not is_admin(user) and staff.user_id != user.id:
            logger.warning(f"⚠️ User {user.id} tried to access staff {staff_id} owned by {staff.user_id}")
            raise HTTPException(status_code=403, detail="Can only manage your own staff")
        return staff

    def create_staff(self, data: StaffCreate, user: User) -> Staff:
        logger.info(f"📥 Creating staff member for user_id: {user.id}")

        if self.repo.get_staff_by_email(self.db, data.email):
            raise HTTPException(status_code=409, detail="A staff member with this email already exists")

        owner_id = data.userId if is_admin(user) else user.id
        staff = self.repo.create_staff(
            self.db,
            user_id=owner_id,
            first_name=data.firstName.strip(),
            last_name=data.lastName.strip(),
            email=data.email,
            phone=data.phone,
            role=data.role.strip(),
            availability=data.availability,
        )
        logger.info(f"✅ Staff member {staff.id} created ({staff.full_name})")
        return staff

    def update_staff(self, staff_id: int, data: StaffUpdate, user: User) -> Staff:
        staff = self.get_staff(staff_id, user)

        if data.email and data.email != staff.email:
            existing = self.repo.get_staff_by_email(self.db, data.email)
            if existing and existing.id != staff.id:
                raise HTTPException(status_code=409, detail="A staff member with this email already exists")

        updates = {
            "first_name": data.firstName,
            "last_name": data.lastName,
            "email": data.email,
            "phone": data.phone,
            "role": data.role,
            "is_active": data.isActive,
            "availability": data.availability,
        }
        return self.repo.update_staff(self.db, staff, **updates)

    def deactivate_staff(self, staff_id: int, user: User) -> None:
        """Soft delete: existing appointments stay, new bookings are refused"""
        staff = self.get_staff(staff_id, user)
        self.repo.update_staff(self.db, staff, is_active=False)
        logger.info(f"🗑️ Staff member {staff_id} deactivated")

    def set_availability(self, staff_id: int, availability: dict, user: User) -> Staff:
        staff = self.get_staff(staff_id, user)
        staff = self.repo.update_staff(self.db, staff, availability=availability)
        logger.info(f"🗓️ Availability template updated for staff {staff_id}: {sorted(availability)}")
        return staff

    # ------------------------------------------------------------------
    # Exclusions
    # ------------------------------------------------------------------

    def get_exclusions(self, staff_id: int, user: User) -> list[StaffAvailabilityExclusion]:
        return list(self.get_staff(staff_id, user).exclusions)

    def create_exclusion(self, staff_id: int, data: ExclusionCreate, user: User) -> StaffAvailabilityExclusion:
        staff = self.get_staff(staff_id, user)
        start, end = to_naive_utc(data.startTime), to_naive_utc(data.endTime)
        exclusion = self.repo.create_exclusion(self.db, staff.id, start_time=start, end_time=end, reason=data.reason)

        # Exclusions only block new bookings; flag what already sits inside the range
        affected = (
            self.db.query(Appointment)
            .filter(
                Appointment.staff_id == staff.id,
                Appointment.status == AppointmentStatus.SCHEDULED.value,
                Appointment.start_time < end,
                Appointment.end_time > start,
            )
            .count()
        )
        if affected:
            logger.warning(f"⚠️ Exclusion {exclusion.id} for staff {staff.id} overlaps {affected} scheduled appointment(s)")
        logger.info(f"⛔ Exclusion {exclusion.id} added for staff {staff.id}: {start} - {end}")
        return exclusion

    def delete_exclusion(self, staff_id: int, exclusion_id: int, user: User) -> None:
        staff = self.get_staff(staff_id, user)
        exclusion = self.repo.get_exclusion(self.db, staff.id, exclusion_id)
        if not exclusion:
            raise HTTPException(status_code=404, detail="Exclusion not found")
        self.repo.delete_exclusion(self.db, exclusion)

    # ------------------------------------------------------------------
    # Service assignments
    # ------------------------------------------------------------------

    def get_services(self, staff_id: int, user: User) -> list[Service]:
        staff = self.get_staff(staff_id, user)
        return self.repo.get_services_for_staff(self.db, staff.id)

    def assign_service(self, staff_id: int, service_id: int, user: User) -> list[Service]:
        staff = self.get_staff(staff_id, user)
        service = self.db.query(Service).filter(Service.id == service_id, Service.is_active.is_(True)).first()
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        if not self.repo.get_assignment(self.db, staff.id, service.id):
            self.repo.create_assignment(self.db, staff.id, service.id)
            logger.info(f"🔗 Service {service.id} assigned to staff {staff.id}")
        return self.repo.get_services_for_staff(self.db, staff.id)

    def unassign_service(self, staff_id: int, service_id: int, user: User) -> None:
        staff = self.get_staff(staff_id, user)
        assignment = self.repo.get_assignment(self.db, staff.id, service_id)
        if not assignment:
            raise HTTPException(status_code=404, detail="Service is not assigned to this staff member")
        self.repo.delete_assignment(self.db, assignment)
