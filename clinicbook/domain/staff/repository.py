"""Staff repository - Database operations for staff, exclusions and service assignments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service, Staff, StaffAvailabilityExclusion, StaffService


class StaffRepository:
    """Repository for staff database operations"""

    @staticmethod
    def get_staff_list(
        db: Session,
        owner_id: Optional[int] = None,
        service_id: Optional[int] = None,
        include_inactive: bool = False,
    ) -> list[Staff]:
        query = db.query(Staff)
        if owner_id is not None:
            query = query.filter(Staff.user_id == owner_id)
        if service_id is not None:
            query = query.join(StaffService, StaffService.staff_id == Staff.id).filter(
                StaffService.service_id == service_id
            )
        if not include_inactive:
            query = query.filter(Staff.is_active.is_(True))
        return query.order_by(Staff.last_name.asc(), Staff.first_name.asc()).all()

    @staticmethod
    def get_staff_by_id(db: Session, staff_id: int) -> Optional[Staff]:
        return db.query(Staff).filter(Staff.id == staff_id).first()

    @staticmethod
    def get_staff_by_email(db: Session, email: str) -> Optional[Staff]:
        return db.query(Staff).filter(Staff.email == email).first()

    @staticmethod
    def create_staff(db: Session, **staff_data) -> Staff:
        staff = Staff(**staff_data)
        db.add(staff)
        db.commit()
        db.refresh(staff)
        return staff

    @staticmethod
    def update_staff(db: Session, staff: Staff, **updates) -> Staff:
        """Update a staff member with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(staff, key):
                setattr(staff, key, value)
        db.commit()
        db.refresh(staff)
        return staff

    # Exclusions

    @staticmethod
    def get_exclusion(db: Session, staff_id: int, exclusion_id: int) -> Optional[StaffAvailabilityExclusion]:
        return (
            db.query(StaffAvailabilityExclusion)
            .filter(StaffAvailabilityExclusion.id == exclusion_id, StaffAvailabilityExclusion.staff_id == staff_id)
            .first()
        )

    @staticmethod
    def create_exclusion(db: Session, staff_id: int, **exclusion_data) -> StaffAvailabilityExclusion:
        exclusion = StaffAvailabilityExclusion(staff_id=staff_id, **exclusion_data)
        db.add(exclusion)
        db.commit()
        db.refresh(exclusion)
        return exclusion

    @staticmethod
    def delete_exclusion(db: Session, exclusion: StaffAvailabilityExclusion) -> None:
        db.delete(exclusion)
        db.commit()

    # Service assignments

    @staticmethod
    def get_services_for_staff(db: Session, staff_id: int) -> list[Service]:
        return (
            db.query(Service)
            .join(StaffService, StaffService.service_id == Service.id)
            .filter(StaffService.staff_id == staff_id)
            .order_by(Service.name.asc())
            .all()
        )

    @staticmethod
    def get_assignment(db: Session, staff_id: int, service_id: int) -> Optional[StaffService]:
        return (
            db.query(StaffService)
            .filter(StaffService.staff_id == staff_id, StaffService.service_id == service_id)
            .first()
        )

    @staticmethod
    def create_assignment(db: Session, staff_id: int, service_id: int) -> StaffService:
        assignment = StaffService(staff_id=staff_id, service_id=service_id)
        db.add(assignment)
        db.commit()
        db.refresh(assignment)
        return assignment

    @staticmethod
    def delete_assignment(db: Session, assignment: StaffService) -> None:
        db.delete(assignment)
        db.commit()
