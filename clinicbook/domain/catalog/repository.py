"""Catalog repository - Database operations for services and categories"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Service, ServiceCategory


class CatalogRepository:
    """Repository for service catalog database operations"""

    @staticmethod
    def get_services(db: Session, category_id: Optional[int] = None, include_inactive: bool = False) -> list[Service]:
        query = db.query(Service)
        if category_id is not None:
            query = query.filter(Service.category_id == category_id)
        if not include_inactive:
            query = query.filter(Service.is_active.is_(True))
        return query.order_by(Service.name.asc()).all()

    @staticmethod
    def get_service_by_id(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def create_service(db: Session, **service_data) -> Service:
        service = Service(**service_data)
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def update_service(db: Session, service: Service, **updates) -> Service:
        for key, value in updates.items():
            if value is not None and hasattr(service, key):
                setattr(service, key, value)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def get_categories(db: Session) -> list[ServiceCategory]:
        return (
            db.query(ServiceCategory)
            .filter(ServiceCategory.is_active.is_(True))
            .order_by(ServiceCategory.name.asc())
            .all()
        )

    @staticmethod
    def get_category_by_id(db: Session, category_id: int) -> Optional[ServiceCategory]:
        return db.query(ServiceCategory).filter(ServiceCategory.id == category_id).first()

    @staticmethod
    def create_category(db: Session, **category_data) -> ServiceCategory:
        category = ServiceCategory(**category_data)
        db.add(category)
        db.commit()
        db.refresh(category)
        return category
