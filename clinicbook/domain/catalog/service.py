"""Catalog service - Business logic for services and categories"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Service, ServiceCategory
from .repository import CatalogRepository
from .schemas import CategoryCreate, ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    """Service layer for the service catalog"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CatalogRepository()

    def get_services(self, category_id: Optional[int] = None, include_inactive: bool = False) -> list[Service]:
        return self.repo.get_services(self.db, category_id, include_inactive)

    def get_service(self, service_id: int) -> Service:
        service = self.repo.get_service_by_id(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        return service

    def _check_category(self, category_id: Optional[int]) -> None:
        if category_id is not None and not self.repo.get_category_by_id(self.db, category_id):
            raise HTTPException(status_code=404, detail="Service category not found")

    def create_service(self, data: ServiceCreate) -> Service:
        self._check_category(data.categoryId)
        service = self.repo.create_service(
            self.db,
            name=data.name,
            description=data.description,
            category_id=data.categoryId,
            duration=data.duration,
            capacity=data.capacity,
            price=data.price,
            rules=data.rules,
        )
        kind = f"group (capacity {service.capacity})" if service.is_group else "individual"
        logger.info(f"✅ Service {service.id} '{service.name}' created: {service.duration} min, {kind}")
        return service

    def update_service(self, service_id: int, data: ServiceUpdate) -> Service:
        """Duration changes apply to new bookings; existing appointments keep their end time"""
        service = self.get_service(service_id)
        self._check_category(data.categoryId)
        updates = {
            "name": data.name.strip() if data.name else None,
            "description": data.description,
            "category_id": data.categoryId,
            "duration": data.duration,
            "capacity": data.capacity,
            "price": data.price,
            "rules": data.rules,
            "is_active": data.isActive,
        }
        return self.repo.update_service(self.db, service, **updates)

    def deactivate_service(self, service_id: int) -> None:
        service = self.get_service(service_id)
        self.repo.update_service(self.db, service, is_active=False)
        logger.info(f"🗑️ Service {service_id} deactivated")

    def get_categories(self) -> list[ServiceCategory]:
        return self.repo.get_categories(self.db)

    def create_category(self, data: CategoryCreate) -> ServiceCategory:
        return self.repo.create_category(self.db, name=data.name.strip(), description=data.description)
