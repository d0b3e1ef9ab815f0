"""Catalog router - services and service categories"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_role
from ...database import get_db
from ...models import User
from .schemas import CategoryCreate, CategoryResponse, ServiceCreate, ServiceResponse, ServiceUpdate
from .service import CatalogService

router = APIRouter(prefix="/services", tags=["Services"])
category_router = APIRouter(prefix="/service-categories", tags=["Services"])


def get_catalog_service(db: Session = Depends(get_db)) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db)


def _category_out(category) -> CategoryResponse:
    return CategoryResponse(
        id=category.id, name=category.name, description=category.description, isActive=category.is_active
    )


@router.get("", response_model=list[ServiceResponse])
async def get_services(
    categoryId: Optional[int] = Query(None),
    includeInactive: bool = Query(False),
    current_user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return [ServiceResponse.from_model(s) for s in catalog.get_services(categoryId, includeInactive)]


@router.get("/{service_id}", response_model=ServiceResponse)
async def get_service(
    service_id: int,
    current_user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return ServiceResponse.from_model(catalog.get_service(service_id))


@router.post("", response_model=ServiceResponse, status_code=201)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(require_role("admin")),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return ServiceResponse.from_model(catalog.create_service(data))


@router.patch("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: User = Depends(require_role("admin")),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return ServiceResponse.from_model(catalog.update_service(service_id, data))


@router.delete("/{service_id}", status_code=204)
async def delete_service(
    service_id: int,
    current_user: User = Depends(require_role("admin")),
    catalog: CatalogService = Depends(get_catalog_service),
):
    catalog.deactivate_service(service_id)
    return Response(status_code=204)


@category_router.get("", response_model=list[CategoryResponse])
async def get_categories(
    current_user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return [_category_out(c) for c in catalog.get_categories()]


@category_router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    data: CategoryCreate,
    current_user: User = Depends(require_role("admin")),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return _category_out(catalog.create_category(data))
