"""Admin router - doctor accounts, subscriptions and platform statistics"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...schemas import UserCreate, UserResponse
from ..billing.schemas import SubscriptionStatusUpdate
from ..billing.subscription_service import SubscriptionService
from .schemas import AdminStatsResponse
from .service import AdminService

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_role("admin"))])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(db)


@router.get("/doctors", response_model=list[UserResponse])
async def get_doctors(service: AdminService = Depends(get_admin_service)):
    return [UserResponse.from_model(d) for d in service.get_doctors()]


@router.post("/doctors", response_model=UserResponse, status_code=201)
async def create_doctor(data: UserCreate, service: AdminService = Depends(get_admin_service)):
    return UserResponse.from_model(service.create_user(data))


@router.patch("/doctors/{doctor_id}/subscription", response_model=UserResponse)
async def update_doctor_subscription(
    doctor_id: int,
    data: SubscriptionStatusUpdate,
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Set a doctor's subscription status (active and trial start a new period)"""
    return UserResponse.from_model(service.set_status(doctor_id, data.status))


@router.get("/stats", response_model=AdminStatsResponse)
async def get_admin_stats(service: AdminService = Depends(get_admin_service)):
    return service.get_stats()
