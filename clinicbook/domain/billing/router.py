"""Billing router - simulated doctor subscriptions"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import User
from .schemas import SubscriptionCreateRequest, SubscriptionCreateResponse, SubscriptionStatusResponse
from .subscription_service import SubscriptionService

router = APIRouter(prefix="/subscription", tags=["Subscription"])


def get_subscription_service(db: Session = Depends(get_db)) -> SubscriptionService:
    """Dependency injection for SubscriptionService"""
    return SubscriptionService(db)


@router.post("/create", response_model=SubscriptionCreateResponse)
async def create_subscription(
    data: SubscriptionCreateRequest,
    user: User = Depends(require_role("doctor")),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Start a subscription (demo mode, no payment is taken)"""
    return service.create_subscription(user, data.planId)


@router.get("/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    user: User = Depends(require_role("doctor")),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return service.get_status(user)
