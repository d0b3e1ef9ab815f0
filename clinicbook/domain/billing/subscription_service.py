"""Subscription service - simulated subscription management (no payment processor)"""

import logging
import secrets
from datetime import timedelta

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import SUBSCRIPTION_PERIOD_DAYS, TRIAL_PERIOD_DAYS
from ...models import SubscriptionStatus, User
from ...shared.time_utils import Clock, utcnow
from .repository import BillingRepository

logger = logging.getLogger(__name__)

PLAN_NAME = "Professional Plan"

# Statuses that start a new period; the others keep the current dates
PERIOD_DAYS = {
    SubscriptionStatus.ACTIVE.value: SUBSCRIPTION_PERIOD_DAYS,
    SubscriptionStatus.TRIAL.value: TRIAL_PERIOD_DAYS,
}


def _fake_id(prefix: str) -> str:
    return f"{prefix}_demo_{secrets.token_hex(6)}"


class SubscriptionService:
    """Service for subscription management"""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.repo = BillingRepository()

    def create_subscription(self, user: User, plan_id: str) -> dict:
        """Activate a doctor's subscription for one period (demo mode)"""
        now = self.clock()
        self.repo.update_subscription(
            self.db,
            user,
            status=SubscriptionStatus.ACTIVE.value,
            start_date=now,
            end_date=now + timedelta(days=SUBSCRIPTION_PERIOD_DAYS),
            customer_id=_fake_id("cus"),
            subscription_id=_fake_id("sub"),
        )
        logger.info(f"💳 Simulated subscription '{plan_id}' activated for user {user.id}")
        return {
            "clientSecret": _fake_id("pi"),
            "planId": plan_id,
            "message": "Subscription created successfully (demo mode)",
        }

    def get_status(self, user: User) -> dict:
        active = user.subscription_status == SubscriptionStatus.ACTIVE.value
        return {
            "status": user.subscription_status,
            "startDate": user.subscription_start_date,
            "endDate": user.subscription_end_date,
            "planName": PLAN_NAME if active else "No Plan",
            "nextBilling": user.subscription_end_date,
        }

    def set_status(self, user_id: int, status: str) -> User:
        """Admin override: active/trial restart the period, other statuses keep dates"""
        user = self.repo.get_user_by_id(self.db, user_id)
        if not user or user.role != "doctor":
            raise HTTPException(status_code=404, detail="Doctor not found")

        start = end = None
        if status in PERIOD_DAYS:
            start = self.clock()
            end = start + timedelta(days=PERIOD_DAYS[status])

        user = self.repo.update_subscription(self.db, user, status=status, start_date=start, end_date=end)
        logger.info(f"🔄 Subscription of doctor {user_id} set to {status}")
        return user
