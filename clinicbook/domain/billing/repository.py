"""Billing repository - Database operations for accounts and billing records"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import BillingRecord, User


class BillingRepository:
    """Repository for billing database operations"""

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def update_subscription(
        db: Session,
        user: User,
        status: str,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        customer_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
    ) -> User:
        """Update user subscription fields; dates and ids are only touched when given"""
        user.subscription_status = status
        if start_date is not None:
            user.subscription_start_date = start_date
        if end_date is not None:
            user.subscription_end_date = end_date
        if customer_id is not None:
            user.billing_customer_id = customer_id
        if subscription_id is not None:
            user.billing_subscription_id = subscription_id

        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def get_revenue(db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> Decimal:
        """Sum of billing record amounts with billing_date in [start, end)"""
        query = db.query(func.coalesce(func.sum(BillingRecord.amount), 0))
        if start is not None:
            query = query.filter(BillingRecord.billing_date >= start)
        if end is not None:
            query = query.filter(BillingRecord.billing_date < end)
        return Decimal(str(query.scalar() or 0))
