"""Admin service - account creation, doctor management and platform statistics"""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import SubscriptionStatus, User, UserRole
from ...schemas import UserCreate
from ...security_utils import hash_password_bcrypt
from ...shared.time_utils import Clock, utcnow
from ..billing.repository import BillingRepository
from .repository import UserRepository

logger = logging.getLogger(__name__)


class AdminService:
    """Service layer for accounts and the admin dashboard"""

    def __init__(self, db: Session, clock: Clock = utcnow):
        self.db = db
        self.clock = clock
        self.repo = UserRepository()

    def create_user(self, data: UserCreate, role: str = UserRole.DOCTOR.value) -> User:
        """Create an account with a bcrypt-hashed password"""
        if self.repo.get_user_by_email_or_username(self.db, data.email, data.username):
            raise HTTPException(status_code=409, detail="An account with this email or username already exists")

        try:
            user = self.repo.create_user(
                self.db,
                username=data.username,
                email=data.email,
                password=hash_password_bcrypt(data.password),
                role=role,
                first_name=data.firstName.strip(),
                last_name=data.lastName.strip(),
                subscription_status=SubscriptionStatus.INACTIVE.value,
            )
        except IntegrityError as e:
            self.db.rollback()
            # Email/username taken between the check and the insert
            raise HTTPException(status_code=409, detail="An account with this email or username already exists") from e

        logger.info(f"🆕 {role.capitalize()} account created: {user.email}")
        return user

    def get_doctors(self) -> list[User]:
        return self.repo.get_doctors(self.db)

    def get_stats(self) -> dict:
        now = self.clock()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        doctors = self.repo.get_doctors(self.db)
        active = sum(1 for d in doctors if d.subscription_status == SubscriptionStatus.ACTIVE.value)
        new_this_month = sum(1 for d in doctors if d.created_at and d.created_at >= month_start)
        revenue = BillingRepository.get_revenue(self.db, start=month_start)

        return {
            "totalDoctors": len(doctors),
            "newDoctorsThisMonth": new_this_month,
            "activeSubscriptions": active,
            "subscriptionRate": round(active * 100 / len(doctors)) if doctors else 0,
            "totalAppointments": self.repo.count_appointments(self.db),
            "appointmentsThisMonth": self.repo.count_appointments(self.db, created_since=month_start),
            "monthlyRevenue": f"{revenue:.2f}",
        }
