"""Account repository - Database operations for users"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Appointment, User, UserRole


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_user_by_email_or_username(db: Session, email: str, username: str) -> Optional[User]:
        return db.query(User).filter(or_(User.email == email, User.username == username)).first()

    @staticmethod
    def create_user(db: Session, **user_data) -> User:
        user = User(**user_data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def get_doctors(db: Session) -> list[User]:
        return db.query(User).filter(User.role == UserRole.DOCTOR.value).order_by(User.created_at.desc(), User.id.desc()).all()

    @staticmethod
    def count_appointments(db: Session, created_since: Optional[datetime] = None) -> int:
        query = db.query(Appointment)
        if created_since is not None:
            query = query.filter(Appointment.created_at >= created_since)
        return query.count()
