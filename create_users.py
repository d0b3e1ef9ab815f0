"""
Seed an account (admins cannot be created through the API)
Usage: python create_users.py <admin|doctor> <username> <email> <first_name> <last_name>
The password is read from the CLINICBOOK_SEED_PASSWORD environment variable or prompted for.
"""
import getpass
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from fastapi import HTTPException

from clinicbook.database import Base, SessionLocal, engine
from clinicbook.domain.admin.service import AdminService
from clinicbook.models import UserRole
from clinicbook.schemas import UserCreate

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)

ROLES = {r.value for r in UserRole}


def create_user(role: str, username: str, email: str, first_name: str, last_name: str, password: str):
    """Create tables if needed, then the account"""
    Base.metadata.create_all(bind=engine, checkfirst=True)

    db = SessionLocal()
    try:
        data = UserCreate(
            username=username, email=email, password=password, firstName=first_name, lastName=last_name
        )
        user = AdminService(db).create_user(data, role=role)
        logger.info(f"✅ {role} account {user.email} created with id {user.id}")
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) != 6 or sys.argv[1] not in ROLES:
        logger.error("Usage: python create_users.py <admin|doctor> <username> <email> <first_name> <last_name>")
        sys.exit(1)

    password = os.getenv("CLINICBOOK_SEED_PASSWORD") or getpass.getpass("Password: ")

    try:
        create_user(*sys.argv[1:], password=password)
    except HTTPException as e:
        logger.error(f"❌ Could not create account: {e.detail}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"❌ Invalid account data: {e}")
        sys.exit(1)
