import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain.admin.repository import UserRepository
from ..domain.admin.service import AdminService
from ..models import User, UserRole
from ..rate_limiter import create_rate_limiter
from ..schemas import LoginRequest, TokenResponse, UserCreate, UserResponse
from ..security_utils import create_access_token, verify_password_bcrypt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

# 10 attempts per 5 minutes per IP
rate_limit_login = create_rate_limiter(limit=10, window_seconds=300, key_prefix="login")
rate_limit_register = create_rate_limiter(limit=5, window_seconds=3600, key_prefix="register")


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_login),
):
    """Exchange email + password for a 24h access token"""
    email = data.email.strip().lower()
    if not email or not data.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    user = UserRepository.get_user_by_email(db, email)
    if not user or not verify_password_bcrypt(data.password, user.password):
        logger.warning(f"⚠️ Failed login attempt for {email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is disabled")

    logger.info(f"🔐 User {user.id} logged in ({user.role})")
    return TokenResponse(token=create_access_token(user), user=UserResponse.from_model(user))


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    data: UserCreate,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_register),
):
    """Self-service sign-up; always creates a doctor account"""
    user = AdminService(db).create_user(data, role=UserRole.DOCTOR.value)
    return TokenResponse(token=create_access_token(user), user=UserResponse.from_model(user))


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse.from_model(current_user)
