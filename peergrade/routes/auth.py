"""
peergrade/routes/auth.py
Registration, login and profile
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from peergrade.config.settings import Settings
from peergrade.database import get_db, atomic
from peergrade.errors import ErrorCode, InvalidInputError, UnauthorizedError
from peergrade.orm.user import User
from peergrade.rbac import (
    create_access_token, get_current_user, get_settings, hash_password, verify_password
)
from peergrade.schemas.auth import Token, UserLogin, UserRegister

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def issue_token(settings: Settings, user: User) -> dict:
    access_token = create_access_token(
        settings,
        {
            "sub": user.email,
            "user_id": user.id,
            "role": user.role.value,
        }
    )
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "role": user.role.value,
        "user_id": user.id,
    }


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserRegister,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Register a new user. The role chosen here never changes."""
    logger.info(f"Registration attempt for email: {user_data.email}, role: {user_data.role.value}")

    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning(f"Email already registered: {user_data.email}")
        raise InvalidInputError(["email is already registered"])

    async with atomic(db, "user registration"):
        user = User(
            email=user_data.email,
            full_name=user_data.full_name.strip(),
            password_hash=hash_password(user_data.password),
            role=user_data.role,
        )
        db.add(user)
        await db.flush()

    logger.info(f"User registered successfully: {user.email} as {user.role.value}")
    return issue_token(settings, user)


@router.post("/login", response_model=Token)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Login with JSON body and return a bearer token with role"""
    result = await db.execute(select(User).where(User.email == credentials.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Invalid credentials for email: {credentials.email}")
        raise UnauthorizedError("Invalid email or password", code=ErrorCode.AUTH_INVALID)

    logger.info(f"User logged in: {user.email} as {user.role.value}")
    return issue_token(settings, user)


@router.get("/profile")
async def profile(current_user: User = Depends(get_current_user)):
    return {"success": True, "user": current_user.to_dict()}
