"""
peergrade/rbac.py
Authentication and role guards

Students own projects and sit on juries; professors oversee. Roles are fixed
at registration. Fine-grained ownership checks live in the access policy;
this module only answers "who is calling" and "may this role use the router".
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from peergrade.config.settings import Settings
from peergrade.database import get_db
from peergrade.errors import ErrorCode, NotAuthorizedError, UnauthorizedError
from peergrade.orm.user import User, UserRole

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


# ================= PASSWORDS =================

def normalize_password(password: str) -> str:
    """
    bcrypt only supports 72 bytes.
    Truncate AFTER UTF-8 encoding to preserve compatibility.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > 72:
        encoded = encoded[:72]
    return encoded.decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    return pwd_context.hash(normalize_password(password))


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(normalize_password(plain), hashed)


# ================= TOKEN UTILS =================

def create_access_token(settings: Settings, data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token with email, user_id and role"""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({
        "exp": expire,
        "type": "access"
    })
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(settings: Settings, token: str) -> Optional[dict]:
    """Decode and validate JWT token; None when invalid or expired"""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


# ================= AUTH DEPENDENCIES =================

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Get current authenticated user from JWT access token.
    Returns 401 if the token is missing, invalid or expired.
    """
    if not token:
        raise UnauthorizedError()

    payload = decode_token(settings, token)
    if not payload or payload.get("type") != "access":
        raise UnauthorizedError("Invalid or expired token", code=ErrorCode.AUTH_INVALID)

    email = payload.get("sub")
    if not email:
        raise UnauthorizedError("Invalid token payload", code=ErrorCode.AUTH_INVALID)

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if not user:
        raise UnauthorizedError("User not found", code=ErrorCode.AUTH_INVALID)

    return user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory: require one of the given roles.
    Usage: Depends(require_role([UserRole.professor]))
    """
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            logger.warning(
                f"Access denied: User {current_user.id} with role {current_user.role.value} "
                f"attempted to access resource requiring {[r.value for r in allowed_roles]}"
            )
            raise NotAuthorizedError(
                f"This action requires one of: {[r.value for r in allowed_roles]}",
                details={"current_role": current_user.role.value}
            )
        return current_user
    return checker
