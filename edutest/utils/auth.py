from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from edutest import config
from edutest.database import get_db
from edutest.models.roles import Role
from edutest.models.user import User
from edutest.utils.errors import ForbiddenError, UnauthenticatedError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/token", auto_error=False)

_DEV_SECRET = "edutest-dev-secret-change-me"


def _secret() -> str:
    if not config.JWT_SECRET:
        logger.warning("JWT_SECRET is not set, using the development secret")
        return _DEV_SECRET
    return config.JWT_SECRET


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(user: User, expires_minutes: int | None = None) -> str:
    minutes = expires_minutes if expires_minutes is not None else config.ACCESS_TOKEN_EXPIRE_MINUTES
    role = user.role.value if isinstance(user.role, Role) else str(user.role)
    payload = {
        "sub": user.id,
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, _secret(), algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, _secret(), algorithms=[config.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        raise UnauthenticatedError("Not authorized, token failed") from e


def get_current_user(db: Session = Depends(get_db), token: str | None = Depends(oauth2_scheme)) -> User:
    if not token:
        raise UnauthenticatedError("Not authorized, no token")
    claims = decode_access_token(token)
    user = db.get(User, claims.get("sub"))
    if not user:
        raise UnauthenticatedError("Not authorized, user not found")
    return user


def require_roles(*allowed: Role) -> Callable[..., User]:
    """
    Dependency factory: the authenticated user's role must be in `allowed`.
    Authentication runs first, so a missing token is a 401, never a 403.
    """
    allowed_set = {Role(r) for r in allowed}

    def checker(user: User = Depends(get_current_user)) -> User:
        if Role(user.role) not in allowed_set:
            raise ForbiddenError(
                f"Forbidden: User with role '{Role(user.role).value}' is not authorized to access this route."
            )
        return user

    return checker


def ensure_can_view_session(user: User, session) -> None:
    """Candidates read only their own sessions; admins read any."""
    if Role(user.role) == Role.ADMIN:
        return
    if session.user_id != user.id:
        raise ForbiddenError("Not authorized to access this test session.")
