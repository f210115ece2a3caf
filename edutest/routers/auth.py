import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from edutest.database import get_db
from edutest.models.roles import Role
from edutest.models.user import User
from edutest.schemas.user import TokenResponse, UserCreate, UserResponse
from edutest.utils.auth import create_access_token, get_current_user, get_password_hash, verify_password
from edutest.utils.errors import ConflictError, UnauthenticatedError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/auth/me", response_model=UserResponse)
def get_profile(user: User = Depends(get_current_user)):
    return user


@router.post("/auth/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, db: Session = Depends(get_db)):
    """Self-registration always yields a candidate; admins are provisioned separately."""
    email = payload.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise ConflictError("Email already registered")

    user = User(
        id=str(uuid4()),
        name=payload.name.strip(),
        email=email,
        password_hash=get_password_hash(payload.password),
        role=Role.CANDIDATE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Candidate %s registered", user.id)
    return user


@router.post("/token", response_model=TokenResponse)
def login(form: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == form.username.lower()).first()
    if not user or not verify_password(form.password, user.password_hash):
        raise UnauthenticatedError("Invalid email or password")

    return TokenResponse(access_token=create_access_token(user), role=user.role)
