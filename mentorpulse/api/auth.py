import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from mentorpulse.crud import user as user_crud
from mentorpulse.crud.base import commit
from mentorpulse.database import get_db
from mentorpulse.exceptions import AuthenticationError, ValidationError
from mentorpulse.schemas import LoginRequest, RegisterRequest, Token, User, success
from mentorpulse.utils.security import authenticate_user, create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

SELF_SERVICE_ROLES = {"mentee", "mentor"}


def _token_for(user) -> Token:
    access_token = create_access_token(data={"sub": user.email, "role": user.role})
    return Token(access_token=access_token, token_type="bearer", role=user.role)


# ===== REGISTER ENDPOINT =====

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(user_data: RegisterRequest, db: Session = Depends(get_db)):
    """Register a mentee or mentor account and return an access token."""
    requested_role = (user_data.role or "mentee").strip().lower()
    if requested_role not in SELF_SERVICE_ROLES:
        raise ValidationError("Role must be one of: mentee, mentor")

    normalized_email = user_data.email.strip().lower()
    if user_crud.get_user_by_email(db, normalized_email):
        raise ValidationError("Email already registered")

    user = user_crud.create_user(
        db,
        name=user_data.name.strip(),
        email=normalized_email,
        password=user_data.password,
        role=requested_role,
    )
    commit(db, "register user")
    db.refresh(user)
    logger.info("Registered user %s as %s", user.id, user.role)

    return success(
        {"token": _token_for(user), "user": User.model_validate(user)},
        message="Registration successful",
    )


# ===== LOGIN ENDPOINT =====

@router.post("/login")
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    """Verify credentials and return access token"""
    user = authenticate_user(db, credentials.email.strip().lower(), credentials.password)
    if not user:
        raise AuthenticationError("Invalid email or password")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")

    return success({"token": _token_for(user), "user": User.model_validate(user)})
