from typing import Optional

from sqlalchemy.orm import Session

from mentorpulse import models
from mentorpulse.utils.security import get_password_hash


def create_user(db: Session, *, name: str, email: str, password: str, role: str = "mentee") -> models.User:
    db_user = models.User(
        name=name,
        email=email,
        password_hash=get_password_hash(password),
        role=role,
        is_active=True,
    )
    db.add(db_user)
    db.flush()
    return db_user


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()
