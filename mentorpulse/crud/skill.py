from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mentorpulse import models


def normalize_skill_name(name: str) -> str:
    return " ".join((name or "").split()).lower()


def get_user_skill_by_name(db: Session, user_id: int, name: str) -> Optional[models.Skill]:
    return db.query(models.Skill).filter(
        models.Skill.user_id == user_id,
        models.Skill.name_key == normalize_skill_name(name),
    ).first()


def create_user_skill(db: Session, *, user_id: int, name: str, **fields) -> Optional[models.Skill]:
    """
    Insert a skill inside a savepoint.

    Returns None when a concurrent writer inserted the same (user, name) first;
    the caller re-reads the existing row.
    """
    skill = models.Skill(
        user_id=user_id,
        name=" ".join(name.split()),
        name_key=normalize_skill_name(name),
        **fields,
    )
    try:
        with db.begin_nested():
            db.add(skill)
    except IntegrityError:
        return None
    return skill


def list_user_skills(db: Session, user_id: int) -> List[models.Skill]:
    return (
        db.query(models.Skill)
        .filter(models.Skill.user_id == user_id)
        .order_by(models.Skill.progress.desc(), models.Skill.id.asc())
        .all()
    )


def list_session_skills(db: Session, user_id: int, session_id: int) -> List[models.Skill]:
    return (
        db.query(models.Skill)
        .join(models.skill_sessions, models.skill_sessions.c.skill_id == models.Skill.id)
        .filter(
            models.Skill.user_id == user_id,
            models.skill_sessions.c.session_id == session_id,
        )
        .order_by(models.Skill.progress.desc(), models.Skill.id.asc())
        .all()
    )
