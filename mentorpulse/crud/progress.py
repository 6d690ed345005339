from typing import List, Optional

from sqlalchemy.orm import Session

from mentorpulse import models


def create_progress_entry(
    db: Session,
    *,
    user_id: int,
    type: str,
    title: str,
    description: str,
    value: int,
    metrics: dict,
    skills: list,
    related_session_id: Optional[int] = None,
    related_goal_id: Optional[int] = None,
) -> models.Progress:
    entry = models.Progress(
        user_id=user_id,
        type=type,
        title=title,
        description=description,
        value=value,
        metrics=metrics,
        skills=skills,
        related_session_id=related_session_id,
        related_goal_id=related_goal_id,
    )
    db.add(entry)
    db.flush()
    return entry


def list_progress_entries(db: Session, user_id: int, *, limit: int = 50) -> List[models.Progress]:
    return (
        db.query(models.Progress)
        .filter(models.Progress.user_id == user_id)
        .order_by(models.Progress.id.desc())
        .limit(limit)
        .all()
    )


def get_goal_for_user(db: Session, goal_id: int, user_id: int) -> Optional[models.Goal]:
    return db.query(models.Goal).filter(
        models.Goal.id == goal_id,
        models.Goal.user_id == user_id,
    ).first()


def create_goal(db: Session, **fields) -> models.Goal:
    goal = models.Goal(**fields)
    db.add(goal)
    db.flush()
    return goal
