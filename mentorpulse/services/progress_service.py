"""Goals, skills and the progress ledger."""

import logging
from datetime import date
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from mentorpulse import models
from mentorpulse.crud import progress as progress_crud
from mentorpulse.crud import skill as skill_crud
from mentorpulse.crud.base import commit
from mentorpulse.exceptions import NotFoundError, ValidationError
from mentorpulse.models.progress import GOAL_STATUSES
from mentorpulse.services import skill_service

logger = logging.getLogger(__name__)

GOAL_PROGRESS_VALUE = 20


def create_goal(
    db: Session,
    user: models.User,
    *,
    title: str,
    description: str,
    target_date: date,
    category: str = "technical",
    priority: str = "medium",
    skills: Optional[Iterable[Any]] = None,
    estimated_hours: Optional[float] = None,
) -> models.Goal:
    if not (title or "").strip() or not (description or "").strip():
        raise ValidationError("Title and description are required")
    goal = progress_crud.create_goal(
        db,
        user_id=user.id,
        title=title.strip(),
        description=description.strip(),
        target_date=target_date,
        category=category,
        priority=priority,
        skills=skill_service.normalize_claims(skills),
        estimated_hours=estimated_hours,
        progress=0,
        status="not-started",
    )
    commit(db, "create goal")
    db.refresh(goal)
    return goal


def _derive_goal_status(progress: int) -> str:
    if progress >= 100:
        return "completed"
    return "in-progress" if progress > 0 else "not-started"


def update_goal_progress(
    db: Session,
    goal_id: int,
    user: models.User,
    *,
    progress: Optional[int] = None,
    status: Optional[str] = None,
    actual_hours: Optional[float] = None,
    skill_claims: Optional[Iterable[Any]] = None,
) -> models.Goal:
    """
    Update a goal's progress and status.

    The first time the goal becomes completed its skills are credited with
    the goal policy and a goal_achieved ledger entry is written.
    """
    if status is not None and status not in GOAL_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(GOAL_STATUSES)}")

    goal = progress_crud.get_goal_for_user(db, goal_id, user.id)
    if not goal:
        raise NotFoundError("Goal not found")

    was_completed = goal.status == "completed"

    if progress is not None:
        goal.progress = min(max(int(progress), 0), 100)
        goal.status = _derive_goal_status(goal.progress)
    if status:
        goal.status = status
        if status == "completed":
            goal.progress = 100
    if actual_hours is not None:
        goal.actual_hours = actual_hours
    if skill_claims is not None:
        goal.skills = skill_service.normalize_claims(skill_claims)

    first_completion = goal.status == "completed" and not was_completed
    if first_completion:
        claims = goal.skills or []
        skill_service.credit_skills(
            db,
            user.id,
            claims,
            skill_service.GOAL_CREDIT,
            goal_id=goal.id,
        )
        progress_crud.create_progress_entry(
            db,
            user_id=user.id,
            type="goal_achieved",
            title=f"Goal Completed: {goal.title}",
            description=goal.description,
            value=GOAL_PROGRESS_VALUE,
            metrics={
                "sessions_completed": 0,
                "hours_spent": goal.actual_hours or 0,
                "skills_learned": len(claims),
                "goals_achieved": 1,
            },
            skills=claims,
            related_goal_id=goal.id,
        )

    commit(db, "update goal progress")
    db.refresh(goal)
    if first_completion:
        logger.info("Goal %s completed by user %s", goal.id, user.id)
    return goal


def list_goals(db: Session, user: models.User) -> List[models.Goal]:
    return (
        db.query(models.Goal)
        .filter(models.Goal.user_id == user.id)
        .order_by(models.Goal.target_date.asc(), models.Goal.id.asc())
        .all()
    )


def list_skills(db: Session, user: models.User) -> List[models.Skill]:
    return skill_crud.list_user_skills(db, user.id)


def list_progress(db: Session, user: models.User, *, limit: int = 50) -> List[models.Progress]:
    return progress_crud.list_progress_entries(db, user.id, limit=limit)
