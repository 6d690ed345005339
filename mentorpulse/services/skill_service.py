# mentorpulse/services/skill_service.py
"""
Skill crediting shared by session completion and goal completion.

Crediting never commits: it joins the caller's unit of work so the skill
updates land in the same transaction as the status change that triggered them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy.orm import Session

from mentorpulse import models
from mentorpulse.crud import skill as skill_crud
from mentorpulse.utils.clock import utcnow

logger = logging.getLogger(__name__)

MAX_PROGRESS = 100
ACQUIRED_THRESHOLD = 80


@dataclass(frozen=True)
class CreditPolicy:
    step: int
    initial_progress: int
    default_description: str


SESSION_CREDIT = CreditPolicy(step=10, initial_progress=10, default_description="Learning through sessions")
GOAL_CREDIT = CreditPolicy(step=25, initial_progress=100, default_description="Acquired through goal completion")


def derive_skill_status(progress: int) -> str:
    if progress >= MAX_PROGRESS:
        return "mastered"
    if progress >= ACQUIRED_THRESHOLD:
        return "acquired"
    return "learning"


def normalize_claims(claims: Optional[Iterable[Any]]) -> List[dict]:
    """Accept dicts or pydantic models; drop claims without a name."""
    normalized = []
    for claim in claims or []:
        data = claim.model_dump() if hasattr(claim, "model_dump") else dict(claim)
        name = (data.get("name") or "").strip()
        if not name:
            continue
        normalized.append({
            "name": name,
            "category": data.get("category") or "technical",
            "proficiency": data.get("proficiency") or "beginner",
            "description": data.get("description"),
        })
    return normalized


def _apply_progress(skill: models.Skill, progress: int) -> None:
    skill.progress = min(max(progress, skill.progress or 0), MAX_PROGRESS)
    skill.status = derive_skill_status(skill.progress)
    if skill.progress >= ACQUIRED_THRESHOLD and skill.acquired_at is None:
        skill.acquired_at = utcnow()


def _link(skill: models.Skill, session: Optional[models.Session], goal: Optional[models.Goal]) -> None:
    if session is not None and session not in skill.sessions:
        skill.sessions.append(session)
    if goal is not None and goal not in skill.goals:
        skill.goals.append(goal)


def credit_skills(
    db: Session,
    user_id: int,
    claims: Optional[Iterable[Any]],
    policy: CreditPolicy,
    *,
    session_id: Optional[int] = None,
    goal_id: Optional[int] = None,
) -> List[models.Skill]:
    """
    Credit each claimed skill to ``user_id``.

    Existing skills (case-insensitive name) advance by ``policy.step`` up to
    100; new ones start at ``policy.initial_progress``. The contributing
    session/goal is linked at most once.
    """
    session = db.get(models.Session, session_id) if session_id is not None else None
    goal = db.get(models.Goal, goal_id) if goal_id is not None else None

    credited = []
    for claim in normalize_claims(claims):
        skill = skill_crud.get_user_skill_by_name(db, user_id, claim["name"])
        if skill is None:
            skill = skill_crud.create_user_skill(
                db,
                user_id=user_id,
                name=claim["name"],
                category=claim["category"],
                proficiency=claim["proficiency"],
                description=claim["description"] or policy.default_description,
                progress=0,
                status="learning",
            )
            if skill is not None:
                _apply_progress(skill, policy.initial_progress)
                _link(skill, session, goal)
                credited.append(skill)
                logger.info("Created skill '%s' for user %s at %s%%", skill.name, user_id, skill.progress)
                continue
            # Lost an insert race; credit the row the other writer created.
            skill = skill_crud.get_user_skill_by_name(db, user_id, claim["name"])

        _apply_progress(skill, skill.progress + policy.step)
        _link(skill, session, goal)
        credited.append(skill)
        logger.info("Updated skill '%s' for user %s, progress %s%%", skill.name, user_id, skill.progress)

    db.flush()
    return credited
