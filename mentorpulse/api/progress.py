"""Goals, skills and the progress ledger."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from mentorpulse.database import get_db
from mentorpulse.models.user import User
from mentorpulse.schemas import GoalCreate, GoalOut, GoalProgressUpdate, ProgressOut, SkillOut, success
from mentorpulse.services import progress_service
from mentorpulse.utils.security import get_current_user

router = APIRouter(prefix="/progress", tags=["progress"])


# ======================
# GOALS
# ======================
@router.post("/goals", status_code=status.HTTP_201_CREATED)
def create_goal(
    payload: GoalCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = progress_service.create_goal(
        db,
        current_user,
        title=payload.title,
        description=payload.description,
        target_date=payload.target_date,
        category=payload.category,
        priority=payload.priority,
        skills=payload.skills,
        estimated_hours=payload.estimated_hours,
    )
    return success(GoalOut.model_validate(goal), message="Goal created successfully")


@router.get("/goals")
def list_goals(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success([GoalOut.model_validate(g) for g in progress_service.list_goals(db, current_user)])


@router.patch("/goals/{goal_id}/progress")
def update_goal_progress(
    goal_id: int,
    payload: GoalProgressUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    goal = progress_service.update_goal_progress(
        db,
        goal_id,
        current_user,
        progress=payload.progress,
        status=payload.status,
        actual_hours=payload.actual_hours,
        skill_claims=payload.skills,
    )
    return success(GoalOut.model_validate(goal), message="Goal progress updated successfully")


# ======================
# SKILLS & LEDGER
# ======================
@router.get("/skills")
def list_skills(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return success([SkillOut.model_validate(s) for s in progress_service.list_skills(db, current_user)])


@router.get("/entries")
def list_progress_entries(
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entries = progress_service.list_progress(db, current_user, limit=limit)
    return success([ProgressOut.model_validate(e) for e in entries])
