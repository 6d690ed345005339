from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from mentorpulse import models


def get_session(db: Session, session_id: int) -> Optional[models.Session]:
    return (
        db.query(models.Session)
        .options(joinedload(models.Session.mentor), joinedload(models.Session.mentee))
        .filter(models.Session.id == session_id)
        .first()
    )


def list_user_sessions(db: Session, user_id: int) -> List[models.Session]:
    return (
        db.query(models.Session)
        .options(joinedload(models.Session.mentor), joinedload(models.Session.mentee))
        .filter(or_(models.Session.mentor_id == user_id, models.Session.mentee_id == user_id))
        .order_by(models.Session.session_date.asc(), models.Session.id.asc())
        .all()
    )


def create_session(db: Session, **fields) -> models.Session:
    session = models.Session(**fields)
    db.add(session)
    db.flush()
    return session


def guarded_update(
    db: Session,
    session_id: int,
    values: dict,
    *,
    statuses: Iterable[str],
    extra_criteria: Iterable = (),
) -> bool:
    """
    Single conditional UPDATE: apply ``values`` only while the session is in one
    of ``statuses`` (and matches ``extra_criteria``).

    Returns True when the row was updated. On PostgreSQL the update also takes
    the row lock, so later statements in the same transaction see every
    approval committed before it.
    """
    updated = db.query(models.Session).filter(
        models.Session.id == session_id,
        models.Session.status.in_(list(statuses)),
        *extra_criteria,
    ).update(values, synchronize_session=False)
    return updated == 1
