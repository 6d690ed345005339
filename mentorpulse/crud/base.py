import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mentorpulse.exceptions import ConflictError, TransientStoreError

logger = logging.getLogger(__name__)


def commit(db: Session, action: str) -> None:
    """
    Commit the unit of work or roll it back.

    Integrity failures become ConflictError (the caller re-fetches); any other
    store failure is logged and surfaced as TransientStoreError.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info("Conflict while trying to %s: %s", action, exc.orig)
        raise ConflictError(f"Conflict while trying to {action}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store failure while trying to %s: %s", action, exc)
        raise TransientStoreError() from exc
