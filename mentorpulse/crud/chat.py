from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from mentorpulse import models


def canonical_pair(user_a: int, user_b: int) -> Tuple[int, int]:
    """Order a participant pair so (a, b) and (b, a) map to one chat."""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


def _with_participants(query):
    return query.options(
        joinedload(models.Chat.participant_a),
        joinedload(models.Chat.participant_b),
    )


def get_active_chat_for_pair(db: Session, user_a: int, user_b: int) -> Optional[models.Chat]:
    first, second = canonical_pair(user_a, user_b)
    return _with_participants(db.query(models.Chat)).filter(
        models.Chat.participant_a_id == first,
        models.Chat.participant_b_id == second,
        models.Chat.is_active.is_(True),
    ).first()


def create_chat(db: Session, user_a: int, user_b: int) -> models.Chat:
    first, second = canonical_pair(user_a, user_b)
    chat = models.Chat(participant_a_id=first, participant_b_id=second, is_active=True)
    db.add(chat)
    db.flush()
    return chat


def get_active_chat_for_participant(db: Session, chat_id: int, user_id: int) -> Optional[models.Chat]:
    return _with_participants(db.query(models.Chat)).filter(
        models.Chat.id == chat_id,
        models.Chat.is_active.is_(True),
        or_(
            models.Chat.participant_a_id == user_id,
            models.Chat.participant_b_id == user_id,
        ),
    ).first()


def list_active_chats_for_user(db: Session, user_id: int) -> List[models.Chat]:
    return _with_participants(db.query(models.Chat)).filter(
        models.Chat.is_active.is_(True),
        or_(
            models.Chat.participant_a_id == user_id,
            models.Chat.participant_b_id == user_id,
        ),
    ).order_by(models.Chat.updated_at.desc(), models.Chat.id.desc()).all()


def list_chat_ids_for_user(db: Session, user_id: int) -> List[int]:
    """Every chat the user belongs to, including deactivated ones."""
    rows = db.query(models.Chat.id).filter(
        or_(
            models.Chat.participant_a_id == user_id,
            models.Chat.participant_b_id == user_id,
        )
    ).all()
    return [row[0] for row in rows]
