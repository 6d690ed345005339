from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import and_, exists
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from mentorpulse import models


def create_message(
    db: Session,
    *,
    chat_id: int,
    sender_id: int,
    content: str,
    message_type: str,
    created_at: datetime,
) -> models.Message:
    message = models.Message(
        chat_id=chat_id,
        sender_id=sender_id,
        content=content,
        message_type=message_type,
        is_delivered=False,
        is_seen=False,
    )
    db.add(message)
    db.flush()
    # The sender is the first reader of their own message.
    db.add(models.MessageRead(message_id=message.id, user_id=sender_id, read_at=created_at))
    db.flush()
    return message


def _with_details(query):
    return query.options(
        joinedload(models.Message.sender),
        selectinload(models.Message.read_by),
    )


def get_message(db: Session, message_id: int) -> Optional[models.Message]:
    return _with_details(db.query(models.Message)).filter(models.Message.id == message_id).first()


def list_messages(db: Session, chat_id: int, *, offset: int, limit: int) -> List[models.Message]:
    """Page of messages, newest page first, returned oldest to newest."""
    rows = (
        _with_details(db.query(models.Message))
        .filter(models.Message.chat_id == chat_id)
        .order_by(models.Message.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    rows.reverse()
    return rows


def count_messages(db: Session, chat_id: int) -> int:
    return db.query(models.Message).filter(models.Message.chat_id == chat_id).count()


def _not_read_by(reader_id: int):
    return ~exists().where(
        and_(
            models.MessageRead.message_id == models.Message.id,
            models.MessageRead.user_id == reader_id,
        )
    )


def unread_messages(
    db: Session,
    chat_id: int,
    reader_id: int,
    message_ids: Optional[Iterable[int]] = None,
) -> List[models.Message]:
    query = db.query(models.Message).filter(
        models.Message.chat_id == chat_id,
        models.Message.sender_id != reader_id,
        _not_read_by(reader_id),
    )
    if message_ids is not None:
        query = query.filter(models.Message.id.in_(list(message_ids)))
    return query.order_by(models.Message.id.asc()).all()


def count_unread(db: Session, chat_id: int, reader_id: int) -> int:
    return db.query(models.Message).filter(
        models.Message.chat_id == chat_id,
        models.Message.sender_id != reader_id,
        _not_read_by(reader_id),
    ).count()


def pending_deliveries(db: Session, chat_ids: List[int], recipient_id: int) -> List[models.Message]:
    if not chat_ids:
        return []
    return (
        db.query(models.Message)
        .filter(
            models.Message.chat_id.in_(chat_ids),
            models.Message.sender_id != recipient_id,
            models.Message.is_delivered.is_(False),
        )
        .order_by(models.Message.id.asc())
        .all()
    )


def mark_delivered(db: Session, message_id: int) -> bool:
    """Flip is_delivered once; False when it was already set."""
    updated = db.query(models.Message).filter(
        models.Message.id == message_id,
        models.Message.is_delivered.is_(False),
    ).update({"is_delivered": True}, synchronize_session=False)
    return updated == 1


def add_read_receipt(db: Session, *, message_id: int, user_id: int, read_at: datetime) -> bool:
    """Append a receipt; False when this reader already has one."""
    try:
        with db.begin_nested():
            db.add(models.MessageRead(message_id=message_id, user_id=user_id, read_at=read_at))
    except IntegrityError:
        return False
    return True


def mark_seen(db: Session, message_ids: List[int]) -> None:
    if not message_ids:
        return
    db.query(models.Message).filter(
        models.Message.id.in_(message_ids),
    ).update({"is_seen": True}, synchronize_session=False)
