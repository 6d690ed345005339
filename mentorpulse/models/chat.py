# mentorpulse/models/chat.py
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    TIMESTAMP,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import relationship
from mentorpulse.database import Base

MESSAGE_TYPES = ("text", "file", "system")


class Chat(Base):
    """
    One-to-one conversation.

    The pair is stored sorted (participant_a_id < participant_b_id) so that the
    partial unique index below identifies an active chat regardless of who
    opened it first.
    """

    __tablename__ = "chats"

    id = Column(Integer, primary_key=True, index=True)
    participant_a_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    participant_b_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    last_message_id = Column(
        Integer,
        ForeignKey("messages.id", ondelete="SET NULL", use_alter=True, name="fk_chats_last_message"),
        nullable=True,
    )
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now(), index=True)

    __table_args__ = (
        CheckConstraint("participant_a_id < participant_b_id", name="ck_chats_participant_order"),
        Index(
            "uq_chats_active_pair",
            "participant_a_id",
            "participant_b_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    participant_a = relationship("User", foreign_keys=[participant_a_id])
    participant_b = relationship("User", foreign_keys=[participant_b_id])
    last_message = relationship("Message", foreign_keys=[last_message_id], post_update=True)
    messages = relationship(
        "Message",
        foreign_keys="Message.chat_id",
        back_populates="chat",
        order_by="Message.id",
    )

    @property
    def participant_ids(self):
        return (self.participant_a_id, self.participant_b_id)

    @property
    def participants(self):
        return [self.participant_a, self.participant_b]

    def has_participant(self, user_id: int) -> bool:
        return user_id in self.participant_ids

    def other_participant_id(self, user_id: int) -> int:
        return self.participant_b_id if self.participant_a_id == user_id else self.participant_a_id


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(String(1000), nullable=False)
    message_type = Column(String(20), nullable=False, default="text")
    file_url = Column(String(500), default="")
    # Both flags only ever go False -> True.
    is_delivered = Column(Boolean, default=False, nullable=False, index=True)
    is_seen = Column(Boolean, default=False, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    chat = relationship("Chat", foreign_keys=[chat_id], back_populates="messages")
    sender = relationship("User", foreign_keys=[sender_id])
    read_by = relationship(
        "MessageRead",
        back_populates="message",
        order_by="MessageRead.id",
        cascade="all, delete-orphan",
    )


class MessageRead(Base):
    """Append-only read receipt; one row per (message, reader)."""

    __tablename__ = "message_reads"

    id = Column(Integer, primary_key=True, index=True)
    message_id = Column(Integer, ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    read_at = Column(TIMESTAMP, nullable=False)

    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_message_reads_message_user"),
    )

    message = relationship("Message", back_populates="read_by")
    user = relationship("User")
