"""
Module: marketplace_kernel.models.conversation
Responsibility: ORM persistence for client/freelancer chat threads and
    their messages.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Messages are append-only; only is_read/read_at may change after
      insert (db/immutability.py).
    - Messages are ordered by created_at within a conversation.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace_kernel.db.base import TimestampedBase, UTCDateTime, UUIDString


class Conversation(TimestampedBase):
    """Chat thread between one client and one freelancer, optionally per job."""

    __tablename__ = "conversations"

    __table_args__ = (
        Index("idx_conversation_pair", "client_id", "freelancer_id", "job_id"),
        Index("idx_conversation_freelancer", "freelancer_id"),
    )

    client_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    freelancer_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    job_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("jobs.id"),
        nullable=True,
    )

    contract_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=True,
    )

    last_message_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    messages: Mapped[list["Message"]] = relationship(
        back_populates="conversation",
        order_by="Message.created_at",
        lazy="select",
    )

    def has_participant(self, user_id: UUID) -> bool:
        return user_id in (self.client_id, self.freelancer_id)


class Message(TimestampedBase):
    __tablename__ = "messages"

    __table_args__ = (
        Index("idx_message_conversation", "conversation_id", "created_at"),
    )

    conversation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("conversations.id"),
        nullable=False,
    )

    sender_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    read_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    conversation: Mapped["Conversation"] = relationship(back_populates="messages")

    def __repr__(self) -> str:
        return f"<Message {self.id} read={self.is_read}>"
