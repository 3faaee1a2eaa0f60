from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from polarad_admin.db.base import Base


class CommunicationThread(Base):
    """A customer support conversation."""

    __tablename__ = "communication_threads"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default="OPEN", server_default="OPEN", index=True
    )
    last_reply_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expected_completion_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    user = relationship("User", lazy="selectin")
    messages = relationship(
        "CommunicationMessage",
        back_populates="thread",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="CommunicationMessage.created_at.asc()",
    )


class CommunicationMessage(Base):
    __tablename__ = "communication_messages"

    thread_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("communication_threads.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    author_type: Mapped[str] = mapped_column(String(10), nullable=False)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    attachments: Mapped[list | None] = mapped_column(JSON, nullable=True)
    expected_completion_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_read_by_admin: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    is_read_by_user: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")

    thread = relationship("CommunicationThread", back_populates="messages")

    __table_args__ = (
        Index("ix_communication_messages_thread_created", "thread_id", "created_at"),
    )
