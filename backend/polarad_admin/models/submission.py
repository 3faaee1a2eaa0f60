from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from polarad_admin.db.base import Base


class Submission(Base):
    """A customer's onboarding questionnaire."""

    __tablename__ = "submissions"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    brand_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    website_style: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website_color: Mapped[str | None] = mapped_column(String(255), nullable=True)
    blog_design_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    additional_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default="DRAFT", server_default="DRAFT", index=True
    )
    is_complete: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True
    )
    slack_channel_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    user = relationship("User", lazy="selectin")
