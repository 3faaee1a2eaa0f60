from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from polarad_admin.db.base import Base


class Workflow(Base):
    """One production deliverable (namecard, website, ...) for a customer."""

    __tablename__ = "workflows"

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default="PENDING", server_default="PENDING", index=True
    )
    design_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    final_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    courier: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    revision_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    revision_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    design_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    design_uploaded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    order_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    order_approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user = relationship("User", lazy="selectin")
    logs = relationship(
        "WorkflowLog",
        back_populates="workflow",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WorkflowLog.created_at.desc()",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "type", name="uq_workflows_user_type"),
    )


class WorkflowLog(Base):
    """Append-only record of a workflow status change."""

    __tablename__ = "workflow_logs"

    workflow_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    from_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_by: Mapped[str] = mapped_column(String(100), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    workflow = relationship("Workflow", back_populates="logs")

    __table_args__ = (
        Index("ix_workflow_logs_workflow_created", "workflow_id", "created_at"),
    )
