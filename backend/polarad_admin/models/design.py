from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from polarad_admin.db.base import Base


class Design(Base):
    __tablename__ = "designs"

    workflow_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workflows.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(30), default="DRAFT", server_default="DRAFT", index=True
    )
    current_version: Mapped[int] = mapped_column(Integer, default=1, server_default="1")
    approved_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    workflow = relationship("Workflow", lazy="selectin")
    versions = relationship(
        "DesignVersion",
        back_populates="design",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DesignVersion.version.desc()",
    )


class DesignVersion(Base):
    """An uploaded design artifact. Never modified after creation."""

    __tablename__ = "design_versions"

    design_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("designs.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("admins.id", ondelete="SET NULL"), nullable=True
    )

    design = relationship("Design", back_populates="versions")
    feedbacks = relationship(
        "DesignFeedback",
        back_populates="version",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="DesignFeedback.created_at.asc()",
    )

    __table_args__ = (
        UniqueConstraint("design_id", "version", name="uq_design_versions_design_version"),
    )


class DesignFeedback(Base):
    __tablename__ = "design_feedbacks"

    version_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("design_versions.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    author_type: Mapped[str] = mapped_column(String(10), nullable=False)
    author_name: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    version = relationship("DesignVersion", back_populates="feedbacks")

    __table_args__ = (
        Index("ix_design_feedbacks_version_created", "version_id", "created_at"),
    )
