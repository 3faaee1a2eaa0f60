from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from polarad_admin.db.base import Base


class Contract(Base):
    __tablename__ = "contracts"

    contract_number: Mapped[str] = mapped_column(String(13), unique=True, nullable=False)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    package_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("packages.id", ondelete="RESTRICT"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default="PENDING", server_default="PENDING", index=True
    )
    contract_period: Mapped[int] = mapped_column(Integer, default=12, server_default="12")
    monthly_fee: Mapped[Decimal] = mapped_column(Numeric(12, 0), nullable=False)
    setup_fee: Mapped[Decimal] = mapped_column(Numeric(12, 0), default=0, server_default="0")
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 0), nullable=False)
    is_promotion: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    additional_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ceo_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    business_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    client_signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reject_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    email_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user = relationship("User", lazy="selectin")
    package = relationship("Package", lazy="selectin")
    logs = relationship(
        "ContractLog",
        back_populates="contract",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ContractLog.created_at.desc()",
    )

    __table_args__ = (
        # At most one contract awaiting the customer's signature per user
        Index(
            "uq_contracts_user_pending",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
        ),
    )


class ContractLog(Base):
    """Append-only record of a contract status change."""

    __tablename__ = "contract_logs"

    contract_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("contracts.id", ondelete="CASCADE"), nullable=False
    )
    from_status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    to_status: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_by: Mapped[str] = mapped_column(String(100), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    contract = relationship("Contract", back_populates="logs")

    __table_args__ = (
        Index("ix_contract_logs_contract_created", "contract_id", "created_at"),
    )


class ContractSequence(Base):
    """Per-day counter backing contract numbers (YYYYMMDD-XXXX)."""

    __tablename__ = "contract_sequences"

    day: Mapped[str] = mapped_column(String(8), unique=True, nullable=False)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
