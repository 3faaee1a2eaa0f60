from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column

from polarad_admin.db.base import Base


class Client(Base):
    """An advertiser account connected to the Meta Ads API."""

    __tablename__ = "clients"

    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    meta_ad_account_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    encrypted_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    auth_status: Mapped[str] = mapped_column(
        String(20), default="ACTIVE", server_default="ACTIVE", index=True
    )
    token_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    service_start: Mapped[date | None] = mapped_column(Date, nullable=True)
    service_end: Mapped[date | None] = mapped_column(Date, nullable=True)
    telegram_chat_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    telegram_enabled: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    plan_type: Mapped[str] = mapped_column(String(20), default="FREE", server_default="FREE")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "uq_clients_meta_ad_account_id",
            "meta_ad_account_id",
            unique=True,
            postgresql_where=text("meta_ad_account_id IS NOT NULL"),
        ),
    )


Index("ix_clients_lower_client_name", func.lower(Client.client_name), unique=True)


class TokenRefreshLog(Base):
    __tablename__ = "token_refresh_logs"

    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
