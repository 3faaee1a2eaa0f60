from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from polarad_admin.db.base import Base


class User(Base):
    """A customer of the agency (owner of submissions, workflows, contracts)."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    telegram_chat_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    telegram_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
