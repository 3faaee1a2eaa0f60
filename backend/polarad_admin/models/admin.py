from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from polarad_admin.db.base import Base


class Admin(Base):
    __tablename__ = "admins"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), default="OPERATOR", server_default="OPERATOR"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
