from decimal import Decimal

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from polarad_admin.db.base import Base


class Package(Base):
    __tablename__ = "packages"

    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 0), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
