import datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from polarad_admin.db.base import Base


class RawData(Base):
    """Daily Meta ads metrics for one ad on one platform/device."""

    __tablename__ = "raw_data"

    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    ad_id: Mapped[str] = mapped_column(String(64), nullable=False)
    ad_name: Mapped[str] = mapped_column(String(512), nullable=False)
    campaign_id: Mapped[str] = mapped_column(String(64), default="", server_default="")
    campaign_name: Mapped[str] = mapped_column(String(512), nullable=False)
    platform: Mapped[str] = mapped_column(String(50), nullable=False)
    device: Mapped[str] = mapped_column(String(50), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="KRW", server_default="KRW")
    impressions: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    reach: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    clicks: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    leads: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    spend: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0, server_default="0")

    __table_args__ = (
        UniqueConstraint(
            "client_id", "date", "ad_id", "platform", "device",
            name="uq_raw_data_client_date_ad_platform_device",
        ),
    )
