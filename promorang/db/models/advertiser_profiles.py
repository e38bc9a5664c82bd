from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from promorang.db.models.base import Base


class AdvertiserProfile(Base):
    __tablename__ = "advertiser_profiles"
    __table_args__ = (
        CheckConstraint(
            "merchant_state IN ('NEW','SAMPLING','GRADUATED','PAID')",
            name="ck_advertiser_profiles_merchant_state",
        ),
        Index("idx_advertiser_profiles_merchant_state", "merchant_state"),
    )

    advertiser_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    company_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_website: Mapped[str | None] = mapped_column(Text, nullable=True)
    merchant_state: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        server_default=text("'NEW'"),
    )
    sampling_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    graduated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("now()"),
    )
