from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BOOLEAN,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from promorang.db.models.base import Base


class SamplingActivation(Base):
    __tablename__ = "sampling_activations"
    __table_args__ = (
        CheckConstraint(
            "value_type IN ('coupon','product','voucher','experience','cash_prize')",
            name="ck_sampling_activations_value_type",
        ),
        CheckConstraint(
            "status IN ('active','expired','completed')",
            name="ck_sampling_activations_status",
        ),
        CheckConstraint("max_redemptions >= 0", name="ck_sampling_activations_max_non_negative"),
        CheckConstraint(
            "current_redemptions >= 0",
            name="ck_sampling_activations_current_non_negative",
        ),
        CheckConstraint(
            "current_redemptions <= max_redemptions",
            name="ck_sampling_activations_current_le_max",
        ),
        CheckConstraint("expires_at > starts_at", name="ck_sampling_activations_window"),
        Index("idx_sampling_activations_advertiser", "advertiser_id", "created_at"),
        Index("idx_sampling_activations_status_expires", "status", "expires_at"),
    )

    id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), primary_key=True)
    advertiser_id: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    value_type: Mapped[str] = mapped_column(String(16), nullable=False)
    value_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    value_unit: Mapped[str] = mapped_column(String(16), nullable=False, server_default=text("'usd'"))
    max_redemptions: Mapped[int] = mapped_column(Integer, nullable=False)
    current_redemptions: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
    )
    duration_days: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    include_in_deals: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("true"))
    include_in_events: Mapped[bool] = mapped_column(
        BOOLEAN,
        nullable=False,
        server_default=text("false"),
    )
    include_in_post_proof: Mapped[bool] = mapped_column(
        BOOLEAN,
        nullable=False,
        server_default=text("false"),
    )
    promoshare_enabled: Mapped[bool] = mapped_column(BOOLEAN, nullable=False, server_default=text("true"))
    social_shield_required: Mapped[bool] = mapped_column(
        BOOLEAN,
        nullable=False,
        server_default=text("true"),
    )
    graduation_triggered: Mapped[bool] = mapped_column(
        BOOLEAN,
        nullable=False,
        server_default=text("false"),
    )
    graduation_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)
    graduation_triggered_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
