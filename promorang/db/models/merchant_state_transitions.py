from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Identity, Index, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from promorang.db.models.base import Base


class MerchantStateTransition(Base):
    __tablename__ = "merchant_state_transitions"
    __table_args__ = (
        CheckConstraint(
            "from_state IN ('NEW','SAMPLING','GRADUATED','PAID')",
            name="ck_merchant_state_transitions_from_state",
        ),
        CheckConstraint(
            "to_state IN ('NEW','SAMPLING','GRADUATED','PAID')",
            name="ck_merchant_state_transitions_to_state",
        ),
        Index("idx_merchant_state_transitions_advertiser_created", "advertiser_id", "created_at"),
        Index("idx_merchant_state_transitions_reason", "trigger_reason"),
    )

    id: Mapped[int] = mapped_column(BigInteger, Identity(), primary_key=True)
    advertiser_id: Mapped[str] = mapped_column(String(64), nullable=False)
    from_state: Mapped[str] = mapped_column(String(16), nullable=False)
    to_state: Mapped[str] = mapped_column(String(16), nullable=False)
    trigger_reason: Mapped[str] = mapped_column(String(64), nullable=False)
    trigger_metadata: Mapped[dict[str, object]] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
