from __future__ import annotations

from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from promorang.db.models.merchant_state_transitions import MerchantStateTransition


class MerchantTransitionsRepo:
    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        advertiser_id: str,
        from_state: str,
        to_state: str,
        trigger_reason: str,
        trigger_metadata: dict[str, object],
        created_at: datetime,
    ) -> MerchantStateTransition:
        transition = MerchantStateTransition(
            advertiser_id=advertiser_id,
            from_state=from_state,
            to_state=to_state,
            trigger_reason=trigger_reason,
            trigger_metadata=trigger_metadata,
            created_at=created_at,
        )
        session.add(transition)
        await session.flush()
        return transition
