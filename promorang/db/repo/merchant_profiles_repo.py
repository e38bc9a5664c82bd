from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.db.models.advertiser_profiles import AdvertiserProfile

_STATE_TIMESTAMP_COLUMNS = {
    "SAMPLING": "sampling_started_at",
    "GRADUATED": "graduated_at",
    "PAID": "paid_at",
}


class MerchantProfilesRepo:
    @staticmethod
    async def get_by_advertiser_id(
        session: AsyncSession,
        advertiser_id: str,
    ) -> AdvertiserProfile | None:
        stmt = (
            select(AdvertiserProfile)
            .where(AdvertiserProfile.advertiser_id == advertiser_id)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def transition_state(
        session: AsyncSession,
        *,
        advertiser_id: str,
        from_state: str,
        to_state: str,
        now_utc: datetime,
    ) -> bool:
        """Compare-and-swap the merchant state; returns False when the stored state moved on."""
        values: dict[str, object] = {"merchant_state": to_state, "updated_at": now_utc}
        timestamp_column = _STATE_TIMESTAMP_COLUMNS.get(to_state)
        if timestamp_column is not None:
            values[timestamp_column] = now_utc

        if from_state == "NEW":
            stmt = (
                insert(AdvertiserProfile)
                .values(advertiser_id=advertiser_id, created_at=now_utc, **values)
                .on_conflict_do_update(
                    index_elements=[AdvertiserProfile.advertiser_id],
                    set_=values,
                    where=AdvertiserProfile.merchant_state == from_state,
                )
                .returning(AdvertiserProfile.advertiser_id)
            )
        else:
            stmt = (
                update(AdvertiserProfile)
                .where(
                    AdvertiserProfile.advertiser_id == advertiser_id,
                    AdvertiserProfile.merchant_state == from_state,
                )
                .values(**values)
                .returning(AdvertiserProfile.advertiser_id)
                .execution_options(synchronize_session=False)
            )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None
