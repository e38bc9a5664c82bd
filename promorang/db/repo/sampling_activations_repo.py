from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.db.models.advertiser_profiles import AdvertiserProfile
from promorang.db.models.sampling_activations import SamplingActivation

_SURFACE_FLAG_COLUMNS = {
    "include_in_deals": SamplingActivation.include_in_deals,
    "include_in_events": SamplingActivation.include_in_events,
    "include_in_post_proof": SamplingActivation.include_in_post_proof,
}


class SamplingActivationsRepo:
    @staticmethod
    async def count_for_advertiser(session: AsyncSession, advertiser_id: str) -> int:
        stmt = select(func.count(SamplingActivation.id)).where(
            SamplingActivation.advertiser_id == advertiser_id
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def create(
        session: AsyncSession,
        *,
        advertiser_id: str,
        name: str,
        description: str | None,
        value_type: str,
        value_amount: Decimal,
        value_unit: str,
        max_redemptions: int,
        duration_days: int,
        starts_at: datetime,
        expires_at: datetime,
        include_in_deals: bool,
        include_in_events: bool,
        include_in_post_proof: bool,
        now_utc: datetime,
    ) -> SamplingActivation:
        activation = SamplingActivation(
            id=uuid4(),
            advertiser_id=advertiser_id,
            name=name,
            description=description,
            value_type=value_type,
            value_amount=value_amount,
            value_unit=value_unit,
            max_redemptions=max_redemptions,
            current_redemptions=0,
            duration_days=duration_days,
            starts_at=starts_at,
            expires_at=expires_at,
            status="active",
            include_in_deals=include_in_deals,
            include_in_events=include_in_events,
            include_in_post_proof=include_in_post_proof,
            promoshare_enabled=True,
            social_shield_required=True,
            graduation_triggered=False,
            graduation_reason=None,
            graduation_triggered_at=None,
            created_at=now_utc,
            updated_at=now_utc,
        )
        session.add(activation)
        await session.flush()
        return activation

    @staticmethod
    async def get_by_id(session: AsyncSession, activation_id: UUID) -> SamplingActivation | None:
        return await session.get(SamplingActivation, activation_id)

    @staticmethod
    async def get_by_id_for_update(
        session: AsyncSession,
        activation_id: UUID,
    ) -> SamplingActivation | None:
        stmt = (
            select(SamplingActivation)
            .where(SamplingActivation.id == activation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_active_for_advertiser_for_update(
        session: AsyncSession,
        advertiser_id: str,
    ) -> SamplingActivation | None:
        stmt = (
            select(SamplingActivation)
            .where(
                SamplingActivation.advertiser_id == advertiser_id,
                SamplingActivation.status == "active",
            )
            .order_by(SamplingActivation.created_at.desc())
            .limit(1)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_latest_for_advertiser(
        session: AsyncSession,
        advertiser_id: str,
    ) -> SamplingActivation | None:
        stmt = (
            select(SamplingActivation)
            .where(SamplingActivation.advertiser_id == advertiser_id)
            .order_by(SamplingActivation.created_at.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_active_for_surface(
        session: AsyncSession,
        *,
        flag_column: str,
        now_utc: datetime,
    ) -> list[tuple[SamplingActivation, str | None, str | None]]:
        flag = _SURFACE_FLAG_COLUMNS[flag_column]
        stmt = (
            select(
                SamplingActivation,
                AdvertiserProfile.company_name,
                AdvertiserProfile.company_website,
            )
            .outerjoin(
                AdvertiserProfile,
                AdvertiserProfile.advertiser_id == SamplingActivation.advertiser_id,
            )
            .where(
                flag.is_(True),
                SamplingActivation.status == "active",
                SamplingActivation.current_redemptions < SamplingActivation.max_redemptions,
                SamplingActivation.expires_at > now_utc,
            )
            .order_by(SamplingActivation.expires_at.asc(), SamplingActivation.id.asc())
        )
        result = await session.execute(stmt)
        return [(row[0], row[1], row[2]) for row in result.all()]

    @staticmethod
    async def list_expired_active_ids(
        session: AsyncSession,
        *,
        now_utc: datetime,
        limit: int,
    ) -> list[UUID]:
        stmt = (
            select(SamplingActivation.id)
            .where(
                SamplingActivation.status == "active",
                SamplingActivation.expires_at < now_utc,
            )
            .order_by(SamplingActivation.expires_at.asc(), SamplingActivation.id.asc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())
