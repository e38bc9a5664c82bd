from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import case, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.db.models.sampling_participations import SamplingParticipation

ENTRY_USER_MAX_MATURITY_STATE = 2


@dataclass(frozen=True, slots=True)
class ParticipationSummary:
    total_participations: int
    unique_participants: int
    verified_actions: int
    redeemed_participations: int
    entry_user_participants: int


class SamplingParticipationsRepo:
    @staticmethod
    async def upsert(
        session: AsyncSession,
        *,
        activation_id: UUID,
        user_id: str,
        action_type: str,
        user_maturity_state: int,
        action_metadata: dict[str, object],
        now_utc: datetime,
    ) -> SamplingParticipation:
        stmt = insert(SamplingParticipation).values(
            id=uuid4(),
            activation_id=activation_id,
            user_id=user_id,
            action_type=action_type,
            user_maturity_state=user_maturity_state,
            action_metadata=action_metadata,
            verified=False,
            redeemed=False,
            created_at=now_utc,
            updated_at=now_utc,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                SamplingParticipation.activation_id,
                SamplingParticipation.user_id,
                SamplingParticipation.action_type,
            ],
            set_={
                "user_maturity_state": stmt.excluded.user_maturity_state,
                "action_metadata": stmt.excluded.action_metadata,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(SamplingParticipation)
        orm_stmt = (
            select(SamplingParticipation)
            .from_statement(stmt)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(orm_stmt)
        return result.scalar_one()

    @staticmethod
    async def get_by_id_for_update(
        session: AsyncSession,
        participation_id: UUID,
    ) -> SamplingParticipation | None:
        stmt = (
            select(SamplingParticipation)
            .where(SamplingParticipation.id == participation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def summarize_for_activation(
        session: AsyncSession,
        activation_id: UUID,
    ) -> ParticipationSummary:
        stmt = select(
            func.count(SamplingParticipation.id),
            func.count(func.distinct(SamplingParticipation.user_id)),
            func.coalesce(func.sum(case((SamplingParticipation.verified.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(case((SamplingParticipation.redeemed.is_(True), 1), else_=0)), 0),
            func.coalesce(
                func.sum(
                    case(
                        (
                            SamplingParticipation.user_maturity_state
                            <= ENTRY_USER_MAX_MATURITY_STATE,
                            1,
                        ),
                        else_=0,
                    )
                ),
                0,
            ),
        ).where(SamplingParticipation.activation_id == activation_id)
        result = await session.execute(stmt)
        total, unique, verified, redeemed, entry_users = result.one()
        return ParticipationSummary(
            total_participations=int(total or 0),
            unique_participants=int(unique or 0),
            verified_actions=int(verified or 0),
            redeemed_participations=int(redeemed or 0),
            entry_user_participants=int(entry_users or 0),
        )
