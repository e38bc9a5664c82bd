from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.core.cache import TTLCache
from promorang.db.models.sampling_participations import SamplingParticipation
from promorang.db.repo.sampling_activations_repo import SamplingActivationsRepo
from promorang.db.repo.sampling_participations_repo import SamplingParticipationsRepo
from promorang.db.session import SessionLocal
from promorang.sampling.constants import (
    ACTIVATION_STATUS_ACTIVE,
    ACTIVATION_STATUS_COMPLETED,
    ACTIVATION_STATUS_EXPIRED,
    DEFAULT_VERIFICATION_METHOD,
    MSG_ACTIVATION_EXPIRED,
    MSG_ACTIVATION_NOT_ACTIVE,
    MSG_PARTICIPATION_NOT_FOUND,
    MSG_REDEMPTION_LIMIT_REACHED,
)
from promorang.sampling.errors import (
    SamplingActivationExpiredError,
    SamplingActivationInactiveError,
    SamplingActivationNotFoundError,
    SamplingParticipationNotFoundError,
    SamplingRedemptionLimitError,
)
from promorang.sampling.graduation import check_graduation_triggers
from promorang.sampling.types import GraduationResult

logger = structlog.get_logger(__name__)


async def expire_activation(
    session: AsyncSession,
    *,
    activation_id: UUID,
    now_utc: datetime,
    cache: TTLCache | None = None,
) -> GraduationResult:
    """Marks an overdue active activation expired and lets graduation run on the window trigger."""
    activation = await SamplingActivationsRepo.get_by_id_for_update(session, activation_id)
    if activation is None:
        return GraduationResult(graduated=False)

    if activation.status == ACTIVATION_STATUS_ACTIVE and activation.expires_at < now_utc:
        activation.status = ACTIVATION_STATUS_EXPIRED
        activation.updated_at = now_utc
        await session.flush()
        logger.info(
            "sampling_activation_expired",
            advertiser_id=activation.advertiser_id,
            activation_id=str(activation.id),
        )

    return await check_graduation_triggers(
        session,
        advertiser_id=activation.advertiser_id,
        activation_id=activation.id,
        now_utc=now_utc,
        cache=cache,
    )


async def _expire_in_own_transaction(
    *,
    activation_id: UUID,
    now_utc: datetime,
    cache: TTLCache | None,
) -> None:
    async with SessionLocal.begin() as expiry_session:
        await expire_activation(
            expiry_session,
            activation_id=activation_id,
            now_utc=now_utc,
            cache=cache,
        )


async def record_participation(
    session: AsyncSession,
    *,
    activation_id: UUID,
    user_id: str,
    action_type: str,
    user_maturity_state: int = 0,
    metadata: dict[str, object] | None = None,
    now_utc: datetime | None = None,
    cache: TTLCache | None = None,
) -> SamplingParticipation:
    now_utc = now_utc or datetime.now(timezone.utc)

    activation = await SamplingActivationsRepo.get_by_id(session, activation_id)
    if activation is None:
        raise SamplingActivationNotFoundError(MSG_ACTIVATION_NOT_ACTIVE)
    if activation.status != ACTIVATION_STATUS_ACTIVE:
        raise SamplingActivationInactiveError(MSG_ACTIVATION_NOT_ACTIVE)
    if activation.expires_at < now_utc:
        # Committed separately: the caller's transaction rolls back on the raised error.
        await _expire_in_own_transaction(activation_id=activation.id, now_utc=now_utc, cache=cache)
        raise SamplingActivationExpiredError(MSG_ACTIVATION_EXPIRED)

    participation = await SamplingParticipationsRepo.upsert(
        session,
        activation_id=activation.id,
        user_id=user_id,
        action_type=action_type,
        user_maturity_state=user_maturity_state,
        action_metadata=metadata or {},
        now_utc=now_utc,
    )
    logger.info(
        "sampling_participation_recorded",
        activation_id=str(activation.id),
        participation_id=str(participation.id),
        user_id=user_id,
        action_type=action_type,
    )

    await check_graduation_triggers(
        session,
        advertiser_id=activation.advertiser_id,
        activation_id=activation.id,
        now_utc=now_utc,
        cache=cache,
    )
    return participation


async def verify_participation(
    session: AsyncSession,
    *,
    participation_id: UUID,
    verification_method: str = DEFAULT_VERIFICATION_METHOD,
    now_utc: datetime | None = None,
    cache: TTLCache | None = None,
) -> SamplingParticipation:
    now_utc = now_utc or datetime.now(timezone.utc)

    participation = await SamplingParticipationsRepo.get_by_id_for_update(session, participation_id)
    if participation is None:
        raise SamplingParticipationNotFoundError(MSG_PARTICIPATION_NOT_FOUND)

    was_verified = participation.verified
    participation.verified = True
    participation.verified_at = now_utc
    participation.verification_method = verification_method
    participation.updated_at = now_utc
    await session.flush()
    logger.info(
        "sampling_participation_verified",
        participation_id=str(participation.id),
        activation_id=str(participation.activation_id),
        verification_method=verification_method,
        reverified=was_verified,
    )

    activation = await SamplingActivationsRepo.get_by_id(session, participation.activation_id)
    if activation is not None:
        await check_graduation_triggers(
            session,
            advertiser_id=activation.advertiser_id,
            activation_id=activation.id,
            now_utc=now_utc,
            cache=cache,
        )
    return participation


async def record_redemption(
    session: AsyncSession,
    *,
    participation_id: UUID,
    redemption_value: Decimal | int | float = 0,
    now_utc: datetime | None = None,
    cache: TTLCache | None = None,
) -> SamplingParticipation:
    now_utc = now_utc or datetime.now(timezone.utc)

    participation = await SamplingParticipationsRepo.get_by_id_for_update(session, participation_id)
    if participation is None:
        raise SamplingParticipationNotFoundError(MSG_PARTICIPATION_NOT_FOUND)

    activation = await SamplingActivationsRepo.get_by_id_for_update(
        session, participation.activation_id
    )
    if activation is None:
        raise SamplingActivationNotFoundError(MSG_ACTIVATION_NOT_ACTIVE)

    if participation.redeemed:
        logger.info(
            "sampling_redemption_replayed",
            participation_id=str(participation.id),
            activation_id=str(activation.id),
        )
        return participation

    if activation.current_redemptions >= activation.max_redemptions:
        raise SamplingRedemptionLimitError(MSG_REDEMPTION_LIMIT_REACHED)

    participation.redeemed = True
    participation.redeemed_at = now_utc
    participation.redemption_value = Decimal(str(redemption_value))
    participation.updated_at = now_utc

    activation.current_redemptions += 1
    activation.updated_at = now_utc
    if (
        activation.current_redemptions >= activation.max_redemptions
        and activation.status == ACTIVATION_STATUS_ACTIVE
    ):
        activation.status = ACTIVATION_STATUS_COMPLETED
    await session.flush()

    logger.info(
        "sampling_redemption_recorded",
        participation_id=str(participation.id),
        activation_id=str(activation.id),
        current_redemptions=activation.current_redemptions,
        max_redemptions=activation.max_redemptions,
    )

    await check_graduation_triggers(
        session,
        advertiser_id=activation.advertiser_id,
        activation_id=activation.id,
        now_utc=now_utc,
        cache=cache,
    )
    return participation
