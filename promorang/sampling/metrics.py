from __future__ import annotations

import math
from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.db.repo.sampling_activations_repo import SamplingActivationsRepo
from promorang.db.repo.sampling_participations_repo import SamplingParticipationsRepo
from promorang.sampling.constants import SURFACE_FLAG_COLUMNS
from promorang.sampling.graduation import redemption_rate
from promorang.sampling.types import SamplingMetrics

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400


def days_remaining(expires_at: datetime, now_utc: datetime) -> int:
    seconds_left = (expires_at - now_utc).total_seconds()
    if seconds_left <= 0:
        return 0
    return math.ceil(seconds_left / SECONDS_PER_DAY)


async def get_sampling_metrics(
    session: AsyncSession,
    advertiser_id: str,
    *,
    now_utc: datetime | None = None,
) -> SamplingMetrics | None:
    now_utc = now_utc or datetime.now(timezone.utc)
    try:
        async with session.begin_nested():
            activation = await SamplingActivationsRepo.get_latest_for_advertiser(
                session, advertiser_id
            )
            if activation is None:
                return None
            summary = await SamplingParticipationsRepo.summarize_for_activation(
                session, activation.id
            )
    except SQLAlchemyError as exc:
        logger.warning(
            "sampling_metrics_read_failed",
            advertiser_id=advertiser_id,
            error_type=type(exc).__name__,
        )
        return None

    entry_user_ratio = (
        summary.entry_user_participants / summary.total_participations
        if summary.total_participations > 0
        else 0.0
    )
    return SamplingMetrics(
        activation_id=activation.id,
        advertiser_id=activation.advertiser_id,
        name=activation.name,
        description=activation.description,
        value_type=activation.value_type,
        value_amount=activation.value_amount,
        value_unit=activation.value_unit,
        status=activation.status,
        starts_at=activation.starts_at,
        expires_at=activation.expires_at,
        current_redemptions=activation.current_redemptions,
        max_redemptions=activation.max_redemptions,
        redemption_rate=redemption_rate(activation),
        total_participations=summary.total_participations,
        unique_participants=summary.unique_participants,
        verified_actions=summary.verified_actions,
        redeemed_participations=summary.redeemed_participations,
        entry_user_participants=summary.entry_user_participants,
        entry_user_ratio=entry_user_ratio,
        days_remaining=days_remaining(activation.expires_at, now_utc),
        graduation_triggered=activation.graduation_triggered,
        graduation_reason=activation.graduation_reason,
        graduation_triggered_at=activation.graduation_triggered_at,
        surfaces=[
            surface
            for surface, flag_column in SURFACE_FLAG_COLUMNS.items()
            if getattr(activation, flag_column)
        ],
    )
