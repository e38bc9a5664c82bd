from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.core.cache import TTLCache
from promorang.db.models.sampling_activations import SamplingActivation
from promorang.db.repo.sampling_activations_repo import SamplingActivationsRepo
from promorang.db.repo.sampling_participations_repo import SamplingParticipationsRepo
from promorang.sampling.config import load_graduation_thresholds
from promorang.sampling.constants import (
    ACTIVATION_STATUS_ACTIVE,
    ACTIVATION_STATUS_COMPLETED,
    GRADUATION_REQUEST_TYPES,
    GRADUATION_TRIGGER_ORDER,
    MERCHANT_REQUEST_REASON_PREFIX,
    MSG_NO_ACTIVE_ACTIVATION,
    MSG_NOT_SAMPLING,
    MSG_STATE_CHANGED,
    MSG_UPGRADE_REQUIRES_GRADUATED,
    REASON_UPGRADED_TO_PAID,
    STATE_GRADUATED,
    STATE_PAID,
    STATE_SAMPLING,
    TRG_REDEMPTION_RATE,
    TRG_VERIFIED_ACTIONS,
    TRG_WINDOW_EXPIRED,
)
from promorang.sampling.errors import (
    MerchantStateConflictError,
    SamplingActivationInactiveError,
    SamplingValidationError,
)
from promorang.sampling.state import get_merchant_state, transition_merchant_state
from promorang.sampling.types import GraduationMetrics, GraduationResult, GraduationThresholds

logger = structlog.get_logger(__name__)

TriggerPredicate = Callable[[GraduationMetrics, GraduationThresholds], bool]

GRADUATION_TRIGGERS: dict[str, TriggerPredicate] = {
    TRG_WINDOW_EXPIRED: lambda metrics, _: metrics.window_expired,
    TRG_VERIFIED_ACTIONS: lambda metrics, thresholds: (
        metrics.verified_actions >= thresholds.verified_actions_threshold
    ),
    TRG_REDEMPTION_RATE: lambda metrics, thresholds: (
        metrics.redemption_rate >= thresholds.redemption_rate_threshold
    ),
}


def redemption_rate(activation: SamplingActivation) -> float:
    if activation.max_redemptions <= 0:
        return 0.0
    return activation.current_redemptions / activation.max_redemptions


def resolve_graduation_trigger(
    metrics: GraduationMetrics,
    thresholds: GraduationThresholds,
) -> str | None:
    for trigger_name in GRADUATION_TRIGGER_ORDER:
        if GRADUATION_TRIGGERS[trigger_name](metrics, thresholds):
            return trigger_name
    return None


async def _collect_metrics(
    session: AsyncSession,
    *,
    activation: SamplingActivation,
    now_utc: datetime,
) -> GraduationMetrics:
    summary = await SamplingParticipationsRepo.summarize_for_activation(session, activation.id)
    entry_user_ratio = (
        summary.entry_user_participants / summary.total_participations
        if summary.total_participations > 0
        else 0.0
    )
    return GraduationMetrics(
        redemption_rate=redemption_rate(activation),
        verified_actions=summary.verified_actions,
        entry_user_participants=summary.entry_user_participants,
        entry_user_ratio=entry_user_ratio,
        window_expired=activation.expires_at < now_utc,
    )


def _mark_graduated(activation: SamplingActivation, *, reason: str, now_utc: datetime) -> None:
    activation.graduation_triggered = True
    activation.graduation_reason = reason
    activation.graduation_triggered_at = now_utc
    if activation.status == ACTIVATION_STATUS_ACTIVE:
        activation.status = ACTIVATION_STATUS_COMPLETED
    activation.updated_at = now_utc


async def check_graduation_triggers(
    session: AsyncSession,
    *,
    advertiser_id: str,
    activation_id: UUID,
    now_utc: datetime | None = None,
    cache: TTLCache | None = None,
) -> GraduationResult:
    now_utc = now_utc or datetime.now(timezone.utc)
    # Pending participation/counter changes must be visible to the aggregate queries below.
    await session.flush()

    view = await get_merchant_state(session, advertiser_id)
    if view.state != STATE_SAMPLING:
        return GraduationResult(graduated=False)

    activation = await SamplingActivationsRepo.get_by_id_for_update(session, activation_id)
    if activation is None:
        return GraduationResult(graduated=False)
    if activation.graduation_triggered:
        return GraduationResult(graduated=True, reason=activation.graduation_reason)

    thresholds = await load_graduation_thresholds(session, cache=cache)
    metrics = await _collect_metrics(session, activation=activation, now_utc=now_utc)
    reason = resolve_graduation_trigger(metrics, thresholds)
    if reason is None:
        return GraduationResult(graduated=False)

    _mark_graduated(activation, reason=reason, now_utc=now_utc)
    await session.flush()

    transitioned = await transition_merchant_state(
        session,
        advertiser_id=advertiser_id,
        from_state=STATE_SAMPLING,
        to_state=STATE_GRADUATED,
        reason=reason,
        metadata={
            "activation_id": str(activation.id),
            "redemption_rate": metrics.redemption_rate,
            "verified_actions": metrics.verified_actions,
            "entry_user_participants": metrics.entry_user_participants,
            "entry_user_ratio": metrics.entry_user_ratio,
        },
        now_utc=now_utc,
    )
    if not transitioned:
        raise MerchantStateConflictError(MSG_STATE_CHANGED)

    logger.info(
        "sampling_graduation_triggered",
        advertiser_id=advertiser_id,
        activation_id=str(activation.id),
        reason=reason,
        redemption_rate=metrics.redemption_rate,
        verified_actions=metrics.verified_actions,
    )
    return GraduationResult(graduated=True, reason=reason)


async def request_graduation(
    session: AsyncSession,
    *,
    advertiser_id: str,
    request_type: str,
    now_utc: datetime | None = None,
) -> GraduationResult:
    if request_type not in GRADUATION_REQUEST_TYPES:
        raise SamplingValidationError("Invalid request_type")
    now_utc = now_utc or datetime.now(timezone.utc)

    view = await get_merchant_state(session, advertiser_id)
    if view.state != STATE_SAMPLING:
        raise MerchantStateConflictError(MSG_NOT_SAMPLING)

    activation = await SamplingActivationsRepo.get_active_for_advertiser_for_update(
        session, advertiser_id
    )
    if activation is None:
        raise SamplingActivationInactiveError(MSG_NO_ACTIVE_ACTIVATION)

    reason = f"{MERCHANT_REQUEST_REASON_PREFIX}{request_type}"
    _mark_graduated(activation, reason=reason, now_utc=now_utc)
    await session.flush()

    transitioned = await transition_merchant_state(
        session,
        advertiser_id=advertiser_id,
        from_state=STATE_SAMPLING,
        to_state=STATE_GRADUATED,
        reason=reason,
        metadata={"activation_id": str(activation.id), "request_type": request_type},
        now_utc=now_utc,
    )
    if not transitioned:
        raise MerchantStateConflictError(MSG_STATE_CHANGED)

    logger.info(
        "sampling_graduation_requested",
        advertiser_id=advertiser_id,
        activation_id=str(activation.id),
        request_type=request_type,
    )
    return GraduationResult(graduated=True, reason=reason)


async def upgrade_to_paid(
    session: AsyncSession,
    *,
    advertiser_id: str,
    plan_details: dict[str, object] | None = None,
    now_utc: datetime | None = None,
) -> None:
    view = await get_merchant_state(session, advertiser_id)
    if view.state != STATE_GRADUATED:
        raise MerchantStateConflictError(MSG_UPGRADE_REQUIRES_GRADUATED)

    transitioned = await transition_merchant_state(
        session,
        advertiser_id=advertiser_id,
        from_state=STATE_GRADUATED,
        to_state=STATE_PAID,
        reason=REASON_UPGRADED_TO_PAID,
        metadata=dict(plan_details or {}),
        now_utc=now_utc,
    )
    if not transitioned:
        raise MerchantStateConflictError(MSG_STATE_CHANGED)

    logger.info(
        "merchant_upgraded_to_paid",
        advertiser_id=advertiser_id,
        plan_id=(plan_details or {}).get("plan_id"),
    )
