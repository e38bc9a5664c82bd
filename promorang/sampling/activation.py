from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.core.cache import TTLCache
from promorang.db.models.sampling_activations import SamplingActivation
from promorang.db.repo.sampling_activations_repo import SamplingActivationsRepo
from promorang.sampling.config import load_limits
from promorang.sampling.constants import (
    DEFAULT_DURATION_DAYS,
    DEFAULT_MAX_REDEMPTIONS,
    DEFAULT_VALUE_UNIT,
    INELIGIBLE_STATE_MESSAGES,
    MSG_ELIGIBILITY_UNKNOWN,
    MSG_SAMPLING_USED,
    MSG_STATE_CHANGED,
    REASON_ACTIVATION_CREATED,
    STATE_NEW,
    STATE_SAMPLING,
    VALUE_TYPE_CASH_PRIZE,
    VALUE_TYPE_PRODUCT,
    VALUE_TYPE_VOUCHER,
    VALUE_TYPES,
)
from promorang.sampling.errors import (
    MerchantStateConflictError,
    SamplingNotEligibleError,
    SamplingValidationError,
)
from promorang.sampling.state import get_merchant_state, transition_merchant_state
from promorang.sampling.types import ActivationDraft, Eligibility, SamplingLimits

logger = structlog.get_logger(__name__)


async def check_eligibility(
    session: AsyncSession,
    advertiser_id: str,
    *,
    cache: TTLCache | None = None,
) -> Eligibility:
    view = await get_merchant_state(session, advertiser_id)
    if view.state != STATE_NEW:
        return Eligibility(allowed=False, reason=INELIGIBLE_STATE_MESSAGES[view.state])

    limits = await load_limits(session, cache=cache)
    try:
        async with session.begin_nested():
            activations_count = await SamplingActivationsRepo.count_for_advertiser(
                session, advertiser_id
            )
    except SQLAlchemyError as exc:
        logger.warning(
            "sampling_eligibility_count_failed",
            advertiser_id=advertiser_id,
            error_type=type(exc).__name__,
        )
        return Eligibility(allowed=False, reason=MSG_ELIGIBILITY_UNKNOWN)

    if activations_count >= limits.max_activations_per_merchant:
        return Eligibility(allowed=False, reason=MSG_SAMPLING_USED)
    return Eligibility(allowed=True)


def validate_draft(draft: ActivationDraft, limits: SamplingLimits) -> tuple[int, int]:
    """Returns the effective (duration_days, max_redemptions) or raises SamplingValidationError."""
    if draft.value_type not in VALUE_TYPES:
        raise SamplingValidationError(f"Invalid value_type: {draft.value_type}")

    duration_days = draft.duration_days or DEFAULT_DURATION_DAYS
    if not limits.min_duration_days <= duration_days <= limits.max_duration_days:
        raise SamplingValidationError(
            f"Duration must be between {limits.min_duration_days} "
            f"and {limits.max_duration_days} days"
        )

    max_redemptions = draft.max_redemptions or DEFAULT_MAX_REDEMPTIONS
    if draft.value_type == VALUE_TYPE_PRODUCT and max_redemptions > limits.max_product_units:
        raise SamplingValidationError(
            f"Maximum {limits.max_product_units} product units allowed for sampling"
        )
    if draft.value_type == VALUE_TYPE_VOUCHER and max_redemptions > limits.max_voucher_redemptions:
        raise SamplingValidationError(
            f"Maximum {limits.max_voucher_redemptions} voucher redemptions allowed for sampling"
        )
    if (
        draft.value_type == VALUE_TYPE_CASH_PRIZE
        and Decimal(draft.value_amount) > limits.max_cash_prize_usd
    ):
        raise SamplingValidationError(
            f"Maximum cash prize of ${_format_amount(limits.max_cash_prize_usd)} "
            "allowed for sampling"
        )
    return duration_days, max_redemptions


def _format_amount(amount: Decimal) -> str:
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal(1)))
    return str(amount.normalize())


async def create_activation(
    session: AsyncSession,
    advertiser_id: str,
    draft: ActivationDraft,
    *,
    now_utc: datetime | None = None,
    cache: TTLCache | None = None,
) -> SamplingActivation:
    now_utc = now_utc or datetime.now(timezone.utc)

    eligibility = await check_eligibility(session, advertiser_id, cache=cache)
    if not eligibility.allowed:
        raise SamplingNotEligibleError(eligibility.reason or MSG_ELIGIBILITY_UNKNOWN)

    limits = await load_limits(session, cache=cache)
    duration_days, max_redemptions = validate_draft(draft, limits)

    activation = await SamplingActivationsRepo.create(
        session,
        advertiser_id=advertiser_id,
        name=draft.name,
        description=draft.description,
        value_type=draft.value_type,
        value_amount=Decimal(draft.value_amount),
        value_unit=draft.value_unit or DEFAULT_VALUE_UNIT,
        max_redemptions=max_redemptions,
        duration_days=duration_days,
        starts_at=now_utc,
        expires_at=now_utc + timedelta(days=duration_days),
        include_in_deals=draft.include_in_deals is not False,
        include_in_events=bool(draft.include_in_events),
        include_in_post_proof=bool(draft.include_in_post_proof),
        now_utc=now_utc,
    )

    transitioned = await transition_merchant_state(
        session,
        advertiser_id=advertiser_id,
        from_state=STATE_NEW,
        to_state=STATE_SAMPLING,
        reason=REASON_ACTIVATION_CREATED,
        metadata={"activation_id": str(activation.id)},
        now_utc=now_utc,
    )
    if not transitioned:
        raise MerchantStateConflictError(MSG_STATE_CHANGED)

    logger.info(
        "sampling_activation_created",
        advertiser_id=advertiser_id,
        activation_id=str(activation.id),
        value_type=activation.value_type,
        max_redemptions=max_redemptions,
        duration_days=duration_days,
    )
    return activation
