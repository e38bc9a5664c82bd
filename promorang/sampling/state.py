from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.db.repo.merchant_profiles_repo import MerchantProfilesRepo
from promorang.db.repo.merchant_transitions_repo import MerchantTransitionsRepo
from promorang.sampling.constants import ALLOWED_TRANSITIONS, MERCHANT_STATES, STATE_NEW
from promorang.sampling.errors import InvalidMerchantTransitionError
from promorang.sampling.types import MerchantStateView

logger = structlog.get_logger(__name__)


async def get_merchant_state(session: AsyncSession, advertiser_id: str | None) -> MerchantStateView:
    if not advertiser_id:
        return MerchantStateView(state=STATE_NEW)

    try:
        async with session.begin_nested():
            profile = await MerchantProfilesRepo.get_by_advertiser_id(session, advertiser_id)
    except SQLAlchemyError as exc:
        logger.warning(
            "merchant_state_read_failed",
            advertiser_id=advertiser_id,
            error_type=type(exc).__name__,
        )
        return MerchantStateView(state=STATE_NEW)

    if profile is None:
        return MerchantStateView(state=STATE_NEW)
    state = profile.merchant_state if profile.merchant_state in MERCHANT_STATES else STATE_NEW
    return MerchantStateView(state=state, profile=profile)


async def transition_merchant_state(
    session: AsyncSession,
    *,
    advertiser_id: str,
    from_state: str,
    to_state: str,
    reason: str,
    metadata: dict[str, object] | None = None,
    now_utc: datetime | None = None,
) -> bool:
    if (from_state, to_state) not in ALLOWED_TRANSITIONS:
        raise InvalidMerchantTransitionError(f"{from_state} -> {to_state}")

    now_utc = now_utc or datetime.now(timezone.utc)
    applied = await MerchantProfilesRepo.transition_state(
        session,
        advertiser_id=advertiser_id,
        from_state=from_state,
        to_state=to_state,
        now_utc=now_utc,
    )
    if not applied:
        logger.warning(
            "merchant_state_transition_conflict",
            advertiser_id=advertiser_id,
            from_state=from_state,
            to_state=to_state,
            trigger_reason=reason,
        )
        return False

    await MerchantTransitionsRepo.create(
        session,
        advertiser_id=advertiser_id,
        from_state=from_state,
        to_state=to_state,
        trigger_reason=reason,
        trigger_metadata=metadata or {},
        created_at=now_utc,
    )
    logger.info(
        "merchant_state_transitioned",
        advertiser_id=advertiser_id,
        from_state=from_state,
        to_state=to_state,
        trigger_reason=reason,
    )
    return True
