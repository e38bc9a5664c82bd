from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from promorang.db.models.merchant_state_transitions import MerchantStateTransition
from promorang.db.models.sampling_activations import SamplingActivation
from promorang.db.session import SessionLocal
from promorang.sampling.activation import create_activation
from promorang.sampling.errors import SamplingError
from promorang.sampling.participation import record_participation, record_redemption
from promorang.sampling.types import ActivationDraft

pytestmark = pytest.mark.integration

UTC = timezone.utc


async def _try_create(advertiser_id: str, now_utc: datetime) -> bool:
    try:
        async with SessionLocal.begin() as session:
            await create_activation(
                session,
                advertiser_id,
                ActivationDraft(name="Race", value_type="coupon", value_amount=Decimal("1")),
                now_utc=now_utc,
            )
    except SamplingError:
        return False
    return True


async def _try_redeem(participation_id, now_utc: datetime) -> bool:
    try:
        async with SessionLocal.begin() as session:
            await record_redemption(session, participation_id=participation_id, now_utc=now_utc)
    except SamplingError:
        return False
    return True


@pytest.mark.asyncio
async def test_concurrent_activation_requests_create_one_activation() -> None:
    now_utc = datetime.now(UTC)

    results = await asyncio.gather(*(_try_create("adv-race", now_utc) for _ in range(4)))

    assert results.count(True) == 1
    async with SessionLocal.begin() as session:
        activations = await session.scalar(
            select(func.count(SamplingActivation.id)).where(
                SamplingActivation.advertiser_id == "adv-race"
            )
        )
        transitions = await session.scalar(
            select(func.count(MerchantStateTransition.id)).where(
                MerchantStateTransition.advertiser_id == "adv-race"
            )
        )
    assert activations == 1
    assert transitions == 1


@pytest.mark.asyncio
async def test_concurrent_redemptions_never_exceed_cap() -> None:
    now_utc = datetime.now(UTC)
    async with SessionLocal.begin() as session:
        activation = await create_activation(
            session,
            "adv-cap",
            ActivationDraft(
                name="Cap",
                value_type="voucher",
                value_amount=Decimal("2"),
                max_redemptions=3,
            ),
            now_utc=now_utc,
        )
    participation_ids = []
    for index in range(6):
        async with SessionLocal.begin() as session:
            participation = await record_participation(
                session,
                activation_id=activation.id,
                user_id=f"user-{index}",
                action_type="claim",
                now_utc=now_utc,
            )
            participation_ids.append(participation.id)

    results = await asyncio.gather(*(_try_redeem(item, now_utc) for item in participation_ids))

    assert results.count(True) == 3
    async with SessionLocal.begin() as session:
        stored = await session.get(SamplingActivation, activation.id)
    assert stored is not None
    assert stored.current_redemptions == 3
    assert stored.status == "completed"
    assert stored.graduation_reason == "redemption_rate_threshold"
