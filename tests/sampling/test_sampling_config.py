from __future__ import annotations

from decimal import Decimal

import pytest

from promorang.core.cache import InMemoryTTLCache
from promorang.sampling.config import (
    get_sampling_config,
    load_graduation_thresholds,
    load_limits,
)
from promorang.sampling.constants import DEFAULT_GRADUATION_TRIGGERS, DEFAULT_LIMITS


@pytest.mark.asyncio
async def test_missing_config_row_returns_defaults(store, session) -> None:
    assert await get_sampling_config(session, "limits") == DEFAULT_LIMITS
    assert await get_sampling_config(session, "graduation_triggers") == DEFAULT_GRADUATION_TRIGGERS


@pytest.mark.asyncio
async def test_stored_values_override_defaults_key_by_key(store, session) -> None:
    store.config["limits"] = {"max_duration_days": 21}

    limits = await get_sampling_config(session, "limits")

    assert limits["max_duration_days"] == 21
    assert limits["min_duration_days"] == 7
    assert limits["max_voucher_redemptions"] == 20


@pytest.mark.asyncio
async def test_unknown_key_returns_empty_dict(store, session) -> None:
    assert await get_sampling_config(session, "does_not_exist") == {}
    assert store.config_reads == 0


@pytest.mark.asyncio
async def test_storage_failure_degrades_to_defaults(store, session) -> None:
    store.fail_config_reads = True

    assert await get_sampling_config(session, "limits") == DEFAULT_LIMITS


@pytest.mark.asyncio
async def test_cache_serves_repeated_reads(store, session) -> None:
    cache = InMemoryTTLCache()
    store.config["graduation_triggers"] = {"verified_actions_threshold": 5}

    first = await get_sampling_config(session, "graduation_triggers", cache=cache)
    second = await get_sampling_config(session, "graduation_triggers", cache=cache)

    assert first == second
    assert second["verified_actions_threshold"] == 5
    assert store.config_reads == 1


@pytest.mark.asyncio
async def test_typed_loaders_convert_values(store, session) -> None:
    store.config["limits"] = {"max_cash_prize_usd": 150}

    limits = await load_limits(session)
    thresholds = await load_graduation_thresholds(session)

    assert limits.max_cash_prize_usd == Decimal("150")
    assert limits.max_activations_per_merchant == 1
    assert thresholds.redemption_rate_threshold == pytest.approx(0.30)
    assert thresholds.verified_actions_threshold == 25
    assert thresholds.entry_user_ratio_threshold == pytest.approx(0.60)
