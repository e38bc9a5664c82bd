from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.core.cache import TTLCache
from promorang.core.config import get_settings
from promorang.db.repo.sampling_config_repo import SamplingConfigRepo
from promorang.sampling.constants import (
    CONFIG_KEY_GRADUATION_TRIGGERS,
    CONFIG_KEY_LIMITS,
    DEFAULT_CONFIG,
)
from promorang.sampling.types import GraduationThresholds, SamplingLimits

logger = structlog.get_logger(__name__)


def _config_cache_key(config_key: str) -> str:
    return f"sampling:config:{config_key}"


async def _read_config(session: AsyncSession, config_key: str) -> dict[str, object]:
    defaults = DEFAULT_CONFIG[config_key]
    # SAVEPOINT keeps the caller's transaction usable if the read fails.
    async with session.begin_nested():
        stored = await SamplingConfigRepo.get_value(session, config_key)
    if stored is None:
        return dict(defaults)
    return {**defaults, **{key: value for key, value in stored.items() if value is not None}}


async def get_sampling_config(
    session: AsyncSession,
    config_key: str,
    *,
    cache: TTLCache | None = None,
) -> dict[str, object]:
    if config_key not in DEFAULT_CONFIG:
        return {}

    try:
        if cache is None:
            return await _read_config(session, config_key)
        return await cache.get_or_compute(
            _config_cache_key(config_key),
            ttl_seconds=get_settings().sampling_config_cache_ttl_seconds,
            compute=lambda: _read_config(session, config_key),
        )
    except SQLAlchemyError as exc:
        logger.warning(
            "sampling_config_read_failed",
            config_key=config_key,
            error_type=type(exc).__name__,
        )
        return dict(DEFAULT_CONFIG[config_key])


async def load_limits(session: AsyncSession, *, cache: TTLCache | None = None) -> SamplingLimits:
    raw = await get_sampling_config(session, CONFIG_KEY_LIMITS, cache=cache)
    return SamplingLimits(
        max_activations_per_merchant=int(raw["max_activations_per_merchant"]),
        min_duration_days=int(raw["min_duration_days"]),
        max_duration_days=int(raw["max_duration_days"]),
        max_product_units=int(raw["max_product_units"]),
        max_voucher_redemptions=int(raw["max_voucher_redemptions"]),
        max_cash_prize_usd=Decimal(str(raw["max_cash_prize_usd"])),
    )


async def load_graduation_thresholds(
    session: AsyncSession,
    *,
    cache: TTLCache | None = None,
) -> GraduationThresholds:
    raw = await get_sampling_config(session, CONFIG_KEY_GRADUATION_TRIGGERS, cache=cache)
    return GraduationThresholds(
        redemption_rate_threshold=float(raw["redemption_rate_threshold"]),
        verified_actions_threshold=int(raw["verified_actions_threshold"]),
        entry_user_ratio_threshold=float(raw["entry_user_ratio_threshold"]),
    )
