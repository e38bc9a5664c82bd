from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.db.models.sampling_config import SamplingConfigEntry


class SamplingConfigRepo:
    @staticmethod
    async def get_value(session: AsyncSession, config_key: str) -> dict[str, object] | None:
        stmt = select(SamplingConfigEntry.config_value).where(
            SamplingConfigEntry.config_key == config_key
        )
        result = await session.execute(stmt)
        value = result.scalar_one_or_none()
        return value if isinstance(value, dict) else None
