from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from promorang.db.repo.sampling_activations_repo import SamplingActivationsRepo
from promorang.sampling.constants import SURFACE_FLAG_COLUMNS
from promorang.sampling.types import SurfaceActivation

logger = structlog.get_logger(__name__)


async def get_active_for_surface(
    session: AsyncSession,
    surface: str,
    *,
    now_utc: datetime | None = None,
) -> list[SurfaceActivation]:
    flag_column = SURFACE_FLAG_COLUMNS.get(surface)
    if flag_column is None:
        return []

    now_utc = now_utc or datetime.now(timezone.utc)
    try:
        async with session.begin_nested():
            rows = await SamplingActivationsRepo.list_active_for_surface(
                session,
                flag_column=flag_column,
                now_utc=now_utc,
            )
    except SQLAlchemyError as exc:
        logger.warning(
            "sampling_surface_query_failed",
            surface=surface,
            error_type=type(exc).__name__,
        )
        return []

    return [
        SurfaceActivation(
            activation=activation,
            company_name=company_name,
            company_website=company_website,
        )
        for activation, company_name, company_website in rows
    ]
