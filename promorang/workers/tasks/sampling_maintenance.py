from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError

from promorang.core.config import get_settings
from promorang.db.repo.sampling_activations_repo import SamplingActivationsRepo
from promorang.db.session import SessionLocal
from promorang.sampling.errors import SamplingError
from promorang.sampling.participation import expire_activation
from promorang.workers.asyncio_runner import run_async_job
from promorang.workers.celery_app import SAMPLING_QUEUE, celery_app

logger = structlog.get_logger(__name__)


async def run_sampling_expiry_sweep_async() -> dict[str, int]:
    now_utc = datetime.now(timezone.utc)
    async with SessionLocal.begin() as session:
        activation_ids = await SamplingActivationsRepo.list_expired_active_ids(
            session,
            now_utc=now_utc,
            limit=get_settings().sampling_expiry_sweep_batch_size,
        )

    graduated = 0
    failed = 0
    for activation_id in activation_ids:
        try:
            async with SessionLocal.begin() as session:
                graduation = await expire_activation(
                    session,
                    activation_id=activation_id,
                    now_utc=now_utc,
                )
        except (SamplingError, SQLAlchemyError) as exc:
            failed += 1
            logger.warning(
                "sampling_expiry_sweep_item_failed",
                activation_id=str(activation_id),
                error_type=type(exc).__name__,
            )
            continue
        if graduation.graduated:
            graduated += 1

    result = {
        "expired_activations": len(activation_ids) - failed,
        "graduated_merchants": graduated,
        "failed_activations": failed,
    }
    logger.info("sampling_expiry_sweep_finished", **result)
    return result


@celery_app.task(name="promorang.workers.tasks.sampling_maintenance.run_sampling_expiry_sweep")
def run_sampling_expiry_sweep() -> dict[str, int]:
    return run_async_job(
        run_sampling_expiry_sweep_async(),
        job_name="sampling_expiry_sweep",
    )


celery_app.conf.beat_schedule.update(
    {
        "sampling-expiry-sweep-every-10-minutes": {
            "task": "promorang.workers.tasks.sampling_maintenance.run_sampling_expiry_sweep",
            "schedule": 600.0,
            "options": {"queue": SAMPLING_QUEUE},
        },
    }
)
