from celery import Celery
from celery.signals import worker_process_init

from promorang.core.config import get_settings
from promorang.core.logging import configure_logging

SAMPLING_QUEUE = "q_sampling"

settings = get_settings()

celery_app = Celery(
    "promorang",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["promorang.workers.tasks.sampling_maintenance"],
)

celery_app.conf.update(
    task_default_queue=SAMPLING_QUEUE,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    beat_schedule={},
)


@worker_process_init.connect
def _configure_worker_logging(**_: object) -> None:
    configure_logging(settings.log_level, json_output=settings.app_env != "dev")
