from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar

import structlog

from promorang.db.session import dispose_engine

T = TypeVar("T")

logger = structlog.get_logger(__name__)


async def _run_job(awaitable: Awaitable[T], *, job_name: str) -> T:
    # asyncpg connections are bound to the loop that opened them, and every job gets a new loop.
    await dispose_engine()
    started = time.monotonic()
    with structlog.contextvars.bound_contextvars(job=job_name):
        try:
            return await awaitable
        finally:
            await dispose_engine()
            logger.info("worker_job_finished", duration_ms=int((time.monotonic() - started) * 1000))


def run_async_job(awaitable: Awaitable[T], *, job_name: str) -> T:
    return asyncio.run(_run_job(awaitable, job_name=job_name))
