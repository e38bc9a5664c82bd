from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from redis.asyncio import Redis
from sqlalchemy import text

from promorang.core.config import get_settings
from promorang.db.session import SessionLocal
from promorang.workers.celery_app import celery_app

router = APIRouter(tags=["health"])
logger = structlog.get_logger(__name__)

CheckFn = Callable[[], Awaitable[dict[str, Any]]]
HEALTHY_STATUSES = frozenset({"ok", "skipped"})


def _failed_check(
    check: str,
    exc: Exception | None = None,
    *,
    error: str | None = None,
) -> dict[str, str]:
    # Raw exception text can carry DSNs and credentials; only the type is logged.
    if exc is not None:
        logger.warning("health_check_failed", check=check, error_type=type(exc).__name__)
    return {"status": "failed", "error": error or f"{check} unavailable"}


async def _check_database() -> dict[str, Any]:
    try:
        async with SessionLocal() as session:
            # Fails until the sampling migration has been applied.
            await session.execute(text("SELECT 1 FROM sampling_config LIMIT 1"))
        return {"status": "ok"}
    except Exception as exc:
        return _failed_check("database", exc)


async def _check_redis() -> dict[str, Any]:
    redis_url = get_settings().redis_url
    if not redis_url:
        return {"status": "skipped"}

    redis_client: Redis | None = None
    try:
        redis_client = Redis.from_url(redis_url)
        if await redis_client.ping() is not True:
            return _failed_check("redis", error="unexpected redis ping response")
        return {"status": "ok"}
    except Exception as exc:
        return _failed_check("redis", exc)
    finally:
        if redis_client is not None:
            await redis_client.aclose()


def _check_celery_worker_sync() -> dict[str, Any]:
    try:
        inspector = celery_app.control.inspect(timeout=1.0)
        if inspector is None:
            return _failed_check("celery", error="celery inspector is unavailable")
        replies = inspector.ping() or {}
    except Exception as exc:
        return _failed_check("celery", exc)

    if not replies:
        return _failed_check("celery", error="no celery workers responded to ping")
    return {"status": "ok", "workers": len(replies)}


async def _check_celery_worker() -> dict[str, Any]:
    return await asyncio.to_thread(_check_celery_worker_sync)


async def _run_checks(*, include_workers: bool) -> tuple[bool, dict[str, dict[str, Any]]]:
    checks: dict[str, CheckFn] = {"database": _check_database, "redis": _check_redis}
    if include_workers:
        # The expiry sweep is the only worker job; API traffic does not depend on it.
        checks["celery"] = _check_celery_worker

    results = await asyncio.gather(*(check() for check in checks.values()))
    payload = dict(zip(checks, results))
    return all(item.get("status") in HEALTHY_STATUSES for item in results), payload


def _checks_response(*, healthy: bool, label: str, checks: dict[str, dict[str, Any]]) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": label, "checks": checks},
    )


@router.get("/health")
async def health() -> JSONResponse:
    healthy, checks = await _run_checks(include_workers=True)
    return _checks_response(healthy=healthy, label="ok" if healthy else "degraded", checks=checks)


@router.get("/ready")
async def ready() -> JSONResponse:
    is_ready, checks = await _run_checks(include_workers=False)
    return _checks_response(healthy=is_ready, label="ready" if is_ready else "not_ready", checks=checks)


@router.get("/live")
async def live() -> dict[str, str]:
    return {"status": "live"}
