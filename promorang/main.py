from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from promorang.api.routes.health import router as health_router
from promorang.api.routes.merchant_sampling import router as merchant_sampling_router
from promorang.api.routes.merchant_sampling_helpers import MerchantSamplingApiError
from promorang.core.cache import build_cache
from promorang.core.config import get_settings
from promorang.core.logging import configure_logging
from promorang.db.session import dispose_engine

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.cache = build_cache(get_settings().redis_url)
    try:
        yield
    finally:
        await app.state.cache.close()
        await dispose_engine()


async def _handle_api_error(request: Request, exc: MerchantSamplingApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.as_content())


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted(
        {".".join(str(part) for part in error.get("loc", ())[1:]) for error in exc.errors()}
        - {""}
    )
    logger.info("request_validation_failed", path=request.url.path, fields=fields)
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Invalid request",
            "fields": fields,
        },
    )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.app_env != "dev")

    app = FastAPI(
        title="Promorang Merchant Sampling API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.add_exception_handler(MerchantSamplingApiError, _handle_api_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.include_router(health_router)
    app.include_router(merchant_sampling_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "promorang.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
