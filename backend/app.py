"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.v1 import api_router
from core import settings
from core.errors import install_exception_handlers
from core.logging import configure_logging
from db.session import async_engine
from services import RateLimitMiddleware, get_rate_limiter

logger = logging.getLogger(__name__)
HEALTH_PATH = "/health"


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting sessions backend (env=%s)", settings.app_env)
    yield
    await async_engine.dispose()


def create_app() -> FastAPI:
    configure_logging()

    application = FastAPI(title="Sessions API", lifespan=lifespan)
    application.add_middleware(
        RateLimitMiddleware,
        limiter_factory=get_rate_limiter,
        exempt_paths={HEALTH_PATH},
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(application)
    application.include_router(api_router)

    @application.get(HEALTH_PATH, tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return application
