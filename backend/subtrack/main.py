"""Expose the subscriptions backend FastAPI app."""

import logging
import os
import re
from contextlib import asynccontextmanager
from typing import Iterable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import read_bool_env
from .migrations import run_database_migrations
from .routers import subscriptions_router

LOGGER = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
ALLOWED_ORIGINS_ENV = "BACKEND_ALLOWED_ORIGINS"
RUN_MIGRATIONS_ENV = "RUN_DATABASE_MIGRATIONS"


def _normalize_origin(origin: str) -> str | None:
    stripped = origin.strip()
    if not stripped:
        return None
    return stripped.rstrip("/")


def _split_raw_origins(raw_value: str) -> list[str]:
    """Split a raw origin string on commas and whitespace."""

    return [origin for origin in re.split(r"[\s,]+", raw_value) if origin]


def _read_allowed_origins(raw_origins: Iterable[str]) -> list[str]:
    normalized = {_normalize_origin(origin) for origin in raw_origins}
    return sorted({origin for origin in normalized if origin})


def _load_allowed_origins_from_env() -> list[str]:
    raw_value = os.getenv(ALLOWED_ORIGINS_ENV)
    if not raw_value:
        return []
    return _read_allowed_origins(_split_raw_origins(raw_value))


def ensure_database_is_ready() -> None:
    """Apply pending database migrations unless disabled via the environment."""

    if not read_bool_env(RUN_MIGRATIONS_ENV, True):
        LOGGER.info("Startup migrations disabled via %s", RUN_MIGRATIONS_ENV)
        return
    LOGGER.info("Ensuring database schema is up to date before serving requests")
    run_database_migrations()


@asynccontextmanager
async def lifespan(_: FastAPI):
    ensure_database_is_ready()
    yield


def create_app() -> FastAPI:
    application = FastAPI(title="Subscriptions API", version="1.0", lifespan=lifespan)

    origins = _load_allowed_origins_from_env()
    if origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    application.include_router(
        subscriptions_router,
        prefix=f"{API_PREFIX}/subs",
        tags=["subscriptions"],
    )

    @application.get("/health", tags=["health"])
    def read_health() -> dict[str, str]:
        """Return a simple health check response."""
        return {"message": "service good"}

    return application


app = create_app()
