"""Engine and session configuration for the subscriptions backend."""

from __future__ import annotations

import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

DEFAULT_SQLITE_PATH = Path(__file__).resolve().parent.parent / "subscriptions.db"

DATABASE_URL_ENV = "DATABASE_URL"
REQUIRE_POSTGRES_ENV = "REQUIRE_POSTGRES"


@dataclass(frozen=True)
class PoolSettings:
    """Connection pool options applied to server databases."""

    size: int = 5
    max_overflow: int = 10
    timeout: int = 30
    recycle: int = 1800
    connect_timeout: int = 10

    @classmethod
    def from_env(cls) -> "PoolSettings":
        return cls(
            size=read_int_env("DATABASE_POOL_SIZE", cls.size),
            max_overflow=read_int_env("DATABASE_MAX_OVERFLOW", cls.max_overflow),
            timeout=read_int_env("DATABASE_POOL_TIMEOUT", cls.timeout),
            recycle=read_int_env("DATABASE_POOL_RECYCLE", cls.recycle),
            connect_timeout=read_int_env("DATABASE_CONNECT_TIMEOUT", cls.connect_timeout),
        )


def read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return value


def read_bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def resolve_database_url(raw_url: str | None) -> str:
    """Return the configured URL, falling back to a local SQLite file."""

    require_postgres = read_bool_env(REQUIRE_POSTGRES_ENV, False)
    if not raw_url:
        if require_postgres:
            raise RuntimeError(
                f"{DATABASE_URL_ENV} must point to PostgreSQL when {REQUIRE_POSTGRES_ENV}=1"
            )
        DEFAULT_SQLITE_PATH.parent.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{DEFAULT_SQLITE_PATH.as_posix()}"

    url = make_url(raw_url)
    is_sqlite = url.drivername.startswith("sqlite")
    if is_sqlite and require_postgres:
        raise RuntimeError(f"SQLite is not allowed when {REQUIRE_POSTGRES_ENV}=1")
    if is_sqlite and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return url.render_as_string(hide_password=False)


def build_engine_kwargs(url: str, pool: PoolSettings | None = None) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}

    pool = pool or PoolSettings.from_env()
    return {
        "pool_pre_ping": True,
        "pool_size": pool.size,
        "max_overflow": pool.max_overflow,
        "pool_timeout": pool.timeout,
        "pool_recycle": pool.recycle,
        "connect_args": {"connect_timeout": pool.connect_timeout},
    }


SQLALCHEMY_DATABASE_URL = resolve_database_url(os.getenv(DATABASE_URL_ENV))

engine = create_engine(SQLALCHEMY_DATABASE_URL, **build_engine_kwargs(SQLALCHEMY_DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding a session that is always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Transactional scope for scripts running outside of request handling."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
