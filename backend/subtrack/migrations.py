"""Run Alembic migrations before the API starts serving requests."""

from __future__ import annotations

import errno
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, Sequence

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, inspect
from sqlalchemy.engine.reflection import Inspector

from .database import DATABASE_URL_ENV, SQLALCHEMY_DATABASE_URL

LOGGER = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent
LOCK_FILENAME = ".alembic-migration.lock"
LOCK_RETRY_DELAY = 0.25
LOCK_TIMEOUT_ENV = "ALEMBIC_MIGRATION_LOCK_TIMEOUT"
DEFAULT_LOCK_TIMEOUT = 30.0

if os.name == "posix":  # pragma: no cover - platform specific
    import fcntl
else:  # pragma: no cover - platform specific
    import msvcrt

RevisionSentinel = tuple[str, Callable[[Inspector], bool]]

# Newest first: the first matching check names the revision an unversioned
# database already corresponds to.
REVISION_SENTINELS: Sequence[RevisionSentinel] = (
    ("20251019_0001", lambda inspector: inspector.has_table("subscriptions")),
)


def _read_lock_timeout() -> float:
    raw = os.getenv(LOCK_TIMEOUT_ENV)
    if not raw:
        return DEFAULT_LOCK_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        LOGGER.warning(
            "Invalid %s=%s; falling back to %.1f seconds", LOCK_TIMEOUT_ENV, raw, DEFAULT_LOCK_TIMEOUT
        )
        return DEFAULT_LOCK_TIMEOUT
    if value <= 0:
        LOGGER.warning("%s must be positive; using %.1f seconds", LOCK_TIMEOUT_ENV, DEFAULT_LOCK_TIMEOUT)
        return DEFAULT_LOCK_TIMEOUT
    return value


def _is_lock_conflict(error: OSError) -> bool:
    if getattr(error, "errno", None) in {errno.EACCES, errno.EAGAIN, errno.EBUSY}:
        return True
    # Windows sharing (32) and lock (33) violations.
    return getattr(error, "winerror", None) in {32, 33}


def _try_lock(fileobj) -> None:
    if os.name == "posix":  # pragma: no cover - platform specific
        fcntl.flock(fileobj.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    else:  # pragma: no cover - platform specific
        msvcrt.locking(fileobj.fileno(), msvcrt.LK_NBLCK, 1)


def _unlock(fileobj) -> None:
    if os.name == "posix":  # pragma: no cover - platform specific
        fcntl.flock(fileobj.fileno(), fcntl.LOCK_UN)
    else:  # pragma: no cover - platform specific
        msvcrt.locking(fileobj.fileno(), msvcrt.LK_UNLCK, 1)


@contextmanager
def migration_lock(path: Path, *, timeout: float) -> Iterator[None]:
    """Serialize migrations between workers sharing the same backend directory."""

    path.parent.mkdir(parents=True, exist_ok=True)
    deadline = time.monotonic() + timeout
    with path.open("a+") as handle:
        while True:
            try:
                _try_lock(handle)
                break
            except OSError as error:
                if not isinstance(error, BlockingIOError) and not _is_lock_conflict(error):
                    raise
                if time.monotonic() >= deadline:
                    raise TimeoutError("Timed out waiting for Alembic migration lock") from error
                time.sleep(LOCK_RETRY_DELAY)
        LOGGER.debug("Acquired Alembic migration lock at %s", path)
        try:
            yield
        finally:
            _unlock(handle)
            LOGGER.debug("Released Alembic migration lock at %s", path)


def _detect_revision(inspector: Inspector, sentinels: Iterable[RevisionSentinel]) -> str | None:
    for revision, check in sentinels:
        if check(inspector):
            return revision
    return None


def build_alembic_config(database_url: str | None = None) -> Config:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    url = database_url or os.getenv(DATABASE_URL_ENV) or SQLALCHEMY_DATABASE_URL
    # ConfigParser interpolation treats "%" as a directive.
    config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))
    # Keep the application logging setup when migrating from inside the app.
    config.attributes["configure_logger"] = False
    return config


def run_database_migrations(database_url: str | None = None) -> None:
    """Upgrade the schema to head, stamping databases created without Alembic."""

    config = build_alembic_config(database_url)
    final_url = config.get_main_option("sqlalchemy.url")
    LOGGER.info("Running database migrations at %s", final_url)

    with migration_lock(BACKEND_DIR / LOCK_FILENAME, timeout=_read_lock_timeout()):
        connect_args = {"check_same_thread": False} if final_url.startswith("sqlite") else {}
        engine = create_engine(final_url, connect_args=connect_args)
        try:
            inspector = inspect(engine)
            if inspector.has_table("alembic_version"):
                LOGGER.debug("Alembic version table present; upgrading to head")
                command.upgrade(config, "head")
                return

            detected = _detect_revision(inspector, REVISION_SENTINELS)
            if detected is None:
                LOGGER.debug("No versioned schema found; running full upgrade")
                command.upgrade(config, "head")
                return

            LOGGER.info("Existing tables match revision %s; stamping before upgrade", detected)
            command.stamp(config, detected)
            if detected != ScriptDirectory.from_config(config).get_current_head():
                command.upgrade(config, "head")
        finally:
            engine.dispose()
