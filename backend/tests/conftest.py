from __future__ import annotations

import os
import sys
import uuid
from datetime import date
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# The test database is created from the ORM metadata, not through Alembic.
os.environ.setdefault("RUN_DATABASE_MIGRATIONS", "0")

from backend.subtrack import models  # noqa: E402
from backend.subtrack.database import Base, get_db  # noqa: E402
from backend.subtrack.main import app  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

DEFAULT_OWNER = uuid.UUID("60601fee-2bf1-4721-ae6f-7636e79a0cba")


@pytest.fixture(scope="session", autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def make_subscription(db_session: Session) -> Callable[..., models.Subscription]:
    def _make(
        service_name: str = "Yandex Plus",
        price: int = 400,
        user_id: uuid.UUID = DEFAULT_OWNER,
        start_date: date = date(2025, 7, 1),
        end_date: date | None = None,
    ) -> models.Subscription:
        record = models.Subscription(
            service_name=service_name,
            price=price,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
        )
        db_session.add(record)
        db_session.flush()
        return record

    return _make
