import os

# Settings are read at import time; configure the test environment first
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"
os.environ["ENVIRONMENT"] = "local"
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
os.environ["PASSWORD_HASH_ROUNDS"] = "10"
os.environ["EMAIL_SERVICE"] = "mock"
os.environ["RECURRING_CRON_ENABLED"] = "false"
os.environ.pop("AUDIT_LOG_FILE", None)

from collections.abc import Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, delete  # noqa: E402

from app.api.deps import get_clock, get_mailer  # noqa: E402
from app.core.db import engine, init_db  # noqa: E402
from app.domains.auth import MockEmailSender  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Account,
    Recurring,
    RefreshToken,
    Transaction,
    User,
    VerificationCode,
)
from app.tests.utils.clock import FakeClock  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def db() -> Generator[Session, None, None]:
    with Session(engine) as session:
        init_db(session)
        yield session


@pytest.fixture(autouse=True)
def clean_tables() -> Generator[None, None, None]:
    yield
    with Session(engine) as session:
        # Children first
        for model in (Transaction, Recurring, Account, VerificationCode, RefreshToken, User):
            session.exec(delete(model))
        session.commit()


@pytest.fixture()
def session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def mailer() -> MockEmailSender:
    return MockEmailSender()


@pytest.fixture()
def client(clock: FakeClock, mailer: MockEmailSender) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_mailer] = lambda: mailer
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()
