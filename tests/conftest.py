"""Shared fixtures for webhook tests."""

import os

os.environ.setdefault("TRACING_ENABLED", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from eventpay.common.config import Settings
from eventpay.common.db import Base, build_session_factory
from eventpay.services.webhook.models import Registration
from eventpay.services.webhook.schemas import RegistrationRecord, StoredRegistration
from eventpay.services.webhook.store import DuplicatePaymentError, SqlRegistrationStore


def make_settings(**overrides) -> Settings:
    values = {
        "store_url": "postgresql+psycopg://webhook@db.internal:5432/events",
        "store_service_key": "service-role-secret",
        "tracing_enabled": False,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def captured_notification(**payment_overrides) -> dict:
    payment = {
        "id": "pay_Nx81a7QzT0",
        "email": "attendee@example.com",
        "amount": 50000,
        "notes": {"event_id": "event_a"},
    }
    payment.update(payment_overrides)
    return {"event": "payment.captured", "payment": payment}


class FakeStore:
    """In-memory store honoring the unique `payment_id` rule."""

    def __init__(self, error: Exception | None = None, return_none: bool = False) -> None:
        self.calls: list[RegistrationRecord] = []
        self.rows: dict[str, StoredRegistration] = {}
        self.error = error
        self.return_none = return_none

    def insert_registration(self, record: RegistrationRecord) -> StoredRegistration | None:
        self.calls.append(record)
        if self.error is not None:
            raise self.error
        if record.payment_id in self.rows:
            raise DuplicatePaymentError(record.payment_id)
        if self.return_none:
            return None
        stored = StoredRegistration(id=f"reg-{len(self.rows) + 1}", **record.model_dump())
        self.rows[record.payment_id] = stored
        return stored


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def sqlite_session_factory():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine, tables=[Registration.__table__])
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def sql_store(sqlite_session_factory) -> SqlRegistrationStore:
    return SqlRegistrationStore(sqlite_session_factory)
