"""Registration store: one idempotent insert per captured payment.

Duplicate deliveries are resolved by the unique constraint on `payment_id`;
the store never reads before writing and never retries.
"""

from typing import Protocol

from sqlalchemy import insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from eventpay.common.tracing import tracer
from eventpay.common.db import build_engine, build_session_factory
from eventpay.services.webhook.models import Registration
from eventpay.services.webhook.schemas import RegistrationRecord, StoredRegistration


UNIQUE_VIOLATION = "23505"


class RegistrationStoreError(Exception):
    """Store rejected or failed the write."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class DuplicatePaymentError(RegistrationStoreError):
    """A registration for this `payment_id` already exists."""

    def __init__(self, payment_id: str, message: str = "", code: str | None = UNIQUE_VIOLATION) -> None:
        super().__init__(message or f"payment {payment_id} already registered", code)
        self.payment_id = payment_id


class RegistrationStore(Protocol):
    def insert_registration(self, record: RegistrationRecord) -> StoredRegistration | None:
        """Insert one row and return it, raising `DuplicatePaymentError` on conflict."""
        ...


def _error_code(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    if orig is None:
        return type(exc).__name__
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None) or type(orig).__name__


def _is_payment_id_conflict(exc: IntegrityError) -> bool:
    """True when the violated constraint is the unique key on `payment_id`."""

    orig = exc.orig
    message = str(orig)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate != UNIQUE_VIOLATION and "UNIQUE constraint failed" not in message:
        return False
    constraint = getattr(getattr(orig, "diag", None), "constraint_name", None)
    if constraint:
        return "payment_id" in constraint
    return "payment_id" in message


class SqlRegistrationStore:
    """`INSERT ... RETURNING` against the registrations table."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    @classmethod
    def from_url(cls, store_url: str, service_key: str | None = None, pool_size: int = 5) -> "SqlRegistrationStore":
        # Engine creation does not open a connection.
        return cls(build_session_factory(build_engine(store_url, service_key, pool_size)))

    def insert_registration(self, record: RegistrationRecord) -> StoredRegistration | None:
        table = Registration.__table__
        stmt = insert(table).values(**record.model_dump()).returning(*table.c)
        with tracer.start_as_current_span("registrations.insert") as span:
            span.set_attribute("registration.payment_id", record.payment_id)
            span.set_attribute("registration.event_id", record.event_id)
            with self.session_factory() as db:
                try:
                    row = db.execute(stmt).mappings().first()
                    db.commit()
                except IntegrityError as exc:
                    db.rollback()
                    if _is_payment_id_conflict(exc):
                        span.set_attribute("registration.duplicate", True)
                        raise DuplicatePaymentError(record.payment_id, str(exc.orig)) from exc
                    raise RegistrationStoreError(str(exc.orig), _error_code(exc)) from exc
                except SQLAlchemyError as exc:
                    db.rollback()
                    raise RegistrationStoreError(str(exc), _error_code(exc)) from exc
        if row is None:
            return None
        return StoredRegistration.model_validate(dict(row))
