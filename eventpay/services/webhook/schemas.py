"""Typed shapes flowing through the payment webhook pipeline.

An inbound body is either an `UnparseableNotification` or a
`ParsedNotification`. Validating a parsed notification yields either a
`ValidPayment` or an `InvalidPayment` listing every failing field.
"""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field


CAPTURED_EVENT = "payment.captured"
REGISTRATION_STATUS = "success"
REQUIRED_FIELDS = ("payment.id", "payment.email", "payment.amount", "payment.notes.event_id")


class UnparseableNotification(BaseModel):
    """Body that is not a JSON object."""

    reason: str


class ParsedNotification(BaseModel):
    """JSON object body; `payment` is kept raw until validation."""

    event: str | None = None
    payment: Any = None


InboundNotification = UnparseableNotification | ParsedNotification


class ValidPayment(BaseModel):
    """Captured payment with every required field present and typed."""

    payment_id: str
    email: str
    amount_minor: int | float
    event_id: str


class InvalidPayment(BaseModel):
    """Validation failure with the full list of missing fields."""

    missing_fields: list[str]
    received_data: dict[str, Any]


class RegistrationRecord(BaseModel):
    """Normalized row sent to the registration store."""

    event_id: str
    user_email: str
    amount: int
    payment_id: str
    status: str = REGISTRATION_STATUS


class StoredRegistration(RegistrationRecord):
    """Row as returned by the store after insert."""

    # Postgres `uuid` columns come back as `uuid.UUID`.
    id: Annotated[str, BeforeValidator(str)]
    created_at: datetime | None = None


class WebhookResponse(BaseModel):
    """Transport-neutral status code, JSON body and extra headers."""

    status_code: int
    body: dict[str, Any] | None = None
    headers: dict[str, str] = Field(default_factory=dict)
