"""Payment webhook pipeline.

Method gate, configuration gate, event-type filter, field validation,
normalization and one idempotent insert. Every outcome, including failures,
is returned as a `WebhookResponse`; nothing raises to the transport.
"""

import json
import math
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from eventpay.common.config import Settings
from eventpay.common.logging import event_type_ctx, logger, payment_id_ctx
from eventpay.common.metrics import (
    registrations_created_total,
    webhook_processing_seconds,
    webhook_requests_total,
)
from eventpay.services.webhook.schemas import (
    CAPTURED_EVENT,
    REGISTRATION_STATUS,
    REQUIRED_FIELDS,
    InboundNotification,
    InvalidPayment,
    ParsedNotification,
    RegistrationRecord,
    UnparseableNotification,
    ValidPayment,
    WebhookResponse,
)
from eventpay.services.webhook.store import (
    DuplicatePaymentError,
    RegistrationStore,
    RegistrationStoreError,
)


ALLOWED_METHODS = ["POST", "OPTIONS"]


def parse_notification(body: Any) -> InboundNotification:
    """Decode a raw or already-decoded body into a notification variant."""

    if isinstance(body, (bytes, bytearray)):
        try:
            body = bytes(body).decode("utf-8")
        except UnicodeDecodeError:
            return UnparseableNotification(reason="invalid UTF-8")
    if isinstance(body, str):
        if not body.strip():
            return UnparseableNotification(reason="empty body")
        try:
            body = json.loads(body)
        except json.JSONDecodeError as exc:
            return UnparseableNotification(reason=f"invalid JSON: {exc.msg}")
    if not isinstance(body, dict):
        return UnparseableNotification(reason=f"expected JSON object, got {type(body).__name__}")

    event = body.get("event")
    if event is not None and not isinstance(event, str):
        event = str(event)
    return ParsedNotification(event=event, payment=body.get("payment"))


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_amount(value: Any) -> bool:
    # bool is an int subclass and never a valid amount.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def validate_payment(notification: ParsedNotification) -> ValidPayment | InvalidPayment:
    """Check every required field and report all failures at once."""

    payment = notification.payment if isinstance(notification.payment, dict) else {}
    notes = payment.get("notes")
    notes = notes if isinstance(notes, dict) else {}

    payment_id = payment.get("id")
    email = payment.get("email")
    amount = payment.get("amount")
    event_id = notes.get("event_id")

    checks = {
        "payment.id": _non_empty_str(payment_id),
        "payment.email": _non_empty_str(email),
        "payment.amount": _is_amount(amount),
        "payment.notes.event_id": _non_empty_str(event_id),
    }
    missing = [field for field in REQUIRED_FIELDS if not checks[field]]
    if missing:
        return InvalidPayment(
            missing_fields=missing,
            received_data={
                "has_payment": isinstance(notification.payment, dict),
                "has_id": checks["payment.id"],
                "has_email": checks["payment.email"],
                "has_amount": checks["payment.amount"],
                "amount_type": type(amount).__name__,
                "has_notes": isinstance(payment.get("notes"), dict),
                "has_event_id": checks["payment.notes.event_id"],
            },
        )
    return ValidPayment(payment_id=payment_id, email=email, amount_minor=amount, event_id=event_id)


def to_major_units(amount_minor: int | float) -> int:
    """Convert minor units to major units, rounding half-up (150 -> 2)."""

    major = Decimal(str(amount_minor)) / Decimal(100)
    return int(major.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def normalize_email(email: str) -> str:
    return email.strip().lower()


def build_registration(payment: ValidPayment) -> RegistrationRecord:
    """Normalize a validated payment into the row to insert."""

    return RegistrationRecord(
        event_id=payment.event_id,
        user_email=normalize_email(payment.email),
        amount=to_major_units(payment.amount_minor),
        payment_id=payment.payment_id,
        status=REGISTRATION_STATUS,
    )


class WebhookService:
    """Turns one webhook delivery into at most one registration row."""

    def __init__(
        self,
        settings: Settings,
        store: RegistrationStore | None,
        service_name: str | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.service_name = service_name or settings.service_name

    def _respond(self, outcome: str, status_code: int, body: dict | None, **kwargs) -> WebhookResponse:
        webhook_requests_total.labels(service=self.service_name, outcome=outcome).inc()
        return WebhookResponse(status_code=status_code, body=body, **kwargs)

    def handle(self, method: str, body: Any) -> WebhookResponse:
        """Run the full pipeline for one delivery."""

        method = (method or "").upper()
        if method == "OPTIONS":
            return self._respond("preflight", 200, None)
        if method != "POST":
            logger.warning("method_not_allowed method=%s", method)
            return self._respond(
                "method_not_allowed",
                405,
                {
                    "error": "Method not allowed. Only POST requests are accepted.",
                    "allowed_methods": ALLOWED_METHODS,
                },
                headers={"Allow": ", ".join(ALLOWED_METHODS)},
            )

        with webhook_processing_seconds.labels(service=self.service_name).time():
            try:
                return self._process(body)
            except Exception as exc:
                logger.exception("webhook_processing_error error=%s", exc)
                return self._respond(
                    "error",
                    500,
                    {
                        "error": "Internal server error while processing webhook",
                        "details": str(exc) or type(exc).__name__,
                    },
                )

    def _process(self, body: Any) -> WebhookResponse:
        missing_settings = self.settings.missing_store_settings()
        if missing_settings or self.store is None:
            logger.error("store_not_configured missing=%s", missing_settings)
            return self._respond(
                "config_error",
                500,
                {
                    "error": "Server configuration error",
                    "details": (
                        f"missing settings: {', '.join(missing_settings)}"
                        if missing_settings
                        else "registration store is not available; STORE_URL must be a SQLAlchemy database URL"
                    ),
                },
            )

        notification = parse_notification(body)
        if isinstance(notification, UnparseableNotification):
            logger.warning("unparseable_payload reason=%s", notification.reason)
            return self._respond(
                "invalid",
                400,
                {
                    "error": "Malformed webhook payload",
                    "missing_fields": list(REQUIRED_FIELDS),
                    "received_data": {"parseable": False, "reason": notification.reason},
                },
            )

        event_token = event_type_ctx.set(notification.event or "")
        try:
            return self._process_event(notification)
        finally:
            event_type_ctx.reset(event_token)

    def _process_event(self, notification: ParsedNotification) -> WebhookResponse:
        logger.info("webhook_received event=%s", notification.event)
        if notification.event != CAPTURED_EVENT:
            logger.info("event_ignored event=%s", notification.event)
            return self._respond(
                "ignored",
                200,
                {"message": f"Event ignored: {notification.event}. Only {CAPTURED_EVENT} events are processed."},
            )

        result = validate_payment(notification)
        if isinstance(result, InvalidPayment):
            logger.error(
                "missing_required_fields missing=%s received=%s",
                result.missing_fields,
                result.received_data,
            )
            return self._respond(
                "invalid",
                400,
                {
                    "error": "Missing required payment data",
                    "missing_fields": result.missing_fields,
                    "received_data": result.received_data,
                },
            )

        payment_token = payment_id_ctx.set(result.payment_id)
        try:
            return self._register(build_registration(result))
        finally:
            payment_id_ctx.reset(payment_token)

    def _register(self, record: RegistrationRecord) -> WebhookResponse:
        logger.info(
            "inserting_registration event_id=%s payment_id=%s amount=%s",
            record.event_id,
            record.payment_id,
            record.amount,
        )
        try:
            stored = self.store.insert_registration(record)
        except DuplicatePaymentError as exc:
            logger.info("duplicate_payment payment_id=%s", exc.payment_id)
            return self._respond(
                "duplicate",
                200,
                {
                    "message": "Payment already processed",
                    "payment_id": record.payment_id,
                    "duplicate": True,
                },
            )
        except RegistrationStoreError as exc:
            logger.error("store_insert_failed code=%s error=%s", exc.code, exc.message)
            return self._respond(
                "store_error",
                500,
                {"error": "Failed to save registration data", "details": exc.message, "code": exc.code},
            )

        if stored is None:
            logger.error("store_insert_returned_no_row payment_id=%s", record.payment_id)
            return self._respond("store_error", 500, {"error": "Registration insert returned no data"})

        registrations_created_total.labels(service=self.service_name).inc()
        logger.info("registration_saved registration_id=%s", stored.id)
        return self._respond(
            "success",
            200,
            {
                "message": "Payment processed and registration saved successfully",
                "registration_id": stored.id,
                "event_id": stored.event_id,
                "amount_rupees": stored.amount,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
