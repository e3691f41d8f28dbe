"""Structured JSON logging with request/event context fields."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from eventpay.common.config import Settings, get_settings


trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
event_type_ctx: ContextVar[str] = ContextVar("event_type", default="")
payment_id_ctx: ContextVar[str] = ContextVar("payment_id", default="")


class ContextFilter(logging.Filter):
    """Inject service and correlation identifiers into every log record."""

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self.service_name
        record.trace_id = trace_id_ctx.get()
        record.event_type = event_type_ctx.get()
        record.payment_id = payment_id_ctx.get()
        return True


def configure_logging(settings: Settings | None = None) -> None:
    """Configure root logger once per service process."""

    settings = settings or get_settings()
    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter(settings.service_name)
    handler.addFilter(context_filter)
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(service_name)s %(trace_id)s %(event_type)s %(payment_id)s %(message)s"
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    root.addFilter(context_filter)


logger = logging.getLogger("eventpay")
