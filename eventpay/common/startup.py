"""Startup-time logging of the effective settings, with secrets masked."""

from eventpay.common.config import Settings
from eventpay.common.logging import logger


SECRET_MARKERS = ("key", "secret", "password", "token")


def _mask(field: str, value):
    """Hide secret-like fields and credentials embedded in database URLs."""

    if value is None:
        return "<unset>"
    if any(marker in field for marker in SECRET_MARKERS):
        return "<redacted>"
    if field.endswith("_url") and isinstance(value, str) and "@" in value:
        scheme, _, rest = value.partition("://")
        return f"{scheme}://<redacted>@{rest.rsplit('@', 1)[1]}"
    return value


def redacted_settings(settings: Settings) -> dict:
    return {field: _mask(field, value) for field, value in settings.model_dump().items()}


def log_startup_config(settings: Settings) -> None:
    """Log the settings the process is running with."""

    logger.info("startup_config=%s", redacted_settings(settings))
