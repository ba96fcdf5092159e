"""Startup-time helpers for safe config logging."""

from tenantpay.common.config import CommonSettings
from tenantpay.common.logging import logger


SECRET_MARKERS = ("key", "secret", "password", "token", "dsn")


def redacted_config(config: CommonSettings, fields: list[str]) -> dict[str, object]:
    """Return selected settings fields, masking anything that looks secret."""

    values = config.model_dump()
    snapshot: dict[str, object] = {}
    for name in fields:
        if name not in values:
            snapshot[name] = "<unset>"
        elif any(marker in name for marker in SECRET_MARKERS):
            snapshot[name] = "<redacted>"
        else:
            snapshot[name] = values[name]
    return snapshot


def log_startup_config(config: CommonSettings, fields: list[str]) -> None:
    """Log selected startup config fields for quick troubleshooting."""

    snapshot = {"service": config.service_name, **redacted_config(config, fields)}
    logger.info("startup_config=%s", snapshot)
