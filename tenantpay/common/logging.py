"""Structured JSON logging with request/tenant context fields."""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from tenantpay.common.config import settings


trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
tenant_id_ctx: ContextVar[str] = ContextVar("tenant_id", default="")
payment_id_ctx: ContextVar[str] = ContextVar("payment_id", default="")


class ContextFilter(logging.Filter):
    """Inject service, tenant and correlation identifiers into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        record.trace_id = trace_id_ctx.get()
        record.tenant_id = tenant_id_ctx.get()
        record.payment_id = payment_id_ctx.get()
        return True


def configure_logging() -> None:
    """Configure root logger once per service process."""

    handler = logging.StreamHandler(sys.stdout)
    context_filter = ContextFilter()
    handler.addFilter(context_filter)
    formatter = JsonFormatter(
        "%(asctime)s %(levelname)s %(service_name)s %(trace_id)s %(tenant_id)s %(payment_id)s %(message)s"
    )
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    root.addFilter(context_filter)


@contextmanager
def bind_context(tenant_id: str | None = None, payment_id: str | None = None):
    """Set tenant and payment log fields for a block and restore them afterwards.

    Background runs start outside any request, so they bind their own context.
    """

    tokens = []
    if tenant_id is not None:
        tokens.append((tenant_id_ctx, tenant_id_ctx.set(tenant_id)))
    if payment_id is not None:
        tokens.append((payment_id_ctx, payment_id_ctx.set(payment_id)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


logger = logging.getLogger("tenantpay")
