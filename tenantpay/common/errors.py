"""Error taxonomy shared by both services and its HTTP mapping."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tenantpay.common.logging import logger


class TenantPayError(Exception):
    """Base class for errors that map onto a client-facing HTTP status."""

    status_code = 400


class ValidationError(TenantPayError, ValueError):
    """Malformed or missing required input."""

    status_code = 400


class MissingTenantContext(TenantPayError):
    """No tenant identifier was supplied on a call that requires one."""

    status_code = 400


class NotFoundError(TenantPayError, LookupError):
    """No record exists for the given tenant + id."""

    status_code = 404


class InvalidTransition(TenantPayError):
    """Status change rejected by a transition table or a lost concurrent update."""

    status_code = 409


def install_error_handlers(app: FastAPI) -> None:
    """Convert domain errors to typed responses and hide unexpected failures."""

    @app.exception_handler(TenantPayError)
    async def tenantpay_error_handler(_: Request, exc: TenantPayError) -> JSONResponse:
        logger.warning("request_rejected status=%s error=%s", exc.status_code, exc)
        return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("internal_failure path=%s error=%s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "internal server error"})
