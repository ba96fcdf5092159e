"""Tenant identification from the request header.

Handlers declare `tenant_id: str = Depends(require_tenant)` and receive a
trimmed, non-empty tenant id; the id is also bound into the logging context.
"""

from fastapi import Request

from tenantpay.common.config import settings
from tenantpay.common.errors import MissingTenantContext
from tenantpay.common.logging import tenant_id_ctx


def tenant_dependency(required: bool = True, default: str = ""):
    """Build a FastAPI dependency that resolves the tenant id for a request.

    When `required` is false and the header is absent or blank, `default` is
    returned instead (or `None` when `default` is empty).
    """

    header_name = settings.tenant_header

    async def resolve_tenant(request: Request) -> str | None:
        raw = request.headers.get(header_name)
        tenant_id = raw.strip() if raw is not None else ""
        if not tenant_id:
            if required:
                raise MissingTenantContext(
                    f"Missing required header: {header_name}. "
                    "Please include the tenant ID in the request header."
                )
            tenant_id = default
        if tenant_id:
            tenant_id_ctx.set(tenant_id)
        return tenant_id or None

    return resolve_tenant


require_tenant = tenant_dependency()
