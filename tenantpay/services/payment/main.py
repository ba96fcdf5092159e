"""HTTP surface for tenant-scoped payment records."""

from fastapi import Depends, FastAPI

from tenantpay.common.config import settings
from tenantpay.common.db import SessionLocal
from tenantpay.common.errors import install_error_handlers
from tenantpay.common.logging import configure_logging, logger
from tenantpay.common.metrics import install_http_middleware, metrics_response
from tenantpay.common.startup import log_startup_config
from tenantpay.common.tenancy import require_tenant
from tenantpay.common.tracing import instrument_app, setup_tracing
from tenantpay.services.payment.models import PaymentStatus
from tenantpay.services.payment.schemas import PaymentCreateRequest, PaymentResponse
from tenantpay.services.payment.service import PaymentService

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings,
    ["service_name", "log_level", "postgres_dsn", "tenant_header", "strict_payment_transitions"],
)
service = PaymentService(SessionLocal)


def get_service() -> PaymentService:
    return service


app = FastAPI(title="TenantPay Payment Service")
install_http_middleware(app)
install_error_handlers(app)
instrument_app(app)


@app.post("/api/payments", response_model=PaymentResponse, status_code=201)
def create_payment(
    req: PaymentCreateRequest,
    tenant_id: str = Depends(require_tenant),
    payments: PaymentService = Depends(get_service),
):
    """Create a PENDING payment owned by the calling tenant."""

    logger.info("create_payment_requested customer_id=%s", req.customer_id)
    return payments.create_payment(tenant_id, req.amount, req.currency, req.customer_id)


@app.get("/api/payments/tenant", response_model=list[PaymentResponse])
def list_tenant_payments(
    status: PaymentStatus | None = None,
    tenant_id: str = Depends(require_tenant),
    payments: PaymentService = Depends(get_service),
):
    """List every payment of the tenant, optionally filtered by status."""

    return payments.list_by_tenant(tenant_id, status)


@app.get("/api/payments/customer/{customer_id}", response_model=list[PaymentResponse])
def list_customer_payments(
    customer_id: str,
    tenant_id: str = Depends(require_tenant),
    payments: PaymentService = Depends(get_service),
):
    return payments.list_by_customer(tenant_id, customer_id)


@app.get("/api/payments/{payment_id}", response_model=PaymentResponse)
def get_payment(
    payment_id: str,
    tenant_id: str = Depends(require_tenant),
    payments: PaymentService = Depends(get_service),
):
    return payments.get_payment(tenant_id, payment_id)


@app.put("/api/payments/{payment_id}/status", response_model=PaymentResponse)
def update_payment_status(
    payment_id: str,
    status: PaymentStatus,
    tenant_id: str = Depends(require_tenant),
    payments: PaymentService = Depends(get_service),
):
    """Overwrite the payment status (`?status=COMPLETED`)."""

    return payments.update_status(tenant_id, payment_id, status)


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
