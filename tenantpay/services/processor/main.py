"""HTTP surface for processing requests and the fire-and-forget run trigger."""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from tenantpay.common.config import settings
from tenantpay.common.db import SessionLocal
from tenantpay.common.errors import install_error_handlers
from tenantpay.common.logging import configure_logging, logger
from tenantpay.common.metrics import install_http_middleware, metrics_response
from tenantpay.common.startup import log_startup_config
from tenantpay.common.tasks import BackgroundRunner
from tenantpay.common.tenancy import require_tenant
from tenantpay.common.tracing import instrument_app, setup_tracing
from tenantpay.services.processor.models import ProcessingStatus
from tenantpay.services.processor.schemas import ProcessingAccepted, ProcessingRequestResponse
from tenantpay.services.processor.service import ProcessingService

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings,
    ["service_name", "log_level", "postgres_dsn", "tenant_header", "processing_delay_seconds"],
)
service = ProcessingService(SessionLocal)
runner = BackgroundRunner(settings.service_name)


def get_service() -> ProcessingService:
    return service


def get_runner() -> BackgroundRunner:
    return runner


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Cancel in-flight processing runs on shutdown so they record FAILED."""

    yield
    logger.info("shutdown in_flight_runs=%s", runner.in_flight)
    await runner.shutdown()


app = FastAPI(title="TenantPay Processor Service", lifespan=lifespan)
install_http_middleware(app)
install_error_handlers(app)
instrument_app(app)


@app.post(
    "/api/processing/payment/{payment_id}",
    response_model=ProcessingRequestResponse,
    status_code=201,
)
def open_processing_request(
    payment_id: str,
    tenant_id: str = Depends(require_tenant),
    processing: ProcessingService = Depends(get_service),
):
    """Open a PENDING processing request for a payment."""

    return processing.open_request(tenant_id, payment_id)


@app.get("/api/processing/tenant", response_model=list[ProcessingRequestResponse])
def list_tenant_requests(
    status: ProcessingStatus | None = None,
    tenant_id: str = Depends(require_tenant),
    processing: ProcessingService = Depends(get_service),
):
    return processing.list_by_tenant(tenant_id, status)


@app.get("/api/processing/payment/{payment_id}", response_model=list[ProcessingRequestResponse])
def list_payment_requests(
    payment_id: str,
    tenant_id: str = Depends(require_tenant),
    processing: ProcessingService = Depends(get_service),
):
    return processing.list_by_payment(tenant_id, payment_id)


@app.get("/api/processing/{request_id}", response_model=ProcessingRequestResponse)
def get_processing_request(
    request_id: str,
    tenant_id: str = Depends(require_tenant),
    processing: ProcessingService = Depends(get_service),
):
    return processing.get_request(tenant_id, request_id)


@app.post("/api/processing/{request_id}/process", response_model=ProcessingAccepted, status_code=202)
async def trigger_processing(
    request_id: str,
    tenant_id: str = Depends(require_tenant),
    processing: ProcessingService = Depends(get_service),
    background: BackgroundRunner = Depends(get_runner),
):
    """Schedule a run and return immediately.

    The 202 only acknowledges scheduling; the outcome is visible later through
    `GET /api/processing/{request_id}`.
    """

    # Checked on the request path so 404 and 409 reach the caller before scheduling.
    processing.ensure_runnable(tenant_id, request_id)
    background.submit(processing.run(tenant_id, request_id), name=f"processing:{tenant_id}:{request_id}")
    logger.info("processing_scheduled request_id=%s", request_id)
    return ProcessingAccepted(
        request_id=request_id,
        tenant_id=tenant_id,
        message=f"Processing started for request: {request_id} in tenant: {tenant_id}",
    )


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
