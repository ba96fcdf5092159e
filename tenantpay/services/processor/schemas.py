"""API response schemas for processing endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from tenantpay.services.processor.models import ProcessingStatus


class ProcessingRequestResponse(BaseModel):
    """Processing request as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    tenant_id: str
    request_id: str
    payment_id: str
    status: ProcessingStatus
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ProcessingAccepted(BaseModel):
    """Acknowledgment that a run was scheduled, not that it finished."""

    request_id: str
    tenant_id: str
    status: str = "ACCEPTED"
    message: str
