"""API request/response schemas for payment endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from tenantpay.services.payment.models import PaymentStatus


class PaymentCreateRequest(BaseModel):
    """Payment creation payload; the tenant comes from the request header."""

    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    currency: str = Field(min_length=1)
    customer_id: str = Field(min_length=1)


class PaymentResponse(BaseModel):
    """Full payment record returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    tenant_id: str
    payment_id: str
    amount: Decimal
    currency: str
    customer_id: str
    status: PaymentStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None
