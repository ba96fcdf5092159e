"""Processor service database models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Index, Integer, String, UniqueConstraint, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from tenantpay.common.db import Base, utcnow


class ProcessingStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ProcessingRequest(Base):
    """One tracked unit of simulated settlement work for a payment.

    `payment_id` is a plain reference; the payment lives in another service's
    database. `state_version` guards every status write against concurrent runs.
    """

    __tablename__ = "processing_requests"
    __table_args__ = (
        UniqueConstraint("tenant_id", "request_id", name="uq_processing_tenant_request"),
        Index("idx_processing_tenant_payment", "tenant_id", "payment_id"),
        Index("idx_processing_tenant_status", "tenant_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String(100), index=True)
    request_id: Mapped[str] = mapped_column(String)
    payment_id: Mapped[str] = mapped_column(String)
    status: Mapped[ProcessingStatus] = mapped_column(
        SAEnum(ProcessingStatus, name="processing_status", native_enum=False, length=20),
        default=ProcessingStatus.PENDING,
    )
    error_message: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    state_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
