"""Processing request tracker and its run state machine.

A run moves a request PENDING -> IN_PROGRESS -> COMPLETED | FAILED. Each
status write is a conditional update on `(status, state_version)`, so only
one run can claim a request and a stale writer never overwrites a newer state.
"""

import asyncio
from collections.abc import Awaitable, Callable
from time import perf_counter
from uuid import uuid4

from sqlalchemy import select, update

from tenantpay.common.config import settings
from tenantpay.common.db import utcnow
from tenantpay.common.errors import InvalidTransition, MissingTenantContext, NotFoundError, ValidationError
from tenantpay.common.logging import bind_context, logger, payment_id_ctx
from tenantpay.common.metrics import (
    processing_duration_seconds,
    processing_requests_opened_total,
    processing_runs_total,
)
from tenantpay.common.state_machine import PROCESSING_TRANSITIONS, is_terminal, validate_transition
from tenantpay.common.tracing import get_tracer
from tenantpay.services.processor.models import ProcessingRequest, ProcessingStatus

ERROR_MESSAGE_LIMIT = 1000

tracer = get_tracer(__name__)

Work = Callable[[ProcessingRequest], Awaitable[None]]


def _require_tenant(tenant_id: str | None) -> str:
    if tenant_id is None or not tenant_id.strip():
        raise MissingTenantContext("tenant id is required")
    return tenant_id.strip()


class ProcessingService:
    """Opens processing requests and executes their simulated work step."""

    def __init__(
        self,
        session_factory,
        service_name: str = "processor",
        work: Work | None = None,
        delay_seconds: float | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.service_name = service_name
        self.delay_seconds = settings.processing_delay_seconds if delay_seconds is None else delay_seconds
        self.work = work or self._simulated_work

    async def _simulated_work(self, request: ProcessingRequest) -> None:
        # Placeholder for real settlement: a fixed delay.
        await asyncio.sleep(self.delay_seconds)

    def open_request(self, tenant_id: str, payment_id: str) -> ProcessingRequest:
        """Create a PENDING request; the referenced payment is not looked up."""

        tenant_id = _require_tenant(tenant_id)
        if payment_id is None or not payment_id.strip():
            raise ValidationError("payment_id must not be blank")
        request = ProcessingRequest(
            tenant_id=tenant_id,
            request_id=str(uuid4()),
            payment_id=payment_id.strip(),
            status=ProcessingStatus.PENDING,
            state_version=0,
            created_at=utcnow(),
        )
        with self.session_factory() as db:
            db.add(request)
            db.commit()
        payment_id_ctx.set(request.payment_id)
        processing_requests_opened_total.labels(service=self.service_name).inc()
        logger.info("processing_request_opened request_id=%s", request.request_id)
        return request

    def _find(self, db, tenant_id: str, request_id: str) -> ProcessingRequest | None:
        return db.execute(
            select(ProcessingRequest).where(
                ProcessingRequest.tenant_id == tenant_id,
                ProcessingRequest.request_id == request_id,
            )
        ).scalar_one_or_none()

    def get_request(self, tenant_id: str, request_id: str) -> ProcessingRequest:
        tenant_id = _require_tenant(tenant_id)
        with self.session_factory() as db:
            request = self._find(db, tenant_id, request_id)
        if request is None:
            raise NotFoundError(f"Processing request not found: {request_id} for tenant: {tenant_id}")
        return request

    def list_by_payment(self, tenant_id: str, payment_id: str) -> list[ProcessingRequest]:
        tenant_id = _require_tenant(tenant_id)
        with self.session_factory() as db:
            return list(
                db.execute(
                    select(ProcessingRequest).where(
                        ProcessingRequest.tenant_id == tenant_id,
                        ProcessingRequest.payment_id == payment_id,
                    )
                ).scalars()
            )

    def list_by_tenant(
        self, tenant_id: str, status: ProcessingStatus | str | None = None
    ) -> list[ProcessingRequest]:
        tenant_id = _require_tenant(tenant_id)
        query = select(ProcessingRequest).where(ProcessingRequest.tenant_id == tenant_id)
        if status is not None:
            try:
                status = ProcessingStatus(status)
            except ValueError as exc:
                raise ValidationError(f"unknown processing status: {status}") from exc
            query = query.where(ProcessingRequest.status == status)
        with self.session_factory() as db:
            return list(db.execute(query).scalars())

    def ensure_runnable(self, tenant_id: str, request_id: str) -> ProcessingRequest:
        """Reject triggers for unknown requests and for requests already claimed."""

        request = self.get_request(tenant_id, request_id)
        if is_terminal(request.status.value, PROCESSING_TRANSITIONS):
            raise InvalidTransition(
                f"Processing request {request_id} already finished with status {request.status.value}"
            )
        if request.status != ProcessingStatus.PENDING:
            raise InvalidTransition(f"Processing request {request_id} is already {request.status.value}")
        return request

    def _transition(
        self,
        db,
        request: ProcessingRequest,
        new_status: ProcessingStatus,
        error_message: str | None = None,
    ) -> None:
        """Apply one validated transition guarded by `(status, state_version)`."""

        validate_transition(request.status.value, new_status.value, PROCESSING_TRANSITIONS)
        from_status = request.status
        current_version = request.state_version
        now = utcnow()
        values = {"status": new_status, "state_version": current_version + 1, "updated_at": now}
        if error_message is not None:
            values["error_message"] = error_message[:ERROR_MESSAGE_LIMIT]

        result = db.execute(
            update(ProcessingRequest)
            .where(
                ProcessingRequest.id == request.id,
                ProcessingRequest.status == from_status,
                ProcessingRequest.state_version == current_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransition(
                f"concurrent update on processing request {request.request_id} "
                f"(expected {from_status.value} at version {current_version})"
            )

        request.status = new_status
        request.state_version = current_version + 1
        request.updated_at = now
        if error_message is not None:
            request.error_message = values["error_message"]

    def _finish(self, request: ProcessingRequest, new_status: ProcessingStatus, error_message: str | None = None):
        with self.session_factory() as db:
            self._transition(db, request, new_status, error_message)
            db.commit()
        processing_runs_total.labels(service=self.service_name, outcome=new_status.value).inc()

    async def run(self, tenant_id: str, request_id: str) -> ProcessingRequest:
        """Claim a PENDING request, do the work step and record the outcome.

        Cancellation of the work step records FAILED and is then re-raised.
        Any other work failure records FAILED with the failure's message.
        """

        tenant_id = _require_tenant(tenant_id)
        with self.session_factory() as db:
            request = self._find(db, tenant_id, request_id)
            if request is None:
                raise NotFoundError(f"Processing request not found: {request_id} for tenant: {tenant_id}")
            self._transition(db, request, ProcessingStatus.IN_PROGRESS)
            db.commit()

        with bind_context(tenant_id=tenant_id, payment_id=request.payment_id):
            return await self._work_claimed(request)

    async def _work_claimed(self, request: ProcessingRequest) -> ProcessingRequest:
        request_id = request.request_id
        logger.info("processing_started request_id=%s", request_id)

        started = perf_counter()
        with tracer.start_as_current_span("processing.work") as span:
            span.set_attribute("tenant.id", request.tenant_id)
            span.set_attribute("processing.request_id", request_id)
            try:
                await self.work(request)
            except asyncio.CancelledError as exc:
                reason = str(exc) or "cancelled"
                self._finish(request, ProcessingStatus.FAILED, f"Processing interrupted: {reason}")
                logger.error("processing_interrupted request_id=%s", request_id)
                raise
            except Exception as exc:
                self._finish(request, ProcessingStatus.FAILED, f"Processing failed: {exc}")
                logger.error("processing_failed request_id=%s error=%s", request_id, exc)
            else:
                self._finish(request, ProcessingStatus.COMPLETED)
                logger.info("processing_completed request_id=%s", request_id)
            finally:
                processing_duration_seconds.labels(service=self.service_name).observe(
                    max(0.0, perf_counter() - started)
                )
        return request
