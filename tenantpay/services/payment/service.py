"""Payment record store.

Every query is filtered by tenant id; a payment created under one tenant is
invisible to all others.
"""

from decimal import Decimal, InvalidOperation
from uuid import uuid4

from sqlalchemy import select

from tenantpay.common.config import settings
from tenantpay.common.db import utcnow
from tenantpay.common.errors import MissingTenantContext, NotFoundError, ValidationError
from tenantpay.common.logging import logger, payment_id_ctx
from tenantpay.common.metrics import payment_status_updates_total, payments_created_total
from tenantpay.common.state_machine import PAYMENT_TRANSITIONS, validate_transition
from tenantpay.services.payment.models import Payment, PaymentStatus


# Bounds of the Numeric(10, 2) amount column.
CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("99999999.99")


def _require_tenant(tenant_id: str | None) -> str:
    if tenant_id is None or not tenant_id.strip():
        raise MissingTenantContext("tenant id is required")
    return tenant_id.strip()


def _require_text(name: str, value: str | None) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{name} must not be blank")
    return value.strip()


def _parse_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"amount is not a decimal: {amount!r}") from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError("amount must be greater than zero")
    if value > MAX_AMOUNT:
        raise ValidationError(f"amount must not exceed {MAX_AMOUNT}")
    if value != value.quantize(CENT):
        raise ValidationError("amount must have at most 2 decimal places")
    return value.quantize(CENT)


def _parse_status(status) -> PaymentStatus:
    try:
        return PaymentStatus(status)
    except ValueError as exc:
        raise ValidationError(f"unknown payment status: {status}") from exc


class PaymentService:
    """Creates payments and applies status overwrites for one tenant at a time."""

    def __init__(
        self,
        session_factory,
        service_name: str = "payment",
        strict_transitions: bool | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.service_name = service_name
        if strict_transitions is None:
            strict_transitions = settings.strict_payment_transitions
        self.strict_transitions = strict_transitions

    def create_payment(self, tenant_id: str, amount, currency: str, customer_id: str) -> Payment:
        """Persist a new PENDING payment under a freshly generated payment id."""

        tenant_id = _require_tenant(tenant_id)
        payment = Payment(
            tenant_id=tenant_id,
            payment_id=str(uuid4()),
            amount=_parse_amount(amount),
            currency=_require_text("currency", currency).upper(),
            customer_id=_require_text("customer_id", customer_id),
            status=PaymentStatus.PENDING,
            created_at=utcnow(),
        )
        with self.session_factory() as db:
            db.add(payment)
            db.commit()
        payment_id_ctx.set(payment.payment_id)
        payments_created_total.labels(service=self.service_name).inc()
        logger.info(
            "payment_created payment_id=%s customer_id=%s amount=%s currency=%s",
            payment.payment_id,
            payment.customer_id,
            payment.amount,
            payment.currency,
        )
        return payment

    def _find(self, db, tenant_id: str, payment_id: str) -> Payment | None:
        return db.execute(
            select(Payment).where(Payment.tenant_id == tenant_id, Payment.payment_id == payment_id)
        ).scalar_one_or_none()

    def get_payment(self, tenant_id: str, payment_id: str) -> Payment:
        tenant_id = _require_tenant(tenant_id)
        with self.session_factory() as db:
            payment = self._find(db, tenant_id, payment_id)
        if payment is None:
            raise NotFoundError(f"Payment not found: {payment_id} for tenant: {tenant_id}")
        return payment

    def list_by_customer(self, tenant_id: str, customer_id: str) -> list[Payment]:
        tenant_id = _require_tenant(tenant_id)
        with self.session_factory() as db:
            return list(
                db.execute(
                    select(Payment).where(Payment.tenant_id == tenant_id, Payment.customer_id == customer_id)
                ).scalars()
            )

    def list_by_tenant(self, tenant_id: str, status: PaymentStatus | str | None = None) -> list[Payment]:
        """All payments of a tenant, optionally narrowed to one status."""

        tenant_id = _require_tenant(tenant_id)
        query = select(Payment).where(Payment.tenant_id == tenant_id)
        if status is not None:
            query = query.where(Payment.status == _parse_status(status))
        with self.session_factory() as db:
            return list(db.execute(query).scalars())

    def update_status(self, tenant_id: str, payment_id: str, status: PaymentStatus | str) -> Payment:
        """Overwrite the status of one payment.

        Any status may replace any other unless strict transitions are enabled,
        in which case `PAYMENT_TRANSITIONS` is enforced (same-status writes are
        always accepted).
        """

        tenant_id = _require_tenant(tenant_id)
        new_status = _parse_status(status)
        with self.session_factory() as db:
            payment = self._find(db, tenant_id, payment_id)
            if payment is None:
                raise NotFoundError(f"Payment not found: {payment_id} for tenant: {tenant_id}")
            previous = payment.status
            if self.strict_transitions and previous != new_status:
                validate_transition(previous.value, new_status.value, PAYMENT_TRANSITIONS)
            payment.status = new_status
            payment.updated_at = utcnow()
            db.commit()
        payment_id_ctx.set(payment.payment_id)
        payment_status_updates_total.labels(service=self.service_name, status=new_status.value).inc()
        logger.info(
            "payment_status_updated payment_id=%s from=%s to=%s",
            payment_id,
            previous.value,
            new_status.value,
        )
        return payment
