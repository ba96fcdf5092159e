"""Shared fixtures: SQLite-backed sessions and service wiring for tests."""

import os

os.environ.setdefault("POSTGRES_DSN", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("SERVICE_NAME", "tenantpay-test")
os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.setdefault("PROCESSING_DELAY_SECONDS", "0")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from tenantpay.common.db import Base
from tenantpay.services.payment.service import PaymentService
from tenantpay.services.processor.service import ProcessingService


@pytest.fixture
def session_factory(tmp_path):
    """Fresh database file per test with both services' tables."""

    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'tenantpay.db'}")
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def payment_service(session_factory):
    return PaymentService(session_factory, service_name="payment-test", strict_transitions=False)


@pytest.fixture
def processing_service(session_factory):
    return ProcessingService(session_factory, service_name="processor-test", delay_seconds=0)
