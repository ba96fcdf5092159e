"""HTTP tests for the processor service, including the background trigger."""

import time

import pytest
from fastapi.testclient import TestClient

from tenantpay.services.processor import main as processor_main

HEADERS = {"X-Tenant-ID": "t1"}


@pytest.fixture
def client(processing_service):
    processor_main.app.dependency_overrides[processor_main.get_service] = lambda: processing_service
    with TestClient(processor_main.app) as test_client:
        yield test_client
    processor_main.app.dependency_overrides.clear()


def _open(client, payment_id="p1", headers=HEADERS):
    resp = client.post(f"/api/processing/payment/{payment_id}", headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _wait_for_terminal(client, request_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/processing/{request_id}", headers=HEADERS).json()
        if body["status"] in {"COMPLETED", "FAILED"}:
            return body
        time.sleep(0.02)
    raise AssertionError(f"request {request_id} did not finish")


def test_open_and_get(client):
    opened = _open(client)

    assert opened["status"] == "PENDING"
    assert opened["payment_id"] == "p1"
    resp = client.get(f"/api/processing/{opened['request_id']}", headers=HEADERS)
    assert resp.status_code == 200
    assert resp.json()["request_id"] == opened["request_id"]


def test_trigger_runs_to_terminal_state(client):
    opened = _open(client)

    resp = client.post(f"/api/processing/{opened['request_id']}/process", headers=HEADERS)

    assert resp.status_code == 202
    assert resp.json()["status"] == "ACCEPTED"
    final = _wait_for_terminal(client, opened["request_id"])
    assert final["status"] == "COMPLETED"


def test_trigger_terminal_request_is_conflict(client):
    opened = _open(client)
    client.post(f"/api/processing/{opened['request_id']}/process", headers=HEADERS)
    _wait_for_terminal(client, opened["request_id"])

    resp = client.post(f"/api/processing/{opened['request_id']}/process", headers=HEADERS)

    assert resp.status_code == 409


def test_trigger_unknown_request_is_404(client):
    resp = client.post("/api/processing/missing/process", headers=HEADERS)

    assert resp.status_code == 404


def test_other_tenant_cannot_see_or_trigger(client):
    opened = _open(client)
    other = {"X-Tenant-ID": "t2"}

    assert client.get(f"/api/processing/{opened['request_id']}", headers=other).status_code == 404
    assert client.post(f"/api/processing/{opened['request_id']}/process", headers=other).status_code == 404
    assert client.get("/api/processing/tenant", headers=other).json() == []
    assert client.get("/api/processing/payment/p1", headers=other).json() == []


def test_listing_endpoints(client):
    first = _open(client, "p1")
    _open(client, "p1")
    _open(client, "p2")
    client.post(f"/api/processing/{first['request_id']}/process", headers=HEADERS)
    _wait_for_terminal(client, first["request_id"])

    by_payment = client.get("/api/processing/payment/p1", headers=HEADERS).json()
    by_tenant = client.get("/api/processing/tenant", headers=HEADERS).json()
    completed = client.get("/api/processing/tenant", params={"status": "COMPLETED"}, headers=HEADERS).json()

    assert len(by_payment) == 2
    assert len(by_tenant) == 3
    assert [r["request_id"] for r in completed] == [first["request_id"]]


def test_missing_tenant_header(client):
    resp = client.post("/api/processing/payment/p1")

    assert resp.status_code == 400
