"""Processing state machine: open, run outcomes, and concurrent runs."""

import asyncio

import pytest

from tenantpay.common.errors import InvalidTransition, NotFoundError
from tenantpay.common.logging import payment_id_ctx, tenant_id_ctx
from tenantpay.services.processor.models import ProcessingStatus
from tenantpay.services.processor.service import ProcessingService


def test_open_creates_pending_request(processing_service):
    request = processing_service.open_request("t1", "p1")

    assert request.request_id
    assert request.status == ProcessingStatus.PENDING
    assert request.payment_id == "p1"
    assert processing_service.get_request("t1", request.request_id).status == ProcessingStatus.PENDING


def test_open_does_not_require_existing_payment(processing_service):
    request = processing_service.open_request("t1", "no-such-payment")

    assert processing_service.list_by_payment("t1", "no-such-payment")[0].request_id == request.request_id


def test_requests_are_tenant_scoped(processing_service):
    request = processing_service.open_request("t1", "p1")

    with pytest.raises(NotFoundError):
        processing_service.get_request("t2", request.request_id)
    assert processing_service.list_by_payment("t2", "p1") == []
    assert processing_service.list_by_tenant("t2") == []
    assert len(processing_service.list_by_tenant("t1")) == 1


def test_run_completes(processing_service):
    request = processing_service.open_request("t1", "p1")

    result = asyncio.run(processing_service.run("t1", request.request_id))

    assert result.status == ProcessingStatus.COMPLETED
    stored = processing_service.get_request("t1", request.request_id)
    assert stored.status == ProcessingStatus.COMPLETED
    assert stored.error_message is None
    assert stored.state_version == 2


def test_run_records_work_failure(session_factory):
    async def broken_work(_):
        raise RuntimeError("acquirer unreachable")

    service = ProcessingService(session_factory, work=broken_work)
    request = service.open_request("t1", "p1")

    result = asyncio.run(service.run("t1", request.request_id))

    assert result.status == ProcessingStatus.FAILED
    stored = service.get_request("t1", request.request_id)
    assert stored.status == ProcessingStatus.FAILED
    assert stored.error_message == "Processing failed: acquirer unreachable"


def test_run_binds_tenant_and_payment_to_log_context(session_factory):
    seen = {}

    async def record_context(_):
        seen["tenant_id"] = tenant_id_ctx.get()
        seen["payment_id"] = payment_id_ctx.get()

    service = ProcessingService(session_factory, work=record_context)
    request = service.open_request("t1", "p1")

    asyncio.run(service.run("t1", request.request_id))

    assert seen == {"tenant_id": "t1", "payment_id": "p1"}


def test_cancelled_run_is_marked_failed(session_factory):
    service = ProcessingService(session_factory, delay_seconds=30)
    request = service.open_request("t1", "p1")

    async def scenario():
        task = asyncio.create_task(service.run("t1", request.request_id))
        await asyncio.sleep(0.05)
        assert service.get_request("t1", request.request_id).status == ProcessingStatus.IN_PROGRESS
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    stored = service.get_request("t1", request.request_id)
    assert stored.status == ProcessingStatus.FAILED
    assert stored.error_message.startswith("Processing interrupted")


def test_run_unknown_request_raises_not_found(processing_service):
    with pytest.raises(NotFoundError):
        asyncio.run(processing_service.run("t1", "missing"))


def test_run_from_other_tenant_leaves_request_untouched(processing_service):
    request = processing_service.open_request("t1", "p1")

    with pytest.raises(NotFoundError):
        asyncio.run(processing_service.run("t2", request.request_id))
    assert processing_service.get_request("t1", request.request_id).status == ProcessingStatus.PENDING


def test_concurrent_runs_claim_once(session_factory):
    service = ProcessingService(session_factory, delay_seconds=0.05)
    request = service.open_request("t1", "p1")

    async def scenario():
        return await asyncio.gather(
            service.run("t1", request.request_id),
            service.run("t1", request.request_id),
            return_exceptions=True,
        )

    results = asyncio.run(scenario())

    losers = [r for r in results if isinstance(r, InvalidTransition)]
    winners = [r for r in results if not isinstance(r, Exception)]
    assert len(losers) == 1
    assert len(winners) == 1
    stored = service.get_request("t1", request.request_id)
    assert stored.status == ProcessingStatus.COMPLETED
    assert stored.state_version == 2


def test_stale_writer_loses_compare_and_swap(processing_service, session_factory):
    request = processing_service.open_request("t1", "p1")
    first = processing_service.get_request("t1", request.request_id)
    stale = processing_service.get_request("t1", request.request_id)

    with session_factory() as db:
        processing_service._transition(db, first, ProcessingStatus.IN_PROGRESS)
        db.commit()

    with session_factory() as db:
        with pytest.raises(InvalidTransition):
            processing_service._transition(db, stale, ProcessingStatus.IN_PROGRESS)


def test_rerun_of_terminal_request_is_rejected(processing_service):
    request = processing_service.open_request("t1", "p1")
    asyncio.run(processing_service.run("t1", request.request_id))

    with pytest.raises(InvalidTransition, match="already finished with status COMPLETED"):
        processing_service.ensure_runnable("t1", request.request_id)
    with pytest.raises(InvalidTransition):
        asyncio.run(processing_service.run("t1", request.request_id))
    assert processing_service.get_request("t1", request.request_id).status == ProcessingStatus.COMPLETED


def test_claimed_request_is_not_runnable_again(processing_service, session_factory):
    request = processing_service.open_request("t1", "p1")
    with session_factory() as db:
        processing_service._transition(db, request, ProcessingStatus.IN_PROGRESS)
        db.commit()

    with pytest.raises(InvalidTransition, match="is already IN_PROGRESS"):
        processing_service.ensure_runnable("t1", request.request_id)


def test_list_by_tenant_filters_status(processing_service):
    done = processing_service.open_request("t1", "p1")
    processing_service.open_request("t1", "p2")
    asyncio.run(processing_service.run("t1", done.request_id))

    pending = processing_service.list_by_tenant("t1", ProcessingStatus.PENDING)
    completed = processing_service.list_by_tenant("t1", "COMPLETED")

    assert [r.payment_id for r in pending] == ["p2"]
    assert [r.request_id for r in completed] == [done.request_id]
