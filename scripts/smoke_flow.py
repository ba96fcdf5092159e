"""End-to-end smoke run against live payment and processor services.

Creates a payment, opens a processing request for it, triggers processing and
polls until the request reaches a terminal status.
"""

import argparse
import asyncio
import json
import time

import httpx

TERMINAL = {"COMPLETED", "FAILED"}


async def run(payment_url: str, processor_url: str, tenant_id: str, customer_id: str, timeout: float) -> int:
    """Drive one payment through processing; return a process exit code."""

    headers = {"x-tenant-id": tenant_id}
    async with httpx.AsyncClient(timeout=10.0, headers=headers) as client:
        resp = await client.post(
            f"{payment_url}/api/payments",
            json={"amount": "10.00", "currency": "USD", "customer_id": customer_id},
        )
        resp.raise_for_status()
        payment = resp.json()
        print(f"payment_id={payment['payment_id']} status={payment['status']}")

        resp = await client.post(f"{processor_url}/api/processing/payment/{payment['payment_id']}")
        resp.raise_for_status()
        request_id = resp.json()["request_id"]
        print(f"request_id={request_id}")

        resp = await client.post(f"{processor_url}/api/processing/{request_id}/process")
        resp.raise_for_status()
        print(resp.json()["message"])

        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            resp = await client.get(f"{processor_url}/api/processing/{request_id}")
            resp.raise_for_status()
            body = resp.json()
            if body["status"] in TERMINAL:
                print(json.dumps(body, indent=2))
                return 0 if body["status"] == "COMPLETED" else 1
            await asyncio.sleep(0.25)

    print(f"request {request_id} not terminal after {timeout}s")
    return 2


def main() -> None:
    """CLI entrypoint for smoke checks."""

    parser = argparse.ArgumentParser(description="Run one payment through the processor.")
    parser.add_argument("--payment-url", default="http://localhost:8001")
    parser.add_argument("--processor-url", default="http://localhost:8002")
    parser.add_argument("--tenant-id", default="tenant-smoke")
    parser.add_argument("--customer-id", default="cust-smoke")
    parser.add_argument("--timeout", type=float, default=15.0)
    args = parser.parse_args()
    raise SystemExit(
        asyncio.run(run(args.payment_url, args.processor_url, args.tenant_id, args.customer_id, args.timeout))
    )


if __name__ == "__main__":
    main()
