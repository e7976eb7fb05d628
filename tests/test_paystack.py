import asyncio
import json
from decimal import Decimal

import httpx
import pytest

from servicehub.errors import PaymentGatewayError
from servicehub.services.paystack_service import PaystackService


def make_service(handler, max_retries=3):
    return PaystackService(
        secret_key="sk_test_123",
        base_url="https://api.paystack.test",
        max_retries=max_retries,
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )


def test_initialize_sends_minor_units_and_auth():
    seen = {}

    def handler(request: httpx.Request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {"authorization_url": "https://checkout.test/abc", "access_code": "abc", "reference": "BK-1"},
            },
        )

    result = asyncio.run(make_service(handler).initialize_payment(Decimal("350.50"), "BK-1", "ama@example.com", {"booking_id": 1}))

    assert result == {"authorization_url": "https://checkout.test/abc", "access_code": "abc", "reference": "BK-1"}
    assert seen["auth"] == "Bearer sk_test_123"
    assert seen["path"] == "/transaction/initialize"
    assert seen["body"]["amount"] == 35050
    assert seen["body"]["metadata"] == {"booking_id": 1}


def test_verify_converts_amounts_to_major_units():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {"status": "success", "reference": "BK-1", "amount": 45000, "fees": 675, "id": 555, "metadata": {"type": "booking_payment"}},
            },
        )

    result = asyncio.run(make_service(handler).verify_payment("BK-1"))
    assert result["success"] is True
    assert result["amount"] == Decimal("450.00")
    assert result["fees"] == Decimal("6.75")
    assert result["transaction_id"] == "555"
    assert result["metadata"] == {"type": "booking_payment"}


def test_retries_server_errors_then_succeeds():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"status": True, "data": {"status": "abandoned"}})

    result = asyncio.run(make_service(handler).verify_payment("BK-2"))
    assert calls["n"] == 3
    assert result["success"] is False


def test_network_errors_exhaust_retries():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PaymentGatewayError):
        asyncio.run(make_service(handler, max_retries=2).verify_payment("BK-3"))
    assert calls["n"] == 2


def test_client_errors_are_not_retried():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return httpx.Response(400, json={"status": False, "message": "Invalid key"})

    with pytest.raises(PaymentGatewayError) as exc_info:
        asyncio.run(make_service(handler).verify_payment("BK-4"))
    assert calls["n"] == 1
    assert exc_info.value.message == "Invalid key"


def test_missing_secret_key_is_a_gateway_error():
    service = PaystackService(secret_key=None, transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    with pytest.raises(PaymentGatewayError):
        asyncio.run(service.verify_payment("BK-5"))
