"""
Paystack payment gateway client

Only the request/response contract is used here: initialize a payment,
verify a payment reference. Amounts are sent and received in minor units
(pesewas). Each call has its own timeout and a bounded retry with exponential
backoff for network errors and 5xx responses; anything else is reported as a
PaymentGatewayError.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Optional

import httpx

from ..config import (
    PAYSTACK_BASE_URL,
    PAYSTACK_CALLBACK_URL,
    PAYSTACK_MAX_RETRIES,
    PAYSTACK_SECRET_KEY,
    PAYSTACK_TIMEOUT,
    PLATFORM_CURRENCY,
)
from ..errors import PaymentGatewayError
from ..shared.money import from_minor_units, to_minor_units

logger = logging.getLogger(__name__)

PAYMENT_CHANNELS = ["card", "bank", "ussd", "qr", "mobile_money"]


class PaystackService:
    """Async client for the Paystack transaction API"""

    def __init__(
        self,
        secret_key: Optional[str] = PAYSTACK_SECRET_KEY,
        base_url: str = PAYSTACK_BASE_URL,
        timeout: float = PAYSTACK_TIMEOUT,
        max_retries: int = PAYSTACK_MAX_RETRIES,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.transport = transport

    def _headers(self) -> dict:
        if not self.secret_key:
            raise PaymentGatewayError("Payment gateway is not configured")
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, json: Optional[dict] = None) -> dict:
        """Send a request with retry; returns the `data` object of a successful response"""
        headers = self._headers()
        last_error: Optional[str] = None

        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        ) as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.request(method, path, json=json, headers=headers)
                except httpx.TransportError as e:
                    last_error = f"{type(e).__name__}: {e}"
                    logger.warning(f"🔄 Paystack {path} attempt {attempt + 1}/{self.max_retries} failed: {last_error}")
                else:
                    if response.status_code >= 500:
                        last_error = f"HTTP {response.status_code}"
                        logger.warning(
                            f"🔄 Paystack {path} attempt {attempt + 1}/{self.max_retries} returned {last_error}"
                        )
                    else:
                        try:
                            body = response.json()
                        except ValueError as e:
                            raise PaymentGatewayError(
                                "Invalid response from payment gateway", status=response.status_code
                            ) from e
                        if response.status_code >= 400 or not body.get("status"):
                            message = body.get("message") or f"HTTP {response.status_code}"
                            logger.error(f"❌ Paystack {path} rejected: {message}")
                            raise PaymentGatewayError(message, status=response.status_code)
                        return body.get("data") or {}

                # Exponential backoff
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_delay * (2**attempt))

        logger.error(f"❌ Paystack {path} failed after {self.max_retries} attempts: {last_error}")
        raise PaymentGatewayError("Payment gateway unavailable", reason=last_error)

    async def initialize_payment(
        self, amount: Decimal, reference: str, email: str, metadata: Optional[dict] = None
    ) -> dict[str, Any]:
        """
        Initialize a payment and get the authorization URL

        Args:
            amount: Amount in major units (cedis)
            reference: Unique payment reference
            email: Payer email
            metadata: Opaque metadata echoed back in webhooks
        """
        minor = to_minor_units(amount)
        if minor <= 0:
            raise PaymentGatewayError("Payment amount must be positive", amount=str(amount))

        logger.info(f"💰 Initializing Paystack payment: amount={amount}, reference={reference}")
        data = await self._request(
            "POST",
            "/transaction/initialize",
            json={
                "email": email,
                "amount": minor,
                "currency": PLATFORM_CURRENCY,
                "reference": reference,
                "metadata": metadata or {},
                "callback_url": PAYSTACK_CALLBACK_URL,
                "channels": PAYMENT_CHANNELS,
            },
        )
        logger.info(f"✅ Payment initialized: {reference}")
        return {
            "authorization_url": data.get("authorization_url"),
            "access_code": data.get("access_code"),
            "reference": data.get("reference", reference),
        }

    async def verify_payment(self, reference: str) -> dict[str, Any]:
        """
        Verify a payment reference

        Returns:
            Dict with success flag, status, amount/fees in major units and gateway id
        """
        data = await self._request("GET", f"/transaction/verify/{reference}")
        status = data.get("status")
        result = {
            "success": status == "success",
            "status": status,
            "reference": data.get("reference", reference),
            "amount": from_minor_units(data.get("amount") or 0),
            "fees": from_minor_units(data.get("fees") or 0),
            "transaction_id": str(data["id"]) if data.get("id") is not None else None,
            "metadata": data.get("metadata") or {},
        }
        logger.info(f"✅ Payment {reference} verified: status={status}")
        return result


def get_paystack_service() -> PaystackService:
    """Dependency injection for PaystackService"""
    return PaystackService()
