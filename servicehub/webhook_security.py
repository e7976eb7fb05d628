"""
Webhook Security Module

Signature verification for the payment gateway webhook.
- Constant-time signature comparison
- Raw body is read before any parsing so the signature covers exact bytes
"""

import hashlib
import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)

PAYSTACK_SIGNATURE_HEADER = "x-paystack-signature"


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""

    pass


def constant_time_compare(a: str, b: str) -> bool:
    """
    Compare two strings in constant time to prevent timing attacks.
    Uses hmac.compare_digest which is designed for this purpose.
    """
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha512(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA512 signature of payload (Paystack's scheme)"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha512).hexdigest()


def check_paystack_signature(secret: Optional[str], payload: bytes, signature: Optional[str]) -> None:
    """
    Raises:
        WebhookSignatureError: secret missing, header missing or mismatch
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret not configured")
    if not signature:
        raise WebhookSignatureError("Missing webhook signature")
    if not constant_time_compare(compute_hmac_sha512(secret, payload), signature.strip()):
        raise WebhookSignatureError("Invalid webhook signature")


async def verify_paystack_webhook(request: Request, secret: Optional[str]) -> bytes:
    """
    Verify a Paystack webhook and return its raw body

    Raises:
        HTTPException 401 on any signature failure
    """
    raw_body = await request.body()
    signature = request.headers.get(PAYSTACK_SIGNATURE_HEADER)

    logger.info(f"📥 Paystack webhook received: {len(raw_body)} bytes")
    try:
        check_paystack_signature(secret, raw_body, signature)
    except WebhookSignatureError as e:
        logger.error(f"❌ Paystack webhook rejected: {e}")
        raise HTTPException(status_code=401, detail=str(e)) from e

    logger.info("✅ Paystack webhook signature verified")
    return raw_body
