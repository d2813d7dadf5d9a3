"""Razorpay gateway: REST calls over httpx plus signature checks.

Only the calls the platform needs are wrapped:
  - POST /orders                  create an order (amount in paise)
  - GET  /payments/{id}           fetch a payment after checkout
  - POST /payments/{id}/refund    refund all or part of a captured payment

Signatures:
  - checkout callback: HMAC-SHA256("{order_id}|{payment_id}", key_secret)
  - webhooks:          HMAC-SHA256(raw request body, webhook_secret)
Both are compared in constant time.
"""

import hashlib
import hmac
import logging
from typing import Any

import httpx

from app.config import settings
from app.middleware.exceptions import GatewayError

logger = logging.getLogger(__name__)


def to_paise(amount: float) -> int:
    return int(round(amount * 100))


def _hmac_sha256(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    return _hmac_sha256(secret, f"{order_id}|{payment_id}".encode("utf-8"))


def verify_payment_signature(
    order_id: str, payment_id: str, signature: str, secret: str
) -> bool:
    if not secret or not signature:
        return False
    expected = payment_signature(order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature)


def verify_webhook_signature(body: bytes, signature: str | None, secret: str) -> bool:
    if not secret or not signature:
        return False
    return hmac.compare_digest(_hmac_sha256(secret, body), signature)


class RazorpayClient:
    """Minimal async client for the Razorpay REST API."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 15.0,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def _request(self, method: str, path: str, payload: dict | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.request(
                    method, url, json=payload, auth=(self.key_id, self.key_secret)
                )
        except httpx.HTTPError as exc:
            logger.error("Razorpay request to %s failed: %s", path, exc)
            raise GatewayError("Payment gateway unreachable") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise GatewayError("Payment gateway returned a non-JSON response") from exc

        if resp.status_code >= 400:
            description = (data.get("error") or {}).get("description") or resp.text
            logger.error("Razorpay %s returned %d: %s", path, resp.status_code, description)
            raise GatewayError(f"Payment gateway error: {description}")
        return data

    async def create_order(
        self,
        amount_paise: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            "/orders",
            {
                "amount": amount_paise,
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            },
        )

    async def fetch_payment(self, payment_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/payments/{payment_id}")

    async def refund(
        self,
        payment_id: str,
        amount_paise: int,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            f"/payments/{payment_id}/refund",
            {"amount": amount_paise, "notes": notes or {}},
        )


def get_gateway() -> RazorpayClient:
    """FastAPI dependency returning the configured gateway client."""
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        raise GatewayError(
            "Razorpay is not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET."
        )
    return RazorpayClient(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        base_url=settings.razorpay_api_url,
        timeout=settings.razorpay_timeout_seconds,
    )
