"""
Payment boundary: obtain a hosted checkout redirect URL.

The core never interprets payment-provider internals; it only consumes the returned URL or an
error string. This client never raises for remote failures; callers branch on CheckoutResult.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger("payment_client")


@dataclass
class CheckoutResult:
    url: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.url is not None and self.error is None


class CheckoutClient:
    def __init__(self, base_url: str, timeout_seconds: float = 10.0,
                 session_factory: Optional[Any] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        # injectable for tests; defaults to aiohttp.ClientSession
        self._session_factory = session_factory or aiohttp.ClientSession

    async def create_checkout_session(
        self,
        product_type: str,
        amount: float,
        currency: str,
        customer: Optional[Dict[str, Any]],
        success_url: str,
        cancel_url: str,
    ) -> CheckoutResult:
        if not amount or amount <= 0:
            return CheckoutResult(error="Invalid amount. Amount must be greater than 0")
        if not success_url or not cancel_url:
            return CheckoutResult(error="successUrl and cancelUrl are required")

        payload = {
            "productType": product_type,
            "amount": amount,
            "currency": (currency or "gbp").lower(),
            "customerData": customer or {},
            "successUrl": success_url,
            "cancelUrl": cancel_url,
        }
        url = f"{self.base_url}/api/create-checkout-session"

        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            async with self._session_factory(timeout=timeout) as session:
                async with session.post(url, json=payload) as response:
                    try:
                        data = await response.json(content_type=None)
                    except (aiohttp.ContentTypeError, ValueError):
                        data = {}
                    data = data if isinstance(data, dict) else {}
                    if response.status >= 400:
                        logger.warning("checkout_rejected", extra={"status_code": response.status})
                        return CheckoutResult(error=data.get("error") or "Checkout failed")
                    if data.get("url"):
                        return CheckoutResult(url=data["url"])
                    return CheckoutResult(error="No checkout URL received")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("checkout_request_failed", extra={"error": str(e), "error_type": type(e).__name__})
            return CheckoutResult(error="Failed to start checkout")
