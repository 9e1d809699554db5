"""
services/payment_gateway.py — Razorpay client.

Two operations are needed by the order flow:
  - create_order: register an amount (in paise) with the gateway and get
    back the gateway order id the browser checkout uses.
  - verify_signature: check the HMAC-SHA256 signature the checkout returns
    after payment, over "<gateway_order_id>|<payment_id>" keyed with the
    account secret.

The client is created by the app factory and stored on
app.extensions["payment_gateway"], so tests can install a fake in its place.

Gateway failures raise AppError(PAYMENT_GATEWAY_ERROR, 500). Calls are not
retried.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

import requests

from cleancuts.app.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)


def compute_signature(gateway_order_id: str, payment_id: str, key_secret: str) -> str:
    """Hex HMAC-SHA256 of '<order_id>|<payment_id>' keyed with key_secret."""
    body = f"{gateway_order_id}|{payment_id}"
    return hmac.new(
        key_secret.encode("utf-8"),
        body.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


class RazorpayGateway:

    def __init__(
            self,
            key_id: str,
            key_secret: str,
            api_base: str = "https://api.razorpay.com/v1",
            timeout: float = 10,
            session: requests.Session | None = None,
    ) -> None:
        self.key_id = key_id
        self._key_secret = key_secret
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (key_id, key_secret)

    def create_order(self, amount: int, currency: str, receipt: str) -> dict:
        """
        Creates a gateway order for `amount` in the currency's minor unit.

        Returns the gateway's order object (at least {"id": ...}).

        Raises:
          AppError(PAYMENT_GATEWAY_ERROR, 500) — network failure, non-2xx
          response, or a body without an order id.
        """
        if not self.key_id or not self._key_secret:
            raise AppError(
                ErrorCode.PAYMENT_GATEWAY_ERROR,
                "Payment gateway is not configured.",
                500,
            )

        try:
            resp = self.session.post(
                f"{self.api_base}/orders",
                json={"amount": amount, "currency": currency, "receipt": receipt},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            order = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Payment gateway order creation failed: %s", exc)
            raise AppError(
                ErrorCode.PAYMENT_GATEWAY_ERROR,
                "Failed to create payment order.",
                500,
            )

        if not isinstance(order, dict) or not order.get("id"):
            logger.error("Payment gateway returned an order without an id")
            raise AppError(
                ErrorCode.PAYMENT_GATEWAY_ERROR,
                "Failed to create payment order.",
                500,
            )
        return order

    def verify_signature(
            self,
            gateway_order_id: str,
            payment_id: str,
            signature: str,
    ) -> bool:
        expected = compute_signature(gateway_order_id, payment_id, self._key_secret)
        return hmac.compare_digest(expected, signature or "")
