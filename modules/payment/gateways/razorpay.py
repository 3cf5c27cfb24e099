"""
Razorpay Gateway
=================
Orders REST API (basic auth with key id/secret); checkout signatures are
HMAC-SHA256(key_secret, "<order_id>|<payment_id>") as hex.
"""

import hashlib
import hmac
import httpx
import logging
from typing import Dict, Any

from config.settings import RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET
from modules.payment.gateways import (
    BaseGateway, GatewayPaymentRequest, GatewayCreateResult,
    GatewayVerifyResult, register_gateway,
)

logger = logging.getLogger("loopcraft.gateway.razorpay")

RAZORPAY_ORDERS_URL = "https://api.razorpay.com/v1/orders"


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class RazorpayGateway(BaseGateway):
    name = "razorpay"
    label = "Razorpay"

    def __init__(self, key_id: str = RAZORPAY_KEY_ID, key_secret: str = RAZORPAY_KEY_SECRET):
        self.key_id = key_id
        self.key_secret = key_secret

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def create_payment(self, req: GatewayPaymentRequest) -> GatewayCreateResult:
        try:
            resp = httpx.post(
                RAZORPAY_ORDERS_URL,
                auth=(self.key_id, self.key_secret),
                json={
                    "amount": req.amount_minor,
                    "currency": req.currency,
                    "receipt": req.receipt[:40],
                    "notes": req.notes,
                },
                timeout=15,
            )
            data = resp.json()
            logger.info(f"Razorpay create [{req.receipt}]: status={resp.status_code} id={data.get('id')}")

            if resp.status_code == 200 and data.get("id"):
                return GatewayCreateResult(
                    success=True,
                    gateway_order_id=data["id"],
                    amount_minor=int(data.get("amount", req.amount_minor)),
                    currency=data.get("currency", req.currency),
                )
            else:
                error = data.get("error") or {}
                msg = error.get("description") or f"HTTP {resp.status_code}"
                logger.error(f"Razorpay create failed [{req.receipt}]: {error or data}")
                return GatewayCreateResult(success=False, error_message=f"Gateway error: {msg}")

        except httpx.TimeoutException:
            logger.error(f"Razorpay create timeout [{req.receipt}]")
            return GatewayCreateResult(success=False, error_message="Payment gateway did not respond. Please try again.")
        except Exception as e:
            logger.error(f"Razorpay create failed: {e}")
            return GatewayCreateResult(success=False, error_message=f"Could not reach payment gateway: {e}")

    def verify_payment(self, params: Dict[str, Any]) -> GatewayVerifyResult:
        order_id = params.get("order_id") or ""
        payment_id = params.get("payment_id") or ""
        signature = params.get("signature") or ""

        if not self.key_secret:
            logger.error("Razorpay verify attempted without RAZORPAY_KEY_SECRET")
            return GatewayVerifyResult(success=False, error_message="Payment verification is not configured")

        expected = compute_signature(order_id, payment_id, self.key_secret)
        if not hmac.compare_digest(expected.encode(), signature.encode()):
            logger.warning(f"Razorpay signature mismatch for order {order_id} (payment {payment_id})")
            return GatewayVerifyResult(success=False, error_message="Invalid payment signature")

        return GatewayVerifyResult(success=True, payment_id=payment_id)


register_gateway(RazorpayGateway())
