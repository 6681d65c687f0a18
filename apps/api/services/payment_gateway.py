"""
Payment gateway integration.

Appointments talk to a ``PaymentGateway``: Razorpay in production, an
in-process sandbox for development and tests. Which one is used comes from
the ``PAYMENT_GATEWAY`` setting.
"""
import hashlib
import hmac
import logging
import uuid
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Optional

import razorpay
from razorpay.errors import BadRequestError, GatewayError, ServerError

from config import get_settings
from errors import UpstreamFailure

logger = logging.getLogger(__name__)


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """HMAC-SHA256 hex digest of ``order_id|payment_id``"""
    return hmac.new(
        secret.encode(),
        f"{order_id}|{payment_id}".encode(),
        hashlib.sha256
    ).hexdigest()


class PaymentGateway(ABC):
    """Capability needed by the appointment flow"""

    name: str = "gateway"

    def __init__(self, key_id: str, key_secret: str):
        self.key_id = key_id
        self._key_secret = key_secret

    @abstractmethod
    def create_order(self, amount_minor_units: int, currency: str, receipt: str, notes: Optional[dict] = None) -> dict:
        """Open an order; returns at least ``id``, ``amount`` and ``currency``"""

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(self._key_secret, order_id, payment_id)

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        expected = self.sign(order_id, payment_id)
        return hmac.compare_digest(expected, signature or "")


class RazorpayGateway(PaymentGateway):
    name = "razorpay"

    def __init__(self, key_id: str, key_secret: str):
        if not key_id or not key_secret:
            raise ValueError("RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET must be set to use the razorpay gateway")
        super().__init__(key_id, key_secret)
        self.client = razorpay.Client(auth=(key_id, key_secret))

    def create_order(self, amount_minor_units: int, currency: str, receipt: str, notes: Optional[dict] = None) -> dict:
        try:
            order = self.client.order.create({
                "amount": amount_minor_units,
                "currency": currency,
                "receipt": receipt,
                "payment_capture": 1,
                "notes": notes or {},
            })
        except (BadRequestError, GatewayError, ServerError, OSError) as e:
            logger.error(f"Razorpay order creation failed for receipt {receipt}: {e}")
            raise UpstreamFailure("Payment gateway error, please try again") from e

        logger.info(f"Razorpay order {order['id']} created for {amount_minor_units} {currency}")
        return order


class SandboxGateway(PaymentGateway):
    """Offline gateway that mints order ids locally"""

    name = "sandbox"

    def __init__(self, key_secret: str, key_id: str = "rzp_sandbox"):
        if not key_secret:
            raise ValueError("SANDBOX_GATEWAY_SECRET must be set to use the sandbox gateway")
        super().__init__(key_id, key_secret)

    def create_order(self, amount_minor_units: int, currency: str, receipt: str, notes: Optional[dict] = None) -> dict:
        order = {
            "id": f"order_sandbox_{uuid.uuid4().hex[:14]}",
            "entity": "order",
            "amount": amount_minor_units,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
            "notes": notes or {},
        }
        logger.info(f"Sandbox order {order['id']} created for {amount_minor_units} {currency}")
        return order


def build_payment_gateway(settings=None) -> PaymentGateway:
    settings = settings or get_settings()
    if settings.PAYMENT_GATEWAY == "razorpay":
        return RazorpayGateway(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
    if settings.PAYMENT_GATEWAY == "sandbox":
        return SandboxGateway(settings.SANDBOX_GATEWAY_SECRET)
    raise ValueError(f"Unknown PAYMENT_GATEWAY: {settings.PAYMENT_GATEWAY}")


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the configured gateway"""
    gateway = build_payment_gateway()
    logger.info(f"Using {gateway.name} payment gateway")
    return gateway
