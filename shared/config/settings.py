"""
Payment gateway and checkout settings.

Read once from the environment (a local .env is honoured through python-dotenv).
Handlers receive them through the `get_payment_settings` dependency so tests
can swap in their own values.
"""
import os
import warnings
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class PaymentSettings:
    key_id: str
    key_secret: str
    webhook_secret: str
    currency: str = "INR"
    cod_max_order_amount: float = 50000.0
    gateway_timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "PaymentSettings":
        key_id = os.getenv("RAZORPAY_KEY_ID", "")
        key_secret = os.getenv("RAZORPAY_KEY_SECRET", "")
        if not key_id or not key_secret:
            warnings.warn(
                "RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET are not set. "
                "Gateway orders and signature checks will fail.",
                stacklevel=2,
            )
        return cls(
            key_id=key_id,
            key_secret=key_secret,
            # Empty means "not configured"; the webhook endpoint answers 500
            webhook_secret=os.getenv("RAZORPAY_WEBHOOK_SECRET", ""),
            currency=os.getenv("PAYMENT_CURRENCY", "INR"),
            cod_max_order_amount=float(os.getenv("COD_MAX_ORDER_AMOUNT", "50000")),
            gateway_timeout_seconds=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10")),
        )


@lru_cache
def get_payment_settings() -> PaymentSettings:
    return PaymentSettings.from_env()
