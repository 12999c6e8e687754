import hashlib
import hmac
from typing import Union


def hmac_sha256_hex(secret: str, message: Union[str, bytes]) -> str:
    if isinstance(message, str):
        message = message.encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def _matches(expected: str, provided: str) -> bool:
    # Bytes so that non-ASCII garbage compares False instead of raising
    return hmac.compare_digest(expected.encode(), provided.encode())


def payment_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """Signature the gateway hands the client after checkout."""
    return hmac_sha256_hex(secret, f"{gateway_order_id}|{gateway_payment_id}")


def verify_payment_signature(secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
    if not secret or not signature:
        return False
    return _matches(payment_signature(secret, gateway_order_id, gateway_payment_id), signature)


def verify_webhook_signature(secret: str, body: bytes, signature: str) -> bool:
    """Webhooks are signed over the raw request body with the webhook secret."""
    if not secret or not signature:
        return False
    return _matches(hmac_sha256_hex(secret, body), signature)
