"""
Razorpay client wrapper.

The SDK is synchronous (requests under the hood), so calls run in a worker
thread with a bounded timeout. There is no retry here: a failure surfaces to
the caller, who restarts the checkout.
"""
import asyncio
from functools import lru_cache
from typing import Any, Dict

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError as RazorpayGatewayError, ServerError
from fastapi import Depends

from shared.config.settings import PaymentSettings, get_payment_settings
from shared.observability import ecomm_gateway_request_duration_seconds


class GatewayError(Exception):
    """The payment gateway could not be reached or refused the request."""


class GatewayClient:
    def __init__(self, key_id: str, key_secret: str, timeout: float = 10.0):
        self.key_id = key_id
        self.timeout = timeout
        self._client = razorpay.Client(auth=(key_id, key_secret))

    async def create_order(self, amount: int, currency: str, receipt: str, notes: Dict[str, str]) -> Dict[str, Any]:
        """
        Creates a gateway order ("payment intent") for `amount` minor units.
        Returns the gateway's order entity; its `id` is the join key for
        every later confirmation and webhook.
        """
        data = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        try:
            with ecomm_gateway_request_duration_seconds.time():
                return await asyncio.to_thread(self._client.order.create, data=data, timeout=self.timeout)
        except (
            BadRequestError,
            ServerError,
            RazorpayGatewayError,
            requests.RequestException,
        ) as e:
            raise GatewayError(str(e)) from e


@lru_cache
def _client_for(settings: PaymentSettings) -> GatewayClient:
    return GatewayClient(settings.key_id, settings.key_secret, settings.gateway_timeout_seconds)


def get_gateway_client(settings: PaymentSettings = Depends(get_payment_settings)) -> GatewayClient:
    return _client_for(settings)
