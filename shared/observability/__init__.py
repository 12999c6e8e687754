from .setup import setup_observability
from .metrics import (
    ecomm_orders_created_total,
    ecomm_payment_verifications_total,
    ecomm_webhook_events_total,
    ecomm_stock_adjustments_total,
    ecomm_gateway_request_duration_seconds
)
