from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_orders_created_total = Counter(
    "ecomm_orders_created_total",
    "Total orders persisted",
    ["payment_method"] # Labels: 'gateway', 'cod'
)

ecomm_payment_verifications_total = Counter(
    "ecomm_payment_verifications_total",
    "Client payment confirmations processed",
    ["result"] # Labels: 'verified', 'already_paid', 'invalid_signature', 'lost_race'
)

ecomm_webhook_events_total = Counter(
    "ecomm_webhook_events_total",
    "Gateway webhook deliveries",
    ["event", "outcome"] # outcome: 'applied', 'duplicate', 'ignored', 'order_not_found', 'unhandled'
)

ecomm_stock_adjustments_total = Counter(
    "ecomm_stock_adjustments_total",
    "Per-item stock adjustments",
    ["operation", "status"] # operation: 'decrement', 'restore'; status: 'updated', 'error'
)

ecomm_gateway_request_duration_seconds = Histogram(
    "ecomm_gateway_request_duration_seconds",
    "Latency of payment gateway API calls"
)
