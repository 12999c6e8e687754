"""
Order state machine.

Two independent dimensions live on an order:

* fulfilment (`Order.status`), driven by the back-office;
* payment (`Order.payment_status`), driven by the client verification path
  and by gateway webhooks.

Payment rules, shared by both payment writers:

    pending --(valid signature / captured webhook)--> paid
    pending --(bad signature / failed webhook)------> failed
    failed  --(valid signature / captured webhook)--> paid     (user retried)
    failed  --(another failure)---------------------> failed
    paid    --(anything)----------------------------> paid     (no-op)

`paid` is never downgraded here. Moving on to `refunded` belongs to a refund
flow this service does not implement.
"""
from typing import Dict, FrozenSet

from .models import OrderStatus, PaymentMethod, PaymentStatus


FULFILMENT_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: Dict[PaymentStatus, FrozenSet[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.FAILED: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


class InvalidTransition(ValueError):
    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from '{current.value}' to '{target.value}'")


def can_transition_status(current: OrderStatus, target: OrderStatus) -> bool:
    return target in FULFILMENT_TRANSITIONS.get(current, frozenset())


def validate_status_transition(current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition_status(current, target):
        raise InvalidTransition(current, target)


def can_transition_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_TRANSITIONS.get(current, frozenset())


def statuses_allowing(target: PaymentStatus) -> FrozenSet[PaymentStatus]:
    """Payment statuses from which `target` may be written."""
    return frozenset(s for s, allowed in PAYMENT_TRANSITIONS.items() if target in allowed)


def is_payment_settled(payment_status: PaymentStatus) -> bool:
    """True once a payment writer must leave the order alone."""
    return not PAYMENT_TRANSITIONS.get(payment_status)


def stock_committed(order) -> bool:
    """
    Whether inventory was taken for this order: COD commits at placement,
    gateway orders only once the payment is confirmed.
    """
    if order.payment_method == PaymentMethod.COD:
        return True
    return order.payment_status == PaymentStatus.PAID
