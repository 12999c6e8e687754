from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import case, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Order, OrderItem, OrderStatus, PaymentStatus
from .state_machine import statuses_allowing


class OrderRepository:
    @staticmethod
    async def create_order(db: AsyncSession, order: Order) -> Order:
        """Persists the order together with its items in one transaction."""
        db.add(order)
        await db.commit()
        await db.refresh(order)
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: str) -> Optional[Order]:
        result = await db.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_by_gateway_order_id(db: AsyncSession, gateway_order_id: str) -> Optional[Order]:
        result = await db.execute(
            select(Order)
            .where(Order.gateway_order_id == gateway_order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def get_items(db: AsyncSession, order_id: str) -> List[OrderItem]:
        result = await db.execute(
            select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def mark_payment_paid(
        db: AsyncSession,
        order_id: str,
        *,
        gateway_payment_id: Optional[str],
        metadata: dict,
        gateway_signature: Optional[str] = None,
    ) -> bool:
        """
        Compare-and-set to paid. Fulfilment moves to processing only from
        pending; a cancelled order stays cancelled.

        Only matches while the payment may still become paid, so when the
        verifier and a webhook race exactly one of them gets True back. The
        winner owns the inventory decrement.
        """
        values = {
            "payment_status": PaymentStatus.PAID,
            "status": case(
                (Order.status == OrderStatus.PENDING, literal(OrderStatus.PROCESSING, Order.status.type)),
                else_=Order.status,
            ),
            "payment_metadata": metadata,
            "updated_at": datetime.now(timezone.utc),
        }
        if gateway_payment_id is not None:
            values["gateway_payment_id"] = gateway_payment_id
        if gateway_signature is not None:
            values["gateway_signature"] = gateway_signature

        result = await db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.payment_status.in_(list(statuses_allowing(PaymentStatus.PAID))),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount > 0

    @staticmethod
    async def mark_payment_failed(db: AsyncSession, order_id: str, *, metadata: dict) -> bool:
        """Sets failed unless the order was paid in the meantime."""
        result = await db.execute(
            update(Order)
            .where(
                Order.id == order_id,
                Order.payment_status.in_(list(statuses_allowing(PaymentStatus.FAILED))),
            )
            .values(
                payment_status=PaymentStatus.FAILED,
                payment_metadata=metadata,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount > 0

    @staticmethod
    async def update_status(db: AsyncSession, order: Order, status: OrderStatus) -> Order:
        order.status = status
        order.updated_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(order)
        return order
