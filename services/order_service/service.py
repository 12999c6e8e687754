import uuid
from typing import Iterable, List

import structlog
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.product_service.inventory import InventoryAdjuster
from services.product_service.schemas import StockAdjustmentResult, StockItem
from shared.config.settings import PaymentSettings
from shared.observability import ecomm_orders_created_total
from shared.security import AuthenticatedUser

from .models import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from .repository import OrderRepository
from .schemas import CheckoutRequest, CODOrderResponse, OrderStatusUpdateResponse, OrderResponse
from .state_machine import InvalidTransition, stock_committed, validate_status_transition

logger = structlog.get_logger(__name__)


def build_order(
    user: AuthenticatedUser,
    data: CheckoutRequest,
    payment_method: PaymentMethod,
    order_id: str = None,
    gateway_order_id: str = None,
) -> Order:
    """New pending/pending order with its item snapshot, not yet persisted."""
    return Order(
        id=order_id or str(uuid.uuid4()),
        user_id=user.id,
        total_amount=data.total_amount,
        shipping_address=data.shipping_address.model_dump(),
        notes=data.notes or None,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        payment_method=payment_method,
        gateway_order_id=gateway_order_id,
        items=[
            OrderItem(
                product_id=item.product_id,
                product_name=item.product_name,
                product_image=item.product_image,
                quantity=item.quantity,
                price=item.price,
            )
            for item in data.items
        ],
    )


def stock_items_for(order_id: str, items: Iterable[OrderItem]) -> List[StockItem]:
    """Items that still reference a catalog product, as inventory adjustments."""
    stock_items = []
    for item in items:
        if item.product_id is None:
            logger.warning("order_item_without_product", order_id=order_id, product_name=item.product_name)
            continue
        stock_items.append(StockItem(product_id=item.product_id, quantity=item.quantity))
    return stock_items


async def commit_stock(db: AsyncSession, order_id: str, source: str) -> StockAdjustmentResult:
    """
    Decrements stock for a confirmed order. Failures are logged, never raised:
    the order stays confirmed and stock is reconciled by an administrator.
    Cancelled orders take no stock.
    """
    try:
        order = await OrderRepository.get_order(db, order_id)
        if order is not None and order.status == OrderStatus.CANCELLED:
            # Paid after an admin cancel: money captured, nothing to ship
            logger.error("payment_on_cancelled_order", order_id=order_id, source=source, action="manual_refund")
            return StockAdjustmentResult(success=False, errors=[f"Order {order_id} is cancelled"])
        items = await OrderRepository.get_items(db, order_id)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("order_items_fetch_failed", order_id=order_id, source=source, error=str(e))
        return StockAdjustmentResult(success=False, errors=[f"Failed to fetch items for order {order_id}"])

    result = await InventoryAdjuster.decrement(db, stock_items_for(order_id, items))
    if not result.success:
        logger.warning("stock_update_incomplete", order_id=order_id, source=source, errors=result.errors)
    else:
        logger.info("stock_updated", order_id=order_id, source=source, products=result.updated_products)
    return result


class OrderService:
    @staticmethod
    async def create_cod_order(
        db: AsyncSession,
        user: AuthenticatedUser,
        data: CheckoutRequest,
        settings: PaymentSettings,
    ) -> CODOrderResponse:
        if data.total_amount > settings.cod_max_order_amount:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    "Cash on Delivery is available only for orders up to "
                    f"{settings.cod_max_order_amount:,.0f} {settings.currency}"
                ),
            )

        order = await OrderRepository.create_order(db, build_order(user, data, PaymentMethod.COD))
        order_id = order.id
        ecomm_orders_created_total.labels(payment_method=PaymentMethod.COD.value).inc()
        logger.info("cod_order_created", order_id=order_id, user_id=user.id, total_amount=data.total_amount)

        # No payment confirmation step for COD: stock is committed at placement
        await commit_stock(db, order_id, source="cod")

        return CODOrderResponse(
            order_id=order_id,
            message="Order placed successfully! Pay on delivery.",
        )

    @staticmethod
    async def get_order_for_user(db: AsyncSession, user: AuthenticatedUser, order_id: str) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
        if order.user_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized access to order")
        return order

    @staticmethod
    async def update_status(db: AsyncSession, order_id: str, new_status: OrderStatus) -> OrderStatusUpdateResponse:
        """
        Back-office fulfilment transition. Cancelling gives the order's stock
        back before the new status is saved. Payment status is never touched.
        """
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

        try:
            validate_status_transition(order.status, new_status)
        except InvalidTransition as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        stock_errors: List[str] = []
        if new_status == OrderStatus.CANCELLED and stock_committed(order):
            items = await OrderRepository.get_items(db, order_id)
            result = await InventoryAdjuster.restore(db, stock_items_for(order_id, items))
            if not result.success:
                logger.error("stock_restore_incomplete", order_id=order_id, errors=result.errors)
            logger.info("stock_restored_for_order", order_id=order_id, products=len(result.updated_products))
            stock_errors = result.errors
            # A failed stock write rolls the session back and expires `order`
            order = await OrderRepository.get_order(db, order_id)

        previous = order.status
        order = await OrderRepository.update_status(db, order, new_status)
        logger.info("order_status_updated", order_id=order.id, previous=previous.value, status=new_status.value)

        return OrderStatusUpdateResponse(
            order=OrderResponse.model_validate(order),
            message=(
                "Order cancelled and stock restored"
                if new_status == OrderStatus.CANCELLED
                else "Order status updated"
            ),
            stock_errors=stock_errors,
        )
