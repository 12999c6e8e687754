"""
Inventory Adjuster.

Decrements stock when an order is confirmed and restores it when an order is
cancelled. Items are processed independently: one product failing never stops
the others, and the caller gets back the list of errors and of products that
were updated. Stock is best-effort and reconcilable by an administrator, so
callers log a failed result instead of failing the payment flow.
"""
from typing import Iterable, List

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.observability import ecomm_stock_adjustments_total

from .repository import ProductRepository
from .schemas import StockAdjustmentResult, StockItem

logger = structlog.get_logger(__name__)


class InventoryAdjuster:

    @staticmethod
    async def decrement(db: AsyncSession, items: Iterable[StockItem]) -> StockAdjustmentResult:
        errors: List[str] = []
        updated: List[str] = []

        for item in items:
            try:
                # Fast path: atomic conditional decrement
                if await ProductRepository.decrement_if_sufficient(db, item.product_id, item.quantity):
                    product = await ProductRepository.get_product_by_id(db, item.product_id)
                    logger.info(
                        "stock_decremented",
                        product_id=item.product_id,
                        ordered=item.quantity,
                        stock_quantity=product.stock_quantity if product else None,
                    )
                    updated.append(item.product_id)
                    ecomm_stock_adjustments_total.labels(operation="decrement", status="updated").inc()
                    continue

                # Not enough stock (or unknown product): read, clamp at zero, write
                product = await ProductRepository.get_product_by_id(db, item.product_id)
                if not product:
                    errors.append(f"Product {item.product_id} not found")
                    ecomm_stock_adjustments_total.labels(operation="decrement", status="error").inc()
                    continue

                current = product.stock_quantity or 0
                new_stock = max(0, current - item.quantity)
                await ProductRepository.set_stock(db, product, new_stock)

                logger.warning(
                    "stock_clamped_at_zero",
                    product_id=item.product_id,
                    ordered=item.quantity,
                    previous=current,
                    stock_quantity=new_stock,
                )
                updated.append(item.product_id)
                ecomm_stock_adjustments_total.labels(operation="decrement", status="updated").inc()
            except SQLAlchemyError as e:
                await db.rollback()
                errors.append(f"Error processing product {item.product_id}: {e}")
                ecomm_stock_adjustments_total.labels(operation="decrement", status="error").inc()

        return StockAdjustmentResult(success=not errors, errors=errors, updated_products=updated)

    @staticmethod
    async def restore(db: AsyncSession, items: Iterable[StockItem]) -> StockAdjustmentResult:
        errors: List[str] = []
        updated: List[str] = []

        for item in items:
            try:
                product = await ProductRepository.get_product_by_id(db, item.product_id)
                if not product:
                    errors.append(f"Product {item.product_id} not found")
                    ecomm_stock_adjustments_total.labels(operation="restore", status="error").inc()
                    continue

                current = product.stock_quantity or 0
                new_stock = current + item.quantity
                await ProductRepository.set_stock(db, product, new_stock)

                logger.info(
                    "stock_restored",
                    product_id=item.product_id,
                    restored=item.quantity,
                    previous=current,
                    stock_quantity=new_stock,
                )
                updated.append(item.product_id)
                ecomm_stock_adjustments_total.labels(operation="restore", status="updated").inc()
            except SQLAlchemyError as e:
                await db.rollback()
                errors.append(f"Error processing product {item.product_id}: {e}")
                ecomm_stock_adjustments_total.labels(operation="restore", status="error").inc()

        return StockAdjustmentResult(success=not errors, errors=errors, updated_products=updated)
