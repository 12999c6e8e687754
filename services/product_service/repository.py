from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Product


class ProductRepository:

    @staticmethod
    async def get_product_by_id(db: AsyncSession, product_id: str) -> Optional[Product]:
        result = await db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    @staticmethod
    async def decrement_if_sufficient(db: AsyncSession, product_id: str, quantity: int) -> bool:
        """
        Atomic "decrement if enough stock, else no-op".
        Returns True when a row was updated.
        """
        remaining = Product.stock_quantity - quantity
        result = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(
                stock_quantity=remaining,
                in_stock=remaining > 0,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount > 0

    @staticmethod
    async def set_stock(db: AsyncSession, product: Product, stock_quantity: int) -> Product:
        product.stock_quantity = stock_quantity
        product.in_stock = stock_quantity > 0
        product.updated_at = datetime.now(timezone.utc)
        db.add(product)
        await db.commit()
        await db.refresh(product)
        return product
