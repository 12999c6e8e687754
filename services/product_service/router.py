"""
Internal stock endpoints for administrators reconciling stock out-of-band.
Every route except /health requires X-Internal-API-Key.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key

from .inventory import InventoryAdjuster
from .repository import ProductRepository
from .schemas import ProductStockResponse, StockAdjustmentRequest, StockAdjustmentResult

router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "product", "status": "running"}


@router.get("/{product_id}/stock", response_model=ProductStockResponse)
async def get_stock(product_id: str, db: AsyncSession = Depends(get_db)):
    product = await ProductRepository.get_product_by_id(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("/stock/decrement", response_model=StockAdjustmentResult)
async def decrement_stock(payload: StockAdjustmentRequest, db: AsyncSession = Depends(get_db)):
    return await InventoryAdjuster.decrement(db, payload.items)


@router.post("/stock/restore", response_model=StockAdjustmentResult)
async def restore_stock(payload: StockAdjustmentRequest, db: AsyncSession = Depends(get_db)):
    return await InventoryAdjuster.restore(db, payload.items)
