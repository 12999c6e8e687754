from typing import List

from pydantic import BaseModel, Field


class StockItem(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)


class StockAdjustmentRequest(BaseModel):
    items: List[StockItem] = Field(min_length=1)


class StockAdjustmentResult(BaseModel):
    success: bool
    errors: List[str] = []
    updated_products: List[str] = []


class ProductStockResponse(BaseModel):
    id: str
    name: str
    stock_quantity: int
    in_stock: bool

    class Config:
        from_attributes = True
