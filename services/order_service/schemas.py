from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator

from .models import OrderStatus, PaymentMethod, PaymentStatus


# --- Checkout input (shared by gateway and COD orders) ---

class ShippingAddress(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=1, max_length=20)
    address: Optional[str] = Field(default=None, max_length=500)
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None

    @field_validator("full_name", "phone")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class CartItem(BaseModel):
    product_id: str
    product_name: str
    product_image: Optional[str] = None
    quantity: int = Field(gt=0)
    price: float = Field(ge=0)


class CheckoutRequest(BaseModel):
    items: List[CartItem] = Field(min_length=1)
    total_amount: float = Field(gt=0)
    shipping_address: ShippingAddress
    notes: Optional[str] = Field(default=None, max_length=1000)


class CODOrderResponse(BaseModel):
    success: bool = True
    order_id: str
    payment_method: PaymentMethod = PaymentMethod.COD
    message: str


# --- Payment metadata: one shape per writer ---

class VerificationMetadata(BaseModel):
    kind: Literal["verification"] = "verification"
    verified_at: datetime
    verification_method: Literal["signature"] = "signature"


class VerificationFailedMetadata(BaseModel):
    kind: Literal["verification_failed"] = "verification_failed"
    gateway_payment_id: str
    error: str
    failed_at: datetime


class CapturedMetadata(BaseModel):
    kind: Literal["captured"] = "captured"
    captured_via: Literal["webhook"] = "webhook"
    captured_at: datetime
    amount: Optional[int] = None
    currency: Optional[str] = None
    method: Optional[str] = None
    bank: Optional[str] = None
    wallet: Optional[str] = None
    vpa: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None


class FailedMetadata(BaseModel):
    kind: Literal["failed"] = "failed"
    failed_via: Literal["webhook"] = "webhook"
    failed_at: datetime
    error_code: Optional[str] = None
    error_description: Optional[str] = None
    error_reason: Optional[str] = None


PaymentMetadata = Annotated[
    Union[VerificationMetadata, VerificationFailedMetadata, CapturedMetadata, FailedMetadata],
    Field(discriminator="kind"),
]

payment_metadata_adapter = TypeAdapter(PaymentMetadata)


def dump_payment_metadata(metadata: PaymentMetadata) -> dict:
    """JSON-safe dict for the payment_metadata column."""
    return metadata.model_dump(mode="json")


# --- Order read model ---

class OrderItemResponse(BaseModel):
    product_id: Optional[str]
    product_name: str
    product_image: Optional[str]
    quantity: int
    price: float

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: str
    user_id: str
    total_amount: float
    shipping_address: ShippingAddress
    notes: Optional[str]
    status: OrderStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    gateway_order_id: Optional[str]
    gateway_payment_id: Optional[str]
    payment_metadata: Optional[PaymentMetadata] = None
    items: List[OrderItemResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- Back-office ---

class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderStatusUpdateResponse(BaseModel):
    success: bool = True
    order: OrderResponse
    message: str
    stock_errors: List[str] = []
