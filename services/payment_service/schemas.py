from typing import Optional

from pydantic import BaseModel, Field


class Prefill(BaseModel):
    name: str
    email: Optional[str] = None
    contact: str


class CreatePaymentOrderResponse(BaseModel):
    success: bool = True
    order_id: str
    gateway_order_id: str
    gateway_key: str
    amount: int  # minor units (paise)
    currency: str
    prefill: Prefill


class VerifyPaymentRequest(BaseModel):
    gateway_order_id: str = Field(min_length=1)
    gateway_payment_id: str = Field(min_length=1)
    gateway_signature: str = Field(min_length=1)
    order_id: str = Field(min_length=1)


class VerifyPaymentResponse(BaseModel):
    success: bool
    message: str
    order_id: str


# --- Webhook payload (only the fields we read; the gateway sends more) ---

class PaymentEntity(BaseModel):
    class Config:
        extra = "ignore"

    id: str
    order_id: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: Optional[str] = None
    method: Optional[str] = None
    bank: Optional[str] = None
    wallet: Optional[str] = None
    vpa: Optional[str] = None
    card_id: Optional[str] = None
    captured: Optional[bool] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    error_code: Optional[str] = None
    error_description: Optional[str] = None
    error_reason: Optional[str] = None


class GatewayOrderEntity(BaseModel):
    class Config:
        extra = "ignore"

    id: str
    amount: Optional[int] = None
    status: Optional[str] = None


class PaymentEnvelope(BaseModel):
    entity: PaymentEntity


class GatewayOrderEnvelope(BaseModel):
    entity: GatewayOrderEntity


class WebhookPayload(BaseModel):
    class Config:
        extra = "ignore"

    payment: Optional[PaymentEnvelope] = None
    order: Optional[GatewayOrderEnvelope] = None


class WebhookEvent(BaseModel):
    class Config:
        extra = "ignore"

    event: str
    payload: WebhookPayload = Field(default_factory=WebhookPayload)
    created_at: Optional[int] = None

    @property
    def payment(self) -> Optional[PaymentEntity]:
        return self.payload.payment.entity if self.payload.payment else None

    @property
    def gateway_order_id(self) -> Optional[str]:
        """Gateway order this event is about; webhooks never carry our ids."""
        if self.payment and self.payment.order_id:
            return self.payment.order_id
        if self.payload.order:
            return self.payload.order.entity.id
        return None


class WebhookAck(BaseModel):
    received: bool = True
    outcome: str
