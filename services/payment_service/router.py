from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.schemas import CheckoutRequest
from shared.config.database import get_db
from shared.config.settings import PaymentSettings, get_payment_settings
from shared.security import AuthenticatedUser, get_current_user

from .gateway import GatewayClient, get_gateway_client
from .schemas import CreatePaymentOrderResponse, VerifyPaymentRequest, VerifyPaymentResponse, WebhookAck
from .service import PaymentService
from .webhook import WebhookReconciler

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@router.post("/create-order", response_model=CreatePaymentOrderResponse)
async def create_payment_order(
    payload: CheckoutRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: GatewayClient = Depends(get_gateway_client),
    settings: PaymentSettings = Depends(get_payment_settings),
):
    return await PaymentService.create_order(db, user, payload, gateway, settings)


@router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    payload: VerifyPaymentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: PaymentSettings = Depends(get_payment_settings),
):
    return await PaymentService.verify_payment(db, user, payload, settings)


# Called by the gateway, not by users: the signature is the only credential
@router.post("/webhook", response_model=WebhookAck, include_in_schema=False)
async def payment_webhook(
    request: Request,
    x_signature: Optional[str] = Header(default=None, alias="X-Signature"),
    db: AsyncSession = Depends(get_db),
    settings: PaymentSettings = Depends(get_payment_settings),
):
    raw_body = await request.body()
    return await WebhookReconciler.handle(db, settings, raw_body, x_signature)
