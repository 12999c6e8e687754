from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.config.settings import PaymentSettings, get_payment_settings
from shared.security import AuthenticatedUser, get_current_user
from shared.security.dependencies import verify_internal_api_key

from .schemas import CheckoutRequest, CODOrderResponse, OrderResponse, OrderStatusUpdate, OrderStatusUpdateResponse
from .service import OrderService

router = APIRouter()
# Back-office routes: X-Internal-API-Key on every endpoint
admin_router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


@router.post("/cod", response_model=CODOrderResponse)
async def create_cod_order(
    payload: CheckoutRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    settings: PaymentSettings = Depends(get_payment_settings),
):
    return await OrderService.create_cod_order(db, user, payload, settings)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.get_order_for_user(db, user, order_id)


@admin_router.patch("/{order_id}/status", response_model=OrderStatusUpdateResponse)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
):
    return await OrderService.update_status(db, order_id, payload.status)
