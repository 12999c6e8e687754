"""
Gateway checkout: create the payment intent, then verify the client's signed
confirmation.

The verifier and the webhook reconciler (webhook.py) both move an order to
paid. Neither holds a lock; they rely on the same guards instead:

* an order that is already paid short-circuits before any write;
* the paid write is a compare-and-set, so only one writer wins it;
* only the winner decrements inventory.
"""
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

import structlog
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.models import PaymentMethod
from services.order_service.repository import OrderRepository
from services.order_service.schemas import (
    CheckoutRequest,
    VerificationFailedMetadata,
    VerificationMetadata,
    dump_payment_metadata,
)
from services.order_service.service import build_order, commit_stock
from services.order_service.state_machine import is_payment_settled
from shared.config.settings import PaymentSettings
from shared.observability import ecomm_orders_created_total, ecomm_payment_verifications_total
from shared.security import AuthenticatedUser

from .gateway import GatewayClient, GatewayError
from .schemas import CreatePaymentOrderResponse, Prefill, VerifyPaymentRequest, VerifyPaymentResponse
from .signatures import verify_payment_signature

logger = structlog.get_logger(__name__)


def to_minor_units(amount: float) -> int:
    """Major currency units to the gateway's smallest unit, rounding half up."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentService:

    @staticmethod
    async def create_order(
        db: AsyncSession,
        user: AuthenticatedUser,
        data: CheckoutRequest,
        gateway: GatewayClient,
        settings: PaymentSettings,
    ) -> CreatePaymentOrderResponse:
        # Our id exists before the gateway order so it can serve as the receipt
        order_id = str(uuid.uuid4())
        amount = to_minor_units(data.total_amount)
        address = data.shipping_address

        try:
            gateway_order = await gateway.create_order(
                amount=amount,
                currency=settings.currency,
                receipt=order_id,
                notes={
                    "user_id": user.id,
                    "user_email": user.email or "",
                    "customer_name": address.full_name,
                    "customer_phone": address.phone,
                },
            )
        except GatewayError as e:
            logger.error("gateway_order_failed", order_id=order_id, user_id=user.id, error=str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create payment order",
            )

        gateway_order_id = gateway_order["id"]
        logger.info("gateway_order_created", order_id=order_id, gateway_order_id=gateway_order_id, amount=amount)

        order = build_order(
            user,
            data,
            PaymentMethod.GATEWAY,
            order_id=order_id,
            gateway_order_id=gateway_order_id,
        )
        try:
            await OrderRepository.create_order(db, order)
        except SQLAlchemyError:
            await db.rollback()
            # The gateway order is left orphaned; it never charges on its own
            logger.exception(
                "order_persist_failed",
                order_id=order_id,
                gateway_order_id=gateway_order_id,
                user_id=user.id,
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create order",
            )

        ecomm_orders_created_total.labels(payment_method=PaymentMethod.GATEWAY.value).inc()

        return CreatePaymentOrderResponse(
            order_id=order_id,
            gateway_order_id=gateway_order_id,
            gateway_key=gateway.key_id,
            amount=amount,
            currency=settings.currency,
            prefill=Prefill(name=address.full_name, email=user.email, contact=address.phone),
        )

    @staticmethod
    async def verify_payment(
        db: AsyncSession,
        user: AuthenticatedUser,
        data: VerifyPaymentRequest,
        settings: PaymentSettings,
    ) -> VerifyPaymentResponse:
        log = logger.bind(order_id=data.order_id, gateway_order_id=data.gateway_order_id)

        order = await OrderRepository.get_order(db, data.order_id)
        if not order:
            log.warning("verify_order_not_found")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

        if order.user_id != user.id:
            log.warning("verify_user_mismatch", order_user=order.user_id, current_user=user.id)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized access to order")

        # Replay of another order's confirmation
        if order.gateway_order_id != data.gateway_order_id:
            log.error("verify_gateway_order_mismatch", stored=order.gateway_order_id)
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Order ID mismatch")

        if is_payment_settled(order.payment_status):
            log.info("payment_already_verified")
            ecomm_payment_verifications_total.labels(result="already_paid").inc()
            return VerifyPaymentResponse(success=True, message="Payment already verified", order_id=data.order_id)

        now = datetime.now(timezone.utc)

        if not verify_payment_signature(
            settings.key_secret, data.gateway_order_id, data.gateway_payment_id, data.gateway_signature
        ):
            log.error("payment_signature_invalid", gateway_payment_id=data.gateway_payment_id)
            metadata = VerificationFailedMetadata(
                gateway_payment_id=data.gateway_payment_id,
                error="Signature verification failed",
                failed_at=now,
            )
            await OrderRepository.mark_payment_failed(db, data.order_id, metadata=dump_payment_metadata(metadata))
            ecomm_payment_verifications_total.labels(result="invalid_signature").inc()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment verification failed")

        won = await OrderRepository.mark_payment_paid(
            db,
            data.order_id,
            gateway_payment_id=data.gateway_payment_id,
            gateway_signature=data.gateway_signature,
            metadata=dump_payment_metadata(VerificationMetadata(verified_at=now)),
        )
        if not won:
            # The webhook confirmed this order between our read and our write
            log.info("payment_confirmed_concurrently")
            ecomm_payment_verifications_total.labels(result="lost_race").inc()
            return VerifyPaymentResponse(success=True, message="Payment already verified", order_id=data.order_id)

        log.info("payment_verified", gateway_payment_id=data.gateway_payment_id)
        ecomm_payment_verifications_total.labels(result="verified").inc()

        await commit_stock(db, data.order_id, source="verify")

        return VerifyPaymentResponse(success=True, message="Payment verified successfully", order_id=data.order_id)
