"""
Webhook Reconciler.

Gateway-pushed payment events, authenticated only by an HMAC of the raw body.
Events can be duplicated, arrive before or after the client's own
confirmation, and arrive out of order, so:

* a captured event for an already paid order is acknowledged and dropped;
* a failed event never touches an order that is already paid;
* anything we recognise but cannot act on (unknown order, event type we do
  not handle, missing entity) is acknowledged with 200 so the gateway stops
  retrying. Only bad signatures and malformed bodies get a 4xx.
"""
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from services.order_service.repository import OrderRepository
from services.order_service.schemas import CapturedMetadata, FailedMetadata, dump_payment_metadata
from services.order_service.service import commit_stock
from services.order_service.state_machine import is_payment_settled
from shared.config.settings import PaymentSettings
from shared.observability import ecomm_webhook_events_total

from .schemas import WebhookAck, WebhookEvent
from .signatures import verify_webhook_signature

logger = structlog.get_logger(__name__)

CAPTURED_EVENTS = frozenset({"payment.captured", "order.paid"})
FAILED_EVENTS = frozenset({"payment.failed"})


class WebhookReconciler:

    @staticmethod
    async def handle(
        db: AsyncSession,
        settings: PaymentSettings,
        raw_body: bytes,
        signature: Optional[str],
    ) -> WebhookAck:
        if not settings.webhook_secret:
            logger.error("webhook_secret_not_configured")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Webhook not configured",
            )

        if not signature:
            logger.warning("webhook_missing_signature")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing signature")

        if not verify_webhook_signature(settings.webhook_secret, raw_body, signature):
            logger.warning("webhook_invalid_signature")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")

        try:
            event = WebhookEvent.model_validate_json(raw_body)
        except ValidationError as e:
            logger.warning("webhook_malformed_payload", errors=e.error_count())
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed payload")

        logger.info("webhook_received", event_type=event.event, gateway_order_id=event.gateway_order_id)

        if event.event in CAPTURED_EVENTS:
            outcome = await WebhookReconciler._handle_captured(db, event)
        elif event.event in FAILED_EVENTS:
            outcome = await WebhookReconciler._handle_failed(db, event)
        else:
            logger.info("webhook_unhandled_event", event_type=event.event)
            outcome = "unhandled"

        ecomm_webhook_events_total.labels(event=event.event, outcome=outcome).inc()
        return WebhookAck(outcome=outcome)

    @staticmethod
    async def _handle_captured(db: AsyncSession, event: WebhookEvent) -> str:
        gateway_order_id = event.gateway_order_id
        if not gateway_order_id:
            logger.error("webhook_missing_entity", event_type=event.event)
            return "ignored"

        order = await OrderRepository.get_by_gateway_order_id(db, gateway_order_id)
        if not order:
            logger.error("webhook_order_not_found", gateway_order_id=gateway_order_id)
            return "order_not_found"

        order_id = order.id
        if is_payment_settled(order.payment_status):
            logger.info("webhook_order_already_paid", order_id=order_id)
            return "duplicate"

        payment = event.payment
        metadata = CapturedMetadata(captured_at=datetime.now(timezone.utc))
        if payment:
            metadata = CapturedMetadata(
                captured_at=metadata.captured_at,
                amount=payment.amount,
                currency=payment.currency,
                method=payment.method,
                bank=payment.bank,
                wallet=payment.wallet,
                vpa=payment.vpa,
                contact=payment.contact,
                email=payment.email,
            )

        won = await OrderRepository.mark_payment_paid(
            db,
            order_id,
            gateway_payment_id=payment.id if payment else None,
            metadata=dump_payment_metadata(metadata),
        )
        if not won:
            logger.info("webhook_order_paid_concurrently", order_id=order_id)
            return "duplicate"

        logger.info("webhook_order_paid", order_id=order_id, gateway_payment_id=payment.id if payment else None)
        await commit_stock(db, order_id, source="webhook")
        return "applied"

    @staticmethod
    async def _handle_failed(db: AsyncSession, event: WebhookEvent) -> str:
        payment = event.payment
        if not payment or not payment.order_id:
            logger.error("webhook_missing_entity", event_type=event.event)
            return "ignored"

        order = await OrderRepository.get_by_gateway_order_id(db, payment.order_id)
        if not order:
            logger.error("webhook_order_not_found", gateway_order_id=payment.order_id)
            return "order_not_found"

        order_id = order.id
        # Never downgrade a confirmed payment, whatever order events arrive in
        if is_payment_settled(order.payment_status):
            logger.info("webhook_failure_ignored_for_paid_order", order_id=order_id)
            return "ignored"

        metadata = FailedMetadata(
            failed_at=datetime.now(timezone.utc),
            error_code=payment.error_code,
            error_description=payment.error_description,
            error_reason=payment.error_reason,
        )
        written = await OrderRepository.mark_payment_failed(db, order_id, metadata=dump_payment_metadata(metadata))
        if not written:
            logger.info("webhook_failure_ignored_for_paid_order", order_id=order_id)
            return "ignored"

        logger.info(
            "webhook_order_failed",
            order_id=order_id,
            error_code=payment.error_code,
            error_description=payment.error_description,
        )
        return "applied"
