"""Tests for client-side payment confirmation: POST /verify."""

from services.order_service.models import OrderStatus, PaymentStatus

from conftest import (
    auth_headers,
    checkout_body,
    load_order,
    load_product,
    seed_order,
    seed_product,
    sign_payment,
)


def verify_body(gateway_order_id="order_gw1", payment_id="pay_1", order_id="order-local-1", signature=None):
    return {
        "gateway_order_id": gateway_order_id,
        "gateway_payment_id": payment_id,
        "gateway_signature": signature or sign_payment(gateway_order_id, payment_id),
        "order_id": order_id,
    }


class TestVerifyPayment:
    async def test_marks_paid_and_decrements_stock(self, payment_client, session_factory):
        await seed_product(session_factory, stock=5)
        await seed_order(session_factory)

        response = await payment_client.post("/verify", json=verify_body(), headers=auth_headers())

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Payment verified successfully",
            "order_id": "order-local-1",
        }
        order = await load_order(session_factory)
        assert order.payment_status == PaymentStatus.PAID
        assert order.status == OrderStatus.PROCESSING
        assert order.gateway_payment_id == "pay_1"
        assert order.gateway_signature == sign_payment("order_gw1", "pay_1")
        assert order.payment_metadata["kind"] == "verification"
        assert order.payment_metadata["verification_method"] == "signature"
        assert (await load_product(session_factory)).stock_quantity == 3

    async def test_repeat_verification_does_not_decrement_again(self, payment_client, session_factory):
        await seed_product(session_factory, stock=5)
        await seed_order(session_factory)

        await payment_client.post("/verify", json=verify_body(), headers=auth_headers())
        response = await payment_client.post("/verify", json=verify_body(), headers=auth_headers())

        assert response.status_code == 200
        assert response.json()["message"] == "Payment already verified"
        assert (await load_product(session_factory)).stock_quantity == 3

    async def test_checkout_then_verify(self, payment_client, session_factory):
        await seed_product(session_factory, stock=5)
        created = (await payment_client.post("/create-order", json=checkout_body(), headers=auth_headers())).json()

        response = await payment_client.post(
            "/verify",
            json=verify_body(gateway_order_id=created["gateway_order_id"], order_id=created["order_id"]),
            headers=auth_headers(),
        )

        assert response.json()["message"] == "Payment verified successfully"
        assert (await load_order(session_factory, created["order_id"])).payment_status == PaymentStatus.PAID
        assert (await load_product(session_factory)).stock_quantity == 3

    async def test_tampered_signature_marks_failed(self, payment_client, session_factory):
        await seed_product(session_factory, stock=5)
        await seed_order(session_factory)

        response = await payment_client.post(
            "/verify", json=verify_body(signature="0" * 64), headers=auth_headers()
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Payment verification failed"}
        order = await load_order(session_factory)
        assert order.payment_status == PaymentStatus.FAILED
        assert order.status == OrderStatus.PENDING
        assert order.payment_metadata["kind"] == "verification_failed"
        assert order.payment_metadata["gateway_payment_id"] == "pay_1"
        assert order.payment_metadata["error"] == "Signature verification failed"
        assert (await load_product(session_factory)).stock_quantity == 5

    async def test_failed_payment_can_be_retried(self, payment_client, session_factory):
        await seed_product(session_factory, stock=5)
        await seed_order(session_factory, payment_status=PaymentStatus.FAILED)

        response = await payment_client.post(
            "/verify", json=verify_body(payment_id="pay_2"), headers=auth_headers()
        )

        assert response.json()["message"] == "Payment verified successfully"
        order = await load_order(session_factory)
        assert order.payment_status == PaymentStatus.PAID
        assert order.gateway_payment_id == "pay_2"
        assert (await load_product(session_factory)).stock_quantity == 3

    async def test_paid_order_short_circuits_before_signature_check(self, payment_client, session_factory):
        await seed_product(session_factory, stock=5)
        await seed_order(session_factory, payment_status=PaymentStatus.PAID, status=OrderStatus.PROCESSING)

        response = await payment_client.post(
            "/verify", json=verify_body(signature="0" * 64), headers=auth_headers()
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Payment already verified"
        order = await load_order(session_factory)
        assert order.payment_status == PaymentStatus.PAID
        assert order.payment_metadata is None
        assert (await load_product(session_factory)).stock_quantity == 5

    async def test_other_users_order(self, payment_client, session_factory):
        await seed_order(session_factory, user_id="someone-else")

        response = await payment_client.post("/verify", json=verify_body(), headers=auth_headers())

        assert response.status_code == 403
        assert response.json() == {"error": "Unauthorized access to order"}
        assert (await load_order(session_factory)).payment_status == PaymentStatus.PENDING

    async def test_unknown_order(self, payment_client):
        response = await payment_client.post(
            "/verify", json=verify_body(order_id="missing"), headers=auth_headers()
        )

        assert response.status_code == 404
        assert response.json() == {"error": "Order not found"}

    async def test_gateway_order_mismatch(self, payment_client, session_factory):
        await seed_order(session_factory)
        await seed_order(session_factory, order_id="order-local-2", gateway_order_id="order_gw2")

        # Valid signature, but for another order's gateway intent
        response = await payment_client.post(
            "/verify", json=verify_body(gateway_order_id="order_gw2"), headers=auth_headers()
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Order ID mismatch"}
        assert (await load_order(session_factory)).payment_status == PaymentStatus.PENDING

    async def test_requires_authentication(self, payment_client, session_factory):
        await seed_order(session_factory)

        response = await payment_client.post("/verify", json=verify_body())

        assert response.status_code == 401

    async def test_missing_fields(self, payment_client):
        body = verify_body()
        del body["gateway_signature"]

        response = await payment_client.post("/verify", json=body, headers=auth_headers())

        assert response.status_code == 400
        assert "gateway_signature" in response.json()["error"]

    async def test_verify_after_cancel_keeps_order_cancelled(self, payment_client, session_factory):
        await seed_product(session_factory, stock=5)
        await seed_order(session_factory, status=OrderStatus.CANCELLED)

        response = await payment_client.post("/verify", json=verify_body(), headers=auth_headers())

        assert response.status_code == 200
        order = await load_order(session_factory)
        assert order.payment_status == PaymentStatus.PAID
        assert order.status == OrderStatus.CANCELLED
        assert (await load_product(session_factory)).stock_quantity == 5
