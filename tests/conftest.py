"""Pytest fixtures for the storefront payment services."""

import json
import os

# Must be set before any app module is imported
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["OTLP_ENDPOINT"] = ""
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from services.order_service.models import Order, OrderItem, OrderStatus, PaymentMethod, PaymentStatus
from services.payment_service.gateway import GatewayError, get_gateway_client
from services.payment_service.signatures import hmac_sha256_hex, payment_signature
from services.product_service.models import Product
from shared.config.database import Base, get_db
from shared.config.settings import PaymentSettings, get_payment_settings
from shared.security import create_access_token

KEY_ID = "rzp_test_key"
KEY_SECRET = "test_key_secret"
WEBHOOK_SECRET = "test_webhook_secret"
INTERNAL_HEADERS = {"X-Internal-API-Key": "test-internal-key"}


class FakeGateway:
    """Stands in for the Razorpay client; records every create_order call."""

    key_id = KEY_ID

    def __init__(self):
        self.calls = []
        self.fail = False

    async def create_order(self, amount, currency, receipt, notes):
        if self.fail:
            raise GatewayError("gateway unreachable")
        self.calls.append({"amount": amount, "currency": currency, "receipt": receipt, "notes": notes})
        return {
            "id": f"order_test{len(self.calls)}",
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "status": "created",
        }


@pytest.fixture
def settings():
    return PaymentSettings(
        key_id=KEY_ID,
        key_secret=KEY_SECRET,
        webhook_secret=WEBHOOK_SECRET,
        currency="INR",
        cod_max_order_amount=50000.0,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        execution_options={"schema_translate_map": {"order_schema": None, "product_schema": None}},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


def _override(app, session_factory, settings, gateway):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_settings] = lambda: settings
    app.dependency_overrides[get_gateway_client] = lambda: gateway


@pytest.fixture
async def payment_client(session_factory, settings, gateway):
    from services.payment_service.main import payment_app

    _override(payment_app, session_factory, settings, gateway)
    async with AsyncClient(transport=ASGITransport(app=payment_app), base_url="http://test") as client:
        yield client
    payment_app.dependency_overrides.clear()


@pytest.fixture
async def order_client(session_factory, settings, gateway):
    from services.order_service.main import order_app

    _override(order_app, session_factory, settings, gateway)
    async with AsyncClient(transport=ASGITransport(app=order_app), base_url="http://test") as client:
        yield client
    order_app.dependency_overrides.clear()


@pytest.fixture
async def product_client(session_factory, settings, gateway):
    from services.product_service.main import product_app

    _override(product_app, session_factory, settings, gateway)
    async with AsyncClient(transport=ASGITransport(app=product_app), base_url="http://test") as client:
        yield client
    product_app.dependency_overrides.clear()


# --- helpers ---

def auth_headers(user_id="user-1", email="buyer@example.com"):
    token = create_access_token({"sub": user_id, "email": email})
    return {"Authorization": f"Bearer {token}"}


def checkout_body(product_id="prod-p", quantity=2, price=1250.0, total_amount=None):
    return {
        "items": [
            {
                "product_id": product_id,
                "product_name": "Silver Anklet",
                "product_image": "https://cdn.example.com/anklet.jpg",
                "quantity": quantity,
                "price": price,
            }
        ],
        "total_amount": total_amount if total_amount is not None else price * quantity,
        "shipping_address": {
            "full_name": "Asha Verma",
            "phone": "9876543210",
            "address": "12 MG Road",
            "city": "Jaipur",
            "state": "Rajasthan",
            "pincode": "302001",
        },
        "notes": "Gift wrap please",
    }


def sign_payment(gateway_order_id, gateway_payment_id):
    return payment_signature(KEY_SECRET, gateway_order_id, gateway_payment_id)


def webhook_request(event, gateway_order_id, payment_id="pay_test1", secret=WEBHOOK_SECRET, **entity):
    payment = {
        "id": payment_id,
        "order_id": gateway_order_id,
        "amount": 250000,
        "currency": "INR",
        "status": "captured" if event != "payment.failed" else "failed",
        "method": "upi",
        "vpa": "asha@okbank",
        "captured": event != "payment.failed",
        "contact": "+919876543210",
        "email": "buyer@example.com",
    }
    payment.update(entity)
    body = json.dumps(
        {
            "entity": "event",
            "account_id": "acc_test",
            "event": event,
            "contains": ["payment"],
            "payload": {"payment": {"entity": payment}},
            "created_at": 1767225600,
        }
    ).encode()
    return body, {"X-Signature": hmac_sha256_hex(secret, body), "Content-Type": "application/json"}


async def seed_product(session_factory, product_id="prod-p", stock=5, name="Silver Anklet", price=1250.0):
    async with session_factory() as session:
        session.add(Product(id=product_id, name=name, price=price, stock_quantity=stock, in_stock=stock > 0))
        await session.commit()


async def seed_order(
    session_factory,
    order_id="order-local-1",
    user_id="user-1",
    gateway_order_id="order_gw1",
    items=(("prod-p", 2),),
    payment_method=PaymentMethod.GATEWAY,
    payment_status=PaymentStatus.PENDING,
    status=OrderStatus.PENDING,
):
    async with session_factory() as session:
        session.add(
            Order(
                id=order_id,
                user_id=user_id,
                total_amount=2500.0,
                shipping_address={"full_name": "Asha Verma", "phone": "9876543210"},
                status=status,
                payment_status=payment_status,
                payment_method=payment_method,
                gateway_order_id=gateway_order_id,
                items=[
                    OrderItem(product_id=pid, product_name=f"Product {pid}", quantity=qty, price=1250.0)
                    for pid, qty in items
                ],
            )
        )
        await session.commit()


async def load_product(session_factory, product_id="prod-p"):
    async with session_factory() as session:
        return await session.get(Product, product_id)


async def load_order(session_factory, order_id="order-local-1"):
    async with session_factory() as session:
        return await session.get(Order, order_id)


async def count_orders(session_factory):
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(Order))).scalar_one()
