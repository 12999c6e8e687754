import enum
import uuid

from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from shared.config.database import Base


class OrderStatus(str, enum.Enum):
    """Fulfilment status."""
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    GATEWAY = "gateway"
    COD = "cod"


def _enum_column(enum_cls, **kwargs):
    # Stored as plain strings ('paid', not 'PAID') without a native DB enum
    return Column(
        Enum(enum_cls, native_enum=False, values_callable=lambda e: [m.value for m in e], length=20),
        **kwargs,
    )


class Order(Base):
    __tablename__ = "orders"
    # We use a separate schema to simulate microservice isolation
    __table_args__ = {"schema": "order_schema"}

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(64), nullable=False, index=True)
    total_amount = Column(Float, nullable=False)
    shipping_address = Column(JSON, nullable=False)
    notes = Column(Text, nullable=True)

    status = _enum_column(OrderStatus, nullable=False, default=OrderStatus.PENDING)
    payment_status = _enum_column(PaymentStatus, nullable=False, default=PaymentStatus.PENDING)
    payment_method = _enum_column(PaymentMethod, nullable=False)

    # Join key for every gateway-originated event; written once at creation
    gateway_order_id = Column(String(64), nullable=True, unique=True, index=True)
    gateway_payment_id = Column(String(64), nullable=True, index=True)
    gateway_signature = Column(String(128), nullable=True)
    payment_metadata = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship("OrderItem", back_populates="order", lazy="selectin", cascade="all, delete-orphan")


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = {"schema": "order_schema"}

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(36), ForeignKey("order_schema.orders.id"), nullable=False, index=True)
    # Products live in another service; the name/image snapshot survives deletion
    product_id = Column(String(36), nullable=True)
    product_name = Column(String(255), nullable=False)
    product_image = Column(String(1024), nullable=True)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")
