"""SQLAlchemy models for orders and their line items.

The schema consists of an ``orders`` table and an ``order_items`` table.
Items belong to exactly one order and are deleted with it.
"""

import uuid
from datetime import datetime, timezone
from typing import List

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from .domain import OrderStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class OrderModel(Base):
    """SQLAlchemy model representing an order.

    Attributes:
        id: Public UUID primary key.
        status: Current status, stored as the enum value.
        total_amount: Total order amount (sum of price * quantity).
        total_items: Total number of units across all items.
        created_at: Insertion timestamp (UTC).
        updated_at: Timestamp of the last status write (UTC).
        items: Owned line items, in insertion order.
    """

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", native_enum=False, length=16),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )
    total_amount = mapped_column(Numeric(12, 2), nullable=False)
    total_items = mapped_column(Integer, nullable=False)
    created_at = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    items: Mapped[List["OrderItemModel"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
        lazy="selectin",
    )


class OrderItemModel(Base):
    """SQLAlchemy model representing one line item of an order.

    ``price`` is the catalog price at the time the order was created.
    """

    __tablename__ = "order_items"

    id = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id = mapped_column(Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = mapped_column(String(64), nullable=False)
    quantity = mapped_column(Integer, nullable=False)
    price = mapped_column(Numeric(12, 2), nullable=False)

    order: Mapped[OrderModel] = relationship(back_populates="items")
