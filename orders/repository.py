"""Repository layer for persisting orders.

This module contains the SQLAlchemy implementation of
``OrderRepositoryPort``. It keeps a thin interface so the domain layer is
not coupled to ORM details: every method opens its own transaction and
returns domain ``Order`` objects, never ORM rows.
"""

import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .domain import Order, OrderItem, OrderNotFound, OrderStatus, PersistenceFailure
from .models import OrderItemModel, OrderModel, utcnow


def _to_domain(obj: OrderModel) -> Order:
    return Order(
        id=obj.id,
        status=OrderStatus(obj.status),
        total_amount=Decimal(obj.total_amount),
        total_items=obj.total_items,
        created_at=obj.created_at,
        updated_at=obj.updated_at,
        items=[
            OrderItem(product_id=it.product_id, quantity=it.quantity, price=Decimal(it.price))
            for it in obj.items
        ],
    )


class SqlAlchemyOrderRepository:
    """Repository that persists Order domain objects using SQLAlchemy.

    Args:
        session_factory: ``sessionmaker`` bound to the orders database.
            It should be configured with ``expire_on_commit=False``.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def create(self, total_amount: Decimal, total_items: int, items: List[OrderItem]) -> Order:
        """Persist a new order and its items in one transaction.

        Returns:
            Order: The stored order with its generated id and timestamps.

        Raises:
            PersistenceFailure: If the write fails. Nothing is stored.
        """
        try:
            with self.session_factory.begin() as s:
                obj = OrderModel(
                    status=OrderStatus.PENDING,
                    total_amount=total_amount,
                    total_items=total_items,
                    items=[
                        OrderItemModel(product_id=it.product_id, quantity=it.quantity, price=it.price)
                        for it in items
                    ],
                )
                s.add(obj)
                s.flush()
                s.refresh(obj)
                order = _to_domain(obj)
        except SQLAlchemyError as exc:
            raise PersistenceFailure("order not persisted") from exc
        return order

    def count(self, status: Optional[OrderStatus] = None) -> int:
        stmt = select(func.count()).select_from(OrderModel)
        if status is not None:
            stmt = stmt.where(OrderModel.status == status)
        try:
            with self.session_factory() as s:
                return s.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            raise PersistenceFailure("orders not counted") from exc

    def find_many(self, status: Optional[OrderStatus], skip: int, take: int) -> List[Order]:
        """Return a page of orders, newest first.

        Ties on ``created_at`` are broken by ``id`` so the order is stable
        across calls.
        """
        stmt = select(OrderModel).order_by(OrderModel.created_at.desc(), OrderModel.id).offset(skip).limit(take)
        if status is not None:
            stmt = stmt.where(OrderModel.status == status)
        try:
            with self.session_factory() as s:
                return [_to_domain(o) for o in s.scalars(stmt).all()]
        except SQLAlchemyError as exc:
            raise PersistenceFailure("orders not loaded") from exc

    def find_by_id(self, order_id: uuid.UUID) -> Optional[Order]:
        try:
            with self.session_factory() as s:
                obj = s.get(OrderModel, order_id)
                return _to_domain(obj) if obj else None
        except SQLAlchemyError as exc:
            raise PersistenceFailure("order not loaded") from exc

    def update_status(self, order_id: uuid.UUID, status: OrderStatus) -> Order:
        """Overwrite the status of an order and bump ``updated_at``.

        Raises:
            OrderNotFound: If the row does not exist.
            PersistenceFailure: If the write fails.
        """
        try:
            with self.session_factory.begin() as s:
                obj = s.get(OrderModel, order_id, with_for_update=True)
                if obj is None:
                    raise OrderNotFound(order_id)
                obj.status = status
                obj.updated_at = utcnow()
                s.flush()
                s.refresh(obj)
                order = _to_domain(obj)
        except SQLAlchemyError as exc:
            raise PersistenceFailure("status not updated") from exc
        return order
