"""In-process adapters for the orders domain ports.

These implement ``ProductCatalogPort`` and ``OrderRepositoryPort`` without
network or database access. They are intended for unit tests and local
development where deterministic behavior is useful and external services
are not required.
"""

import copy
import threading
import uuid
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .domain import (
    Order,
    OrderItem,
    OrderNotFound,
    OrderRepositoryPort,
    OrderStatus,
    ProductCatalogPort,
    ProductRecord,
)
from .models import utcnow


class StaticProductCatalog(ProductCatalogPort):
    """Catalog answering from a fixed set of products.

    Unknown ids are left out of the answer, like a real catalog would.
    Every call is recorded in ``calls`` so tests can assert on it.
    """

    def __init__(self, products: Iterable[ProductRecord] = ()):
        self.products: Dict[str, ProductRecord] = {p.id: p for p in products}
        self.calls: List[List[str]] = []

    def validate(self, product_ids: List[str]) -> List[ProductRecord]:
        self.calls.append(list(product_ids))
        return [self.products[pid] for pid in product_ids if pid in self.products]


class InMemoryOrderRepository(OrderRepositoryPort):
    """Thread-safe dict-backed order store.

    Stored orders are copied on the way in and out so callers can never
    mutate persisted state. ``status_writes`` counts ``update_status``
    calls.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._orders: Dict[uuid.UUID, Order] = {}
        self.status_writes = 0

    def create(self, total_amount: Decimal, total_items: int, items: List[OrderItem]) -> Order:
        now = utcnow()
        order = Order(
            id=uuid.uuid4(),
            status=OrderStatus.PENDING,
            total_amount=total_amount,
            total_items=total_items,
            created_at=now,
            updated_at=now,
            items=[OrderItem(product_id=it.product_id, quantity=it.quantity, price=it.price) for it in items],
        )
        with self._lock:
            self._orders[order.id] = order
            return copy.deepcopy(order)

    def _matching(self, status: Optional[OrderStatus]) -> List[Order]:
        return [o for o in self._orders.values() if status is None or o.status == status]

    def count(self, status: Optional[OrderStatus] = None) -> int:
        with self._lock:
            return len(self._matching(status))

    def find_many(self, status: Optional[OrderStatus], skip: int, take: int) -> List[Order]:
        with self._lock:
            rows = sorted(self._matching(status), key=lambda o: str(o.id))
            rows.sort(key=lambda o: o.created_at, reverse=True)
            return copy.deepcopy(rows[skip:skip + take])

    def find_by_id(self, order_id: uuid.UUID) -> Optional[Order]:
        with self._lock:
            order = self._orders.get(order_id)
            return copy.deepcopy(order) if order else None

    def update_status(self, order_id: uuid.UUID, status: OrderStatus) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                raise OrderNotFound(order_id)
            order.status = status
            order.updated_at = utcnow()
            self.status_writes += 1
            return copy.deepcopy(order)
