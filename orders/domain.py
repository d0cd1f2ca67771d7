"""Domain models, ports and services for orders.

This module contains the dataclasses used as domain objects for orders,
protocol definitions (ports) for the product catalog and the order store,
the error hierarchy shared by every layer, and the two domain services:
``OrderWorkflow`` (create an order, change its status) and
``OrderQueryService`` (paginated listing and lookup by id).
"""

import logging
import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, List, Optional, Protocol

from . import settings

logger = logging.getLogger("orders.domain")

# prices and totals are stored with two decimal places
MONEY_QUANTUM = Decimal("0.01")


# ---- Enums ----
class OrderStatus(str, Enum):
    """Enumeration of the possible order statuses.

    Any status may be set from any other status; the service does not
    enforce a transition graph.
    """

    PENDING = "PENDING"
    PAID = "PAID"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value) -> "OrderStatus":
        """Return the member matching ``value`` or raise ``InvalidStatus``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidStatus(value) from None


# ---- Errors ----
class OrderError(Exception):
    """Base class for failures raised by the orders service.

    Attributes:
        status: HTTP-like status classification used at the boundary.
        code: Short machine-readable error code.
    """

    status = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.code)

    @property
    def message(self) -> str:
        return str(self)


class ValidationFailure(OrderError):
    """Malformed input rejected before any workflow logic runs."""

    status = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.errors = errors or []


class EmptyOrder(ValidationFailure):
    code = "EMPTY_ORDER"


class InvalidStatus(ValidationFailure):
    code = "INVALID_STATUS"

    def __init__(self, value):
        valid = ", ".join(s.value for s in OrderStatus)
        super().__init__(f"invalid status {value!r}, valid statuses are {valid}")
        self.value = value


class OrderNotFound(OrderError):
    status = 404
    code = "NOT_FOUND"

    def __init__(self, order_id):
        super().__init__(f"order with id {order_id} not found")
        self.order_id = order_id


class CatalogUnavailable(OrderError):
    """The product catalog could not be reached or answered badly."""

    status = 503
    code = "CATALOG_UNAVAILABLE"


class ProductNotFound(OrderError):
    """The catalog answer lacks one or more requested product ids."""

    status = 400
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, missing: List[str]):
        super().__init__(f"products not found: {', '.join(missing)}")
        self.missing = missing


class PersistenceFailure(OrderError):
    """A database write or read failed; the transaction was rolled back."""

    code = "PERSISTENCE_FAILURE"


class OrderCreationFailed(OrderError):
    """Generic creation error surfaced to clients.

    The specific reason is kept as ``__cause__`` and written to the server
    log; it is never part of the message.
    """

    status = 400
    code = "ORDER_CREATION_FAILED"


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class OrderLine:
    """A requested line of a new order: product and quantity, no price yet."""

    product_id: str
    quantity: int


@dataclass(frozen=True)
class ProductRecord:
    """Authoritative product data returned by the catalog."""

    id: str
    price: Decimal
    name: str


@dataclass(frozen=True)
class OrderItem:
    """A single line item in an order.

    Attributes:
        product_id: Identifier of the product in the external catalog.
        quantity: Number of units ordered (positive).
        price: Unit price snapshot taken from the catalog at creation time.
        name: Product display name. Only filled in on the creation response;
            it is not stored.

    The dataclass is frozen because items are immutable once created in
    the context of an order.
    """

    product_id: str
    quantity: int
    price: Decimal
    name: Optional[str] = None


@dataclass
class Order:
    """Container for order data.

    Attributes:
        id: Persistent identifier generated when the order is stored.
        status: Current OrderStatus.
        total_amount: Sum of ``price * quantity`` over the items.
        total_items: Sum of the item quantities.
        created_at: Creation timestamp.
        updated_at: Timestamp of the last status write.
        items: Line items owned by the order, in request order.
    """

    id: uuid.UUID
    status: OrderStatus
    total_amount: Decimal
    total_items: int
    created_at: datetime
    updated_at: datetime
    items: List[OrderItem] = field(default_factory=list)

    def with_product_names(self, names: Dict[str, str]) -> "Order":
        """Return a copy whose items carry the product display names."""
        items = [replace(it, name=names.get(it.product_id)) for it in self.items]
        return replace(self, items=items)


@dataclass
class OrderPage:
    """One page of orders plus the pagination metadata."""

    data: List[Order]
    total: int
    page: int
    last_page: int


# ---- Ports (DIP) ----
class ProductCatalogPort(Protocol):
    """Port describing the product catalog used by the domain."""

    def validate(self, product_ids: List[str]) -> List[ProductRecord]:
        """Fetch the catalog records for the given product ids.

        Implementations must not invent records. Ids the catalog does not
        know are simply absent from the result.

        Raises:
            CatalogUnavailable: When the catalog cannot answer.
        """
        raise NotImplementedError()


class OrderRepositoryPort(Protocol):
    """Port describing order persistence.

    Every method runs in its own transaction. Database errors are raised as
    ``PersistenceFailure``.
    """

    def create(self, total_amount: Decimal, total_items: int, items: List[OrderItem]) -> Order:
        """Atomically store a new PENDING order and its items."""
        raise NotImplementedError()

    def count(self, status: Optional[OrderStatus] = None) -> int:
        raise NotImplementedError()

    def find_many(self, status: Optional[OrderStatus], skip: int, take: int) -> List[Order]:
        """Return a stable, newest-first slice of orders."""
        raise NotImplementedError()

    def find_by_id(self, order_id: uuid.UUID) -> Optional[Order]:
        raise NotImplementedError()

    def update_status(self, order_id: uuid.UUID, status: OrderStatus) -> Order:
        """Overwrite the status and bump ``updated_at``.

        Raises:
            OrderNotFound: If the order vanished between lookup and write.
        """
        raise NotImplementedError()


# ---- Domain services ----
class OrderQueryService:
    """Read-side service: paginated listing and lookup by id."""

    def __init__(self, orders: OrderRepositoryPort):
        self.orders = orders

    def list_orders(
        self,
        page: int = 1,
        limit: Optional[int] = None,
        status: Optional[OrderStatus] = None,
    ) -> OrderPage:
        """Return one page of orders, optionally filtered by status.

        Args:
            page: 1-based page number.
            limit: Page size; defaults to ``settings.DEFAULT_PAGE_LIMIT``.
            status: Only return orders in this status when given.

        Returns:
            OrderPage: At most ``limit`` orders plus ``total`` (matching
            orders overall) and ``last_page = ceil(total / limit)``.

        Raises:
            ValidationFailure: If ``page`` or ``limit`` is not positive.
        """
        if limit is None:
            limit = settings.DEFAULT_PAGE_LIMIT
        if page < 1:
            raise ValidationFailure("page must be a positive integer")
        if limit < 1:
            raise ValidationFailure("limit must be a positive integer")
        if status is not None:
            status = OrderStatus.parse(status)

        total = self.orders.count(status)
        data = self.orders.find_many(status=status, skip=(page - 1) * limit, take=limit)
        return OrderPage(data=data, total=total, page=page, last_page=math.ceil(total / limit))

    def get_order(self, order_id: uuid.UUID) -> Order:
        order = self.orders.find_by_id(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order


class OrderWorkflow:
    """Domain service responsible for creating orders and changing status.

    Creation validates products against the catalog, prices every line from
    the catalog answer, computes the totals and stores the order and its
    items in one transaction. Status changes are plain overwrites that skip
    the write when the order already has the target status.
    """

    def __init__(
        self,
        catalog: ProductCatalogPort,
        orders: OrderRepositoryPort,
        queries: Optional[OrderQueryService] = None,
    ):
        """Initialize the workflow with required dependencies.

        Args:
            catalog: ProductCatalogPort used to validate and price products.
            orders: OrderRepositoryPort used to store orders.
            queries: Query service used for lookups; built over ``orders``
                when omitted.
        """
        self.catalog = catalog
        self.orders = orders
        self.queries = queries or OrderQueryService(orders)

    def create(self, lines: List[OrderLine]) -> Order:
        """Create an order from the requested lines.

        Args:
            lines: Requested products and quantities, in order.

        Returns:
            The stored Order, each item enriched with the product name.
            Catalog prices are rounded half up to cents before pricing.

        Raises:
            EmptyOrder: If ``lines`` is empty. The catalog is not called.
            OrderCreationFailed: On any catalog, product or persistence
                failure. Nothing is stored in that case.
        """
        if not lines:
            raise EmptyOrder()

        product_ids = list(dict.fromkeys(line.product_id for line in lines))
        try:
            products = self._resolve_products(product_ids)
            items = [
                OrderItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=products[line.product_id].price.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP),
                )
                for line in lines
            ]
            total_amount = sum((it.price * it.quantity for it in items), Decimal("0"))
            total_items = sum(it.quantity for it in items)
            order = self.orders.create(total_amount=total_amount, total_items=total_items, items=items)
        except (CatalogUnavailable, ProductNotFound, PersistenceFailure) as exc:
            logger.error(
                "order creation failed",
                extra={"reason": exc.code, "detail": str(exc), "product_ids": product_ids},
            )
            raise OrderCreationFailed() from exc
        except Exception as exc:
            logger.exception(
                "order creation failed",
                extra={"reason": OrderError.code, "detail": repr(exc), "product_ids": product_ids},
            )
            raise OrderCreationFailed() from exc

        logger.info(
            "order created",
            extra={"order_id": str(order.id), "total_items": total_items, "total_amount": str(total_amount)},
        )
        return order.with_product_names({pid: p.name for pid, p in products.items()})

    def _resolve_products(self, product_ids: List[str]) -> Dict[str, ProductRecord]:
        records = {p.id: p for p in self.catalog.validate(product_ids)}
        missing = [pid for pid in product_ids if pid not in records]
        if missing:
            raise ProductNotFound(missing)
        return records

    def change_status(self, order_id: uuid.UUID, status) -> Order:
        """Set the status of an existing order.

        Calling this again with the status the order already has performs no
        write and returns the order untouched, so retries are safe.

        Raises:
            InvalidStatus: If ``status`` is not an OrderStatus value.
            OrderNotFound: If no order has ``order_id``.
        """
        status = OrderStatus.parse(status)
        order = self.queries.get_order(order_id)
        if order.status == status:
            logger.info("status unchanged", extra={"order_id": str(order_id), "status": status.value})
            return order

        updated = self.orders.update_status(order_id, status)
        logger.info(
            "status changed",
            extra={"order_id": str(order_id), "from_status": order.status.value, "to_status": status.value},
        )
        return updated
