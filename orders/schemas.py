"""Pydantic schemas for orders.

This module exposes the request/validation schemas used by the orders API
and message dispatcher, the response schemas, and the schema of the
product catalog answer. Wire names are camelCase (``productId``,
``totalAmount``, ``lastPage``); inbound payloads also accept snake_case.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from . import settings
from .domain import Order, OrderLine, OrderPage, OrderStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _id_to_str(v):
    # catalog and clients may send numeric product ids
    if isinstance(v, int) and not isinstance(v, bool):
        return str(v)
    return v


ProductId = Annotated[str, BeforeValidator(_id_to_str)]


# ---- Requests ----
class OrderItemIn(CamelModel):
    """Input schema for a single order line item.

    Attributes:
        product_id: Catalog product identifier. Integers are accepted and
            normalized to strings.
        quantity: Positive integer indicating units requested.
    """

    product_id: ProductId = Field(min_length=1, max_length=64)
    quantity: int = Field(gt=0)


class CreateOrderDTO(CamelModel):
    """Schema for creating an order: a non-empty list of items."""

    items: List[OrderItemIn] = Field(min_length=1)

    def to_lines(self) -> List[OrderLine]:
        return [OrderLine(product_id=i.product_id, quantity=i.quantity) for i in self.items]


class PaginationOrderDTO(CamelModel):
    """Query shape for listing orders.

    Attributes:
        page: 1-based page number.
        limit: Page size. Defaults to ``settings.DEFAULT_PAGE_LIMIT``.
        status: Optional status filter.
    """

    page: int = Field(default=1, gt=0)
    limit: int = Field(default_factory=lambda: settings.DEFAULT_PAGE_LIMIT, gt=0)
    status: Optional[OrderStatus] = None


class ChangeOrderStatusDTO(CamelModel):
    id: uuid.UUID
    status: OrderStatus


class StatusUpdateDTO(CamelModel):
    status: OrderStatus


# ---- Responses ----
class OrderItemReadDTO(CamelModel):
    product_id: str
    quantity: int
    price: float
    name: Optional[str] = None


class OrderReadDTO(CamelModel):
    """Read model for an order as returned to clients."""

    id: uuid.UUID
    status: OrderStatus
    total_amount: float
    total_items: int
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemReadDTO] = []

    @classmethod
    def from_domain(cls, order: Order) -> "OrderReadDTO":
        return cls(
            id=order.id,
            status=order.status,
            total_amount=float(order.total_amount),
            total_items=order.total_items,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[
                OrderItemReadDTO(
                    product_id=it.product_id,
                    quantity=it.quantity,
                    price=float(it.price),
                    name=it.name,
                )
                for it in order.items
            ],
        )


class PageMetaDTO(CamelModel):
    total: int
    page: int
    last_page: int


class PaginatedOrdersDTO(CamelModel):
    data: List[OrderReadDTO]
    meta: PageMetaDTO

    @classmethod
    def from_domain(cls, page: OrderPage) -> "PaginatedOrdersDTO":
        return cls(
            data=[OrderReadDTO.from_domain(o) for o in page.data],
            meta=PageMetaDTO(total=page.total, page=page.page, last_page=page.last_page),
        )


def dump(dto: BaseModel) -> dict:
    """Serialize a response schema to JSON-ready camelCase data."""
    return dto.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---- Product catalog answer ----
class ProductRecordDTO(BaseModel):
    """One product record returned by the catalog; extra keys are ignored."""

    id: ProductId
    price: Decimal = Field(ge=0)
    name: str
