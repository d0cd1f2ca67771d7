"""Tests for paginated listing and lookup in OrderQueryService."""

import math
import uuid

import pytest

from orders.domain import (
    InvalidStatus,
    OrderLine,
    OrderNotFound,
    OrderQueryService,
    OrderStatus,
    OrderWorkflow,
    ValidationFailure,
)


@pytest.fixture
def seeded(catalog, memory_repo):
    """Seven orders: four PENDING, three PAID."""
    workflow = OrderWorkflow(catalog, memory_repo)
    orders = [workflow.create([OrderLine("p1", n + 1)]) for n in range(7)]
    for o in orders[:3]:
        workflow.change_status(o.id, OrderStatus.PAID)
    return OrderQueryService(memory_repo)


@pytest.mark.parametrize("page,limit", [(1, 3), (2, 3), (3, 3), (4, 3), (1, 7), (1, 100), (2, 5)])
def test_list_respects_limit_and_last_page(seeded, page, limit):
    out = seeded.list_orders(page=page, limit=limit)
    assert len(out.data) <= limit
    assert out.total == 7
    assert out.page == page
    assert out.last_page == math.ceil(7 / limit)


def test_list_pages_do_not_overlap_and_cover_everything(seeded):
    seen = []
    for page in range(1, 4):
        seen += [o.id for o in seeded.list_orders(page=page, limit=3).data]
    assert len(seen) == 7
    assert len(set(seen)) == 7


def test_list_filters_by_status(seeded):
    paid = seeded.list_orders(page=1, limit=10, status=OrderStatus.PAID)
    assert paid.total == 3
    assert paid.last_page == 1
    assert all(o.status == OrderStatus.PAID for o in paid.data)

    pending = seeded.list_orders(page=1, limit=10, status="PENDING")
    assert pending.total == 4
    assert all(o.status == OrderStatus.PENDING for o in pending.data)


def test_list_without_filter_returns_any_status(seeded):
    out = seeded.list_orders(page=1, limit=10)
    assert {o.status for o in out.data} == {OrderStatus.PAID, OrderStatus.PENDING}


def test_list_empty_store(memory_repo):
    out = OrderQueryService(memory_repo).list_orders()
    assert out.data == []
    assert out.total == 0
    assert out.last_page == 0


def test_list_uses_default_limit(seeded, monkeypatch):
    from orders import settings
    monkeypatch.setattr(settings, "DEFAULT_PAGE_LIMIT", 2)
    out = seeded.list_orders()
    assert len(out.data) == 2
    assert out.last_page == 4


@pytest.mark.parametrize("page,limit", [(0, 10), (-1, 10), (1, 0)])
def test_list_rejects_non_positive_page_or_limit(seeded, page, limit):
    with pytest.raises(ValidationFailure):
        seeded.list_orders(page=page, limit=limit)


def test_list_rejects_unknown_status(seeded):
    with pytest.raises(InvalidStatus):
        seeded.list_orders(status="LOST")


def test_get_order_not_found(memory_repo):
    oid = uuid.uuid4()
    with pytest.raises(OrderNotFound) as e:
        OrderQueryService(memory_repo).get_order(oid)
    assert str(e.value) == f"order with id {oid} not found"
