"""API tests for the order resources.

These tests exercise the HTTP API end to end against an in-memory SQLite
store and the static product catalog wired in by the ``client`` fixture.
"""

import uuid

import pytest
from fastapi.testclient import TestClient

from gateway.middleware import REQUEST_ID_CTX
from orders.adapters import StaticProductCatalog
from orders.api import app
from orders.domain import OrderQueryService, OrderWorkflow
from orders.providers import get_order_query_service, get_order_workflow

ORDERS_URL = "/orders"
DETAIL_URL = "/orders/{oid}"
STATUS_URL = "/orders/{oid}/status"


def _create(client, items):
    r = client.post(ORDERS_URL, json={"items": items})
    assert r.status_code == 201, r.text
    return r.json()


def test_create_order_returns_totals_and_named_items(client):
    body = _create(client, [{"productId": "p1", "quantity": 2}, {"productId": "p2", "quantity": 1}])

    uuid.UUID(body["id"])
    assert body["status"] == "PENDING"
    assert body["totalAmount"] == 25
    assert body["totalItems"] == 3
    assert body["items"] == [
        {"productId": "p1", "quantity": 2, "price": 10, "name": "Widget"},
        {"productId": "p2", "quantity": 1, "price": 5, "name": "Gadget"},
    ]
    assert "createdAt" in body and "updatedAt" in body


def test_create_accepts_snake_case_and_numeric_ids(client, catalog):
    from decimal import Decimal
    from orders.domain import ProductRecord
    catalog.products["42"] = ProductRecord(id="42", price=Decimal("1.25"), name="Bolt")

    body = _create(client, [{"product_id": 42, "quantity": 4}])
    assert body["totalAmount"] == 5
    assert body["items"][0]["productId"] == "42"


def test_create_order_unknown_product_is_generic_400(client):
    r = client.post(ORDERS_URL, json={"items": [{"productId": "p1", "quantity": 1}, {"productId": "zz", "quantity": 1}]})
    assert r.status_code == 400
    assert r.json() == {"status": 400, "message": "ORDER_CREATION_FAILED"}

    listed = client.get(ORDERS_URL).json()
    assert listed["meta"]["total"] == 0


@pytest.mark.parametrize("payload", [
    {"items": []},
    {"items": [{"productId": "p1", "quantity": 0}]},
    {"items": [{"productId": "", "quantity": 1}]},
    {"items": [{"quantity": 1}]},
    {},
])
def test_create_order_validation_error(client, catalog, payload):
    """Returns 400 with field detail when the payload fails DTO validation."""
    r = client.post(ORDERS_URL, json=payload)
    assert r.status_code == 400
    body = r.json()
    assert body["message"] == "VALIDATION_ERROR"
    assert body["errors"] and all("field" in e and "message" in e for e in body["errors"])
    assert catalog.calls == []


def test_get_order_by_id(client):
    created = _create(client, [{"productId": "p3", "quantity": 2}])
    r = client.get(DETAIL_URL.format(oid=created["id"]))
    assert r.status_code == 200
    body = r.json()
    assert body["id"] == created["id"]
    assert body["totalAmount"] == 5
    assert body["items"] == [{"productId": "p3", "quantity": 2, "price": 2.5}]


def test_get_order_not_found_names_id(client):
    oid = str(uuid.uuid4())
    r = client.get(DETAIL_URL.format(oid=oid))
    assert r.status_code == 404
    assert r.json() == {"status": 404, "message": f"order with id {oid} not found"}


def test_get_order_malformed_id_is_400(client):
    r = client.get(DETAIL_URL.format(oid="not-a-uuid"))
    assert r.status_code == 400


def test_list_orders_paginates(client):
    for _ in range(5):
        _create(client, [{"productId": "p1", "quantity": 1}])

    r = client.get(ORDERS_URL, params={"page": 2, "limit": 2})
    assert r.status_code == 200
    body = r.json()
    assert len(body["data"]) == 2
    assert body["meta"] == {"total": 5, "page": 2, "lastPage": 3}


def test_list_orders_filters_by_status(client):
    a = _create(client, [{"productId": "p1", "quantity": 1}])
    _create(client, [{"productId": "p2", "quantity": 1}])
    client.patch(STATUS_URL.format(oid=a["id"]), json={"status": "PAID"})

    body = client.get(ORDERS_URL, params={"status": "PAID"}).json()
    assert body["meta"]["total"] == 1
    assert [o["id"] for o in body["data"]] == [a["id"]]
    assert all(o["status"] == "PAID" for o in body["data"])

    everything = client.get(ORDERS_URL).json()
    assert everything["meta"]["total"] == 2


@pytest.mark.parametrize("params", [{"status": "LOST"}, {"page": 0}, {"limit": 0}, {"page": "x"}])
def test_list_orders_rejects_bad_query(client, params):
    r = client.get(ORDERS_URL, params=params)
    assert r.status_code == 400
    assert r.json()["message"] == "VALIDATION_ERROR"


def test_change_status_and_repeat_is_noop(client):
    created = _create(client, [{"productId": "p1", "quantity": 1}])
    url = STATUS_URL.format(oid=created["id"])

    r1 = client.patch(url, json={"status": "PAID"})
    assert r1.status_code == 200
    assert r1.json()["status"] == "PAID"

    r2 = client.patch(url, json={"status": "PAID"})
    assert r2.status_code == 200
    assert r2.json() == r1.json()


def test_change_status_unknown_order(client):
    oid = str(uuid.uuid4())
    r = client.patch(STATUS_URL.format(oid=oid), json={"status": "PAID"})
    assert r.status_code == 404
    assert oid in r.json()["message"]


def test_change_status_invalid_status(client):
    created = _create(client, [{"productId": "p1", "quantity": 1}])
    r = client.patch(STATUS_URL.format(oid=created["id"]), json={"status": "SHIPPED"})
    assert r.status_code == 400


def test_request_id_is_echoed_and_reaches_the_catalog(client, catalog, sql_repo):
    seen = []

    class RecordingCatalog(StaticProductCatalog):
        def validate(self, product_ids):
            seen.append(REQUEST_ID_CTX.get())
            return super().validate(product_ids)

    recording = RecordingCatalog(catalog.products.values())
    app.dependency_overrides[get_order_workflow] = lambda: OrderWorkflow(
        recording, sql_repo, OrderQueryService(sql_repo)
    )

    r = client.post(
        ORDERS_URL,
        json={"items": [{"productId": "p1", "quantity": 1}]},
        headers={"X-Request-ID": "abc-123"},
    )
    assert r.status_code == 201
    assert r.headers["X-Request-ID"] == "abc-123"
    assert seen == ["abc-123"]

    r = client.get(ORDERS_URL)
    assert r.headers["X-Request-ID"]


def test_payload_too_large(client, catalog):
    # ~2 MiB of items, above the default 1 MiB limit
    big = {"items": [{"productId": "p1", "quantity": 1}] * 60000}
    r = client.post(ORDERS_URL, json=big)
    assert r.status_code == 413
    assert r.json()["message"] == "PAYLOAD_TOO_LARGE"
    assert catalog.calls == []


def test_health_reports_db(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "components": {"db": {"ok": True}}}


def test_health_reports_db_down(client, monkeypatch):
    monkeypatch.setattr("orders.api.ping", lambda engine: False)
    r = client.get("/health")
    assert r.status_code == 503
    assert r.json()["ok"] is False


def test_unexpected_catalog_error_is_generic_creation_failure(client, sql_repo):
    class BrokenCatalog:
        def validate(self, product_ids):
            raise RuntimeError("boom")

    app.dependency_overrides[get_order_workflow] = lambda: OrderWorkflow(BrokenCatalog(), sql_repo)
    r = client.post(ORDERS_URL, json={"items": [{"productId": "p1", "quantity": 1}]})
    assert r.status_code == 400
    assert r.json() == {"status": 400, "message": "ORDER_CREATION_FAILED"}


def test_unhandled_error_is_answered_as_json_500(client, caplog):
    class BrokenQueries:
        def get_order(self, order_id):
            raise RuntimeError("boom")

    app.dependency_overrides[get_order_query_service] = lambda: BrokenQueries()
    tolerant = TestClient(app, raise_server_exceptions=False)
    with caplog.at_level("ERROR", logger="orders.api"):
        r = tolerant.get(DETAIL_URL.format(oid=uuid.uuid4()))

    assert r.status_code == 500
    assert r.headers["content-type"].startswith("application/json")
    assert r.json() == {"status": 500, "message": "INTERNAL_ERROR"}
    rec = next(rc for rc in caplog.records if rc.getMessage() == "unhandled error")
    assert rec.exc_info is not None
