from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from orders.adapters import InMemoryOrderRepository, StaticProductCatalog
from orders.api import app
from orders.db import build_engine, get_engine, init_db, make_session_factory
from orders.domain import OrderQueryService, OrderWorkflow, ProductRecord
from orders.http_adapters import _products_cb
from orders.providers import get_order_query_service, get_order_workflow
from orders.repository import SqlAlchemyOrderRepository


@pytest.fixture(autouse=True)
def reset_circuit_breaker():
    # module-level breaker: do not carry state between tests
    _products_cb.on_success()
    yield
    _products_cb.on_success()


@pytest.fixture
def catalog():
    return StaticProductCatalog([
        ProductRecord(id="p1", price=Decimal("10"), name="Widget"),
        ProductRecord(id="p2", price=Decimal("5"), name="Gadget"),
        ProductRecord(id="p3", price=Decimal("2.50"), name="Sprocket"),
    ])


@pytest.fixture
def memory_repo():
    return InMemoryOrderRepository()


@pytest.fixture
def sqlite_engine():
    engine = build_engine("sqlite+pysqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_repo(sqlite_engine):
    return SqlAlchemyOrderRepository(make_session_factory(sqlite_engine))


@pytest.fixture
def client(catalog, sql_repo, sqlite_engine):
    """TestClient wired to the static catalog and an in-memory SQLite store."""
    app.dependency_overrides[get_order_workflow] = lambda: OrderWorkflow(catalog, sql_repo)
    app.dependency_overrides[get_order_query_service] = lambda: OrderQueryService(sql_repo)
    app.dependency_overrides[get_engine] = lambda: sqlite_engine
    yield TestClient(app)
    app.dependency_overrides = {}
