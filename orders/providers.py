"""Service provider helpers for wiring the orders services with ports.

Dependencies are passed explicitly through constructors. The functions
below build the production wiring (HTTP catalog client, SQLAlchemy
repository) and are used as FastAPI dependencies, so tests can swap them
through ``app.dependency_overrides``.
"""

from functools import lru_cache

from .db import get_engine, make_session_factory
from .domain import OrderQueryService, OrderRepositoryPort, OrderWorkflow
from .http_adapters import HttpProductCatalogClient
from .repository import SqlAlchemyOrderRepository


@lru_cache(maxsize=1)
def get_order_repository() -> OrderRepositoryPort:
    """Return the process-wide SQLAlchemy repository."""
    return SqlAlchemyOrderRepository(make_session_factory(get_engine()))


def get_order_query_service() -> OrderQueryService:
    return OrderQueryService(get_order_repository())


def get_order_workflow() -> OrderWorkflow:
    """Return an OrderWorkflow wired to the HTTP catalog and the database."""
    orders = get_order_repository()
    return OrderWorkflow(
        catalog=HttpProductCatalogClient(),
        orders=orders,
        queries=OrderQueryService(orders),
    )
