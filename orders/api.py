"""Orders service API built with FastAPI.

This module exposes the order resources over HTTP, the message-pattern
endpoint (``POST /rpc``) and a health probe. Validation is performed with
the Pydantic schemas in ``orders.schemas``; business logic is delegated to
``OrderWorkflow`` and ``OrderQueryService`` obtained from
``orders.providers`` through FastAPI dependencies.

Every failure is answered as ``{"status": <int>, "message": <str>}`` built by
``orders.rpc.error_body``.
"""

import logging
import uuid
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.engine import Engine

from gateway.middleware import ApiSizeLimitMiddleware, RequestIdMiddleware

from . import settings
from .db import get_engine, init_db, ping, wait_for_db
from .domain import OrderError, OrderQueryService, OrderWorkflow
from .logging_config import setup_logging
from .providers import get_order_query_service, get_order_workflow
from .rpc import RpcRequest, dispatch, error_body, field_errors
from .schemas import (
    CreateOrderDTO,
    OrderReadDTO,
    PaginatedOrdersDTO,
    PaginationOrderDTO,
    StatusUpdateDTO,
)

setup_logging()
logger = logging.getLogger("orders.api")

app = FastAPI(title="Orders Service")
app.add_middleware(ApiSizeLimitMiddleware, max_bytes=settings.API_MAX_BYTES)
app.add_middleware(RequestIdMiddleware)


@app.on_event("startup")
def _startup_db():
    engine = get_engine()
    wait_for_db(engine, settings.DB_STARTUP_TIMEOUT_SECS)
    init_db(engine)
    logger.info("database ready")


# ---- Error translation ----
@app.exception_handler(OrderError)
async def _order_error(request: Request, exc: OrderError):
    status, body = error_body(exc)
    if status >= 500:
        logger.error("request failed", exc_info=exc, extra={"code": exc.code})
    return JSONResponse(body, status_code=status)


@app.exception_handler(RequestValidationError)
async def _request_validation_error(request: Request, exc: RequestValidationError):
    body = {"status": 400, "message": "VALIDATION_ERROR", "errors": field_errors(exc.errors())}
    return JSONResponse(body, status_code=400)


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    status, body = error_body(exc)
    return JSONResponse(body, status_code=status)


@app.exception_handler(Exception)
async def _unexpected_error(request: Request, exc: Exception):
    logger.error("unhandled error", exc_info=exc, extra={"path": request.url.path})
    status, body = error_body(exc)
    return JSONResponse(body, status_code=status)


# ---- Endpoints ----
@app.get("/health")
def health(engine: Engine = Depends(get_engine)):
    """Liveness/health probe endpoint with a database check.

    Returns:
        JSONResponse: ``{"ok", "components": {"db": {"ok"}}}`` with 200 when
        the database answers, 503 otherwise.
    """
    db_ok = ping(engine)
    return JSONResponse(
        {"ok": db_ok, "components": {"db": {"ok": db_ok}}},
        status_code=200 if db_ok else 503,
    )


@app.post("/orders", status_code=201, response_model=OrderReadDTO, response_model_exclude_none=True)
def create_order(dto: CreateOrderDTO, workflow: OrderWorkflow = Depends(get_order_workflow)):
    """Create an order after validating its products against the catalog.

    Returns:
        OrderReadDTO: The created order; items carry the product name.

    Raises:
        OrderCreationFailed: 400 with a generic message on any catalog,
            product or persistence failure.
    """
    return OrderReadDTO.from_domain(workflow.create(dto.to_lines()))


@app.get("/orders", response_model=PaginatedOrdersDTO, response_model_exclude_none=True)
def list_orders(
    page: int = 1,
    limit: Optional[int] = None,
    status: Optional[str] = None,
    queries: OrderQueryService = Depends(get_order_query_service),
):
    params = {"page": page, "status": status}
    if limit is not None:
        params["limit"] = limit
    dto = PaginationOrderDTO.model_validate(params)
    return PaginatedOrdersDTO.from_domain(queries.list_orders(page=dto.page, limit=dto.limit, status=dto.status))


@app.get("/orders/{order_id}", response_model=OrderReadDTO, response_model_exclude_none=True)
def get_order(order_id: uuid.UUID, queries: OrderQueryService = Depends(get_order_query_service)):
    return OrderReadDTO.from_domain(queries.get_order(order_id))


@app.patch("/orders/{order_id}/status", response_model=OrderReadDTO, response_model_exclude_none=True)
def change_order_status(
    order_id: uuid.UUID,
    dto: StatusUpdateDTO,
    workflow: OrderWorkflow = Depends(get_order_workflow),
):
    """Set the status of an order. Repeating the current status is a no-op."""
    return OrderReadDTO.from_domain(workflow.change_status(order_id, dto.status))


@app.post("/rpc")
def rpc(
    req: RpcRequest,
    workflow: OrderWorkflow = Depends(get_order_workflow),
    queries: OrderQueryService = Depends(get_order_query_service),
):
    """Message-pattern entry point: ``{"cmd": ..., "payload": ...}``."""
    return dispatch(req.cmd, req.payload, workflow, queries)
