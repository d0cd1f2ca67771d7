"""Message-pattern dispatch for the orders service.

Inbound messages name a command (``cmd``) and carry a payload. ``dispatch``
validates the payload with the request schemas, calls the workflow or the
query service and returns JSON-ready data. ``error_body`` is the single
place where exceptions become the ``{"status", "message"}`` answers seen
by callers; the HTTP exception handlers use it too.

Patterns:
    createOrder        {items: [{productId, quantity}]}  -> Order
    findAllOrders      {page?, limit?, status?}           -> {data, meta}
    findOneOrder       {id} or a bare id                  -> Order
    changeOrderStatus  {id, status}                       -> Order
"""

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from .domain import OrderError, OrderQueryService, OrderWorkflow, ValidationFailure
from .schemas import (
    ChangeOrderStatusDTO,
    CreateOrderDTO,
    OrderReadDTO,
    PaginatedOrdersDTO,
    PaginationOrderDTO,
    dump,
)

logger = logging.getLogger("orders.rpc")


class UnknownPattern(OrderError):
    status = 404
    code = "UNKNOWN_PATTERN"

    def __init__(self, cmd):
        super().__init__(f"no handler for pattern {cmd!r}")
        self.cmd = cmd


class RpcRequest(BaseModel):
    cmd: str
    payload: Any = None


class OrderIdDTO(BaseModel):
    id: uuid.UUID


def field_errors(errors: List[dict]) -> List[dict]:
    return [
        {"field": ".".join(str(p) for p in e.get("loc", ())), "message": e.get("msg", "")}
        for e in errors
    ]


def error_body(exc: Exception) -> Tuple[int, dict]:
    """Translate an exception into ``(status, body)`` for the caller.

    Validation problems keep their field-level detail. Server-side failures
    (status >= 500) are reduced to ``INTERNAL_ERROR`` so no internal detail
    leaks; the caller is expected to have logged them.
    """
    if isinstance(exc, ValidationError):
        return 400, {"status": 400, "message": "VALIDATION_ERROR", "errors": field_errors(exc.errors())}
    if isinstance(exc, ValidationFailure):
        body = {"status": exc.status, "message": exc.message}
        if exc.errors:
            body["errors"] = exc.errors
        return exc.status, body
    if isinstance(exc, OrderError) and exc.status < 500:
        return exc.status, {"status": exc.status, "message": exc.message}
    return 500, {"status": 500, "message": "INTERNAL_ERROR"}


def _create_order(payload, workflow: OrderWorkflow, queries: OrderQueryService) -> dict:
    dto = CreateOrderDTO.model_validate(payload)
    return dump(OrderReadDTO.from_domain(workflow.create(dto.to_lines())))


def _find_all_orders(payload, workflow: OrderWorkflow, queries: OrderQueryService) -> dict:
    dto = PaginationOrderDTO.model_validate(payload or {})
    page = queries.list_orders(page=dto.page, limit=dto.limit, status=dto.status)
    return dump(PaginatedOrdersDTO.from_domain(page))


def _find_one_order(payload, workflow: OrderWorkflow, queries: OrderQueryService) -> dict:
    if not isinstance(payload, dict):
        payload = {"id": payload}
    dto = OrderIdDTO.model_validate(payload)
    return dump(OrderReadDTO.from_domain(queries.get_order(dto.id)))


def _change_order_status(payload, workflow: OrderWorkflow, queries: OrderQueryService) -> dict:
    dto = ChangeOrderStatusDTO.model_validate(payload)
    return dump(OrderReadDTO.from_domain(workflow.change_status(dto.id, dto.status)))


PATTERNS: Dict[str, Callable[[Any, OrderWorkflow, OrderQueryService], dict]] = {
    "createOrder": _create_order,
    "findAllOrders": _find_all_orders,
    "findOneOrder": _find_one_order,
    "changeOrderStatus": _change_order_status,
}


def dispatch(cmd: str, payload: Optional[Any], workflow: OrderWorkflow, queries: OrderQueryService) -> dict:
    """Run the handler registered for ``cmd``.

    Raises:
        UnknownPattern: If no handler is registered for ``cmd``.
        pydantic.ValidationError: If the payload does not match the schema.
        OrderError: Whatever the workflow or query service raises.
    """
    handler = PATTERNS.get(cmd)
    if handler is None:
        raise UnknownPattern(cmd)
    logger.info("dispatching message", extra={"cmd": cmd})
    return handler(payload, workflow, queries)
