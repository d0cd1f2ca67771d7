"""HTTP adapter for the product catalog with a circuit breaker.

This module implements the concrete HTTP client for ``ProductCatalogPort``
using ``httpx``. It adds:

- Request correlation: propagates ``X-Request-ID`` from the ContextVar set
    by the gateway middleware.
- A bounded timeout on every call (``PRODUCT_SERVICE_TIMEOUT_SECS``).
- A circuit breaker so an unhealthy catalog fails fast, with HALF_OPEN
    probing after a timeout.

Calls are never retried here: any failure is raised as
``CatalogUnavailable`` and the caller decides what to do.
"""

import logging
import threading
import time
from typing import List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from gateway.middleware import REQUEST_ID_CTX

from . import settings
from .domain import CatalogUnavailable, ProductCatalogPort, ProductRecord
from .schemas import ProductRecordDTO

logger = logging.getLogger("orders.http")

_products_adapter = TypeAdapter(List[ProductRecordDTO])


# ---------------- Circuit Breaker ---------------- #

class CircuitBreaker:
    """Fail-fast guard for the catalog: CLOSED, OPEN, then HALF_OPEN.

    ``fail_threshold`` consecutive failures open the circuit. After
    ``reset_timeout`` seconds one probe call is let through; its outcome
    closes or re-opens the circuit.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._state = "CLOSED"
        self._failures = 0
        self._opened_at = 0.0
        self._probing = False

    def _open(self):
        self._state = "OPEN"
        self._opened_at = time.monotonic()
        self._probing = False

    @property
    def state(self) -> str:
        with self._lock:
            if self._state == "OPEN" and time.monotonic() - self._opened_at >= self.reset_timeout:
                self._state = "HALF_OPEN"
                self._probing = False
            return self._state

    def before_call(self) -> str:
        """Admit a call and return the state it runs under.

        Raises:
            RuntimeError: ``CIRCUIT_OPEN``, or ``CIRCUIT_HALF_OPEN_BUSY``
                while the probe is still in flight.
        """
        with self._lock:
            current = self.state
            if current == "OPEN":
                raise RuntimeError("CIRCUIT_OPEN")
            if current == "HALF_OPEN":
                if self._probing:
                    raise RuntimeError("CIRCUIT_HALF_OPEN_BUSY")
                self._probing = True
            return current

    def on_success(self):
        with self._lock:
            self._state = "CLOSED"
            self._failures = 0
            self._probing = False

    def on_failure(self):
        with self._lock:
            self._failures += 1
            if self._state == "HALF_OPEN":
                self._open()
            elif self._state == "CLOSED" and self._failures >= self.fail_threshold:
                self._open()
                logger.warning("circuit opened", extra={"circuit": self.name, "failures": self._failures})

    def on_finish(self):
        with self._lock:
            if self._state == "HALF_OPEN":
                self._probing = False


_products_cb = CircuitBreaker(
    "products",
    settings.HTTP_CIRCUIT_FAIL_THRESHOLD,
    settings.HTTP_CIRCUIT_RESET_TIMEOUT,
)


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build outgoing headers including X-Request-ID and any extras."""
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


# ---------------- Product Catalog Adapter ---------------- #

class HttpProductCatalogClient(ProductCatalogPort):
    """HTTP client for the product catalog with a circuit breaker."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        breaker: CircuitBreaker | None = None,
    ):
        self.base_url = base_url or settings.PRODUCT_SERVICE_BASE_URL
        self.timeout = timeout or settings.PRODUCT_SERVICE_TIMEOUT_SECS
        self.breaker = breaker or _products_cb

    def validate(self, product_ids: List[str]) -> List[ProductRecord]:
        """Ask the catalog for the records of ``product_ids``.

        Posts ``{"ids": [...]}`` to ``/products/validate``. A 200 answer must
        be a JSON list of ``{id, price, name}``; extra keys are ignored.
        Whether every requested id came back is checked by the caller.

        Args:
            product_ids: Distinct product ids to look up.

        Returns:
            list[ProductRecord]: The records the catalog returned.

        Raises:
            CatalogUnavailable: When the circuit is open, on transport
                errors or timeouts, on non-200 answers, and when the body
                does not match the record schema.
        """
        try:
            state = self.breaker.before_call()
        except RuntimeError as e:
            logger.warning("catalog call short-circuited", extra={"circuit": str(e)})
            raise CatalogUnavailable(str(e)) from e

        headers = _request_headers({"X-Circuit-State": state})
        try:
            with httpx.Client(timeout=self.timeout) as client:
                try:
                    resp = client.post(
                        f"{self.base_url}/products/validate",
                        json={"ids": list(product_ids)},
                        headers=headers,
                    )
                except httpx.RequestError as e:
                    self.breaker.on_failure()
                    logger.error("catalog request failed", extra={"error": repr(e)})
                    raise CatalogUnavailable("catalog unreachable") from e

                if resp.status_code != 200:
                    # 4xx is the catalog rejecting the request, not a sick dependency
                    if resp.status_code >= 500:
                        self.breaker.on_failure()
                    else:
                        self.breaker.on_success()
                    logger.error("catalog answered with error", extra={"status_code": resp.status_code})
                    raise CatalogUnavailable(f"catalog answered {resp.status_code}")

                self.breaker.on_success()
                try:
                    records = _products_adapter.validate_python(resp.json())
                except (ValueError, ValidationError) as e:
                    logger.error("catalog answer malformed", extra={"error": str(e)})
                    raise CatalogUnavailable("catalog answer malformed") from e
        finally:
            self.breaker.on_finish()

        return [ProductRecord(id=r.id, price=r.price, name=r.name) for r in records]
