"""Runtime configuration for the orders service.

Values are read once from environment variables at import time. Code that
needs a setting reads it through this module (``settings.NAME``) rather than
copying the value, so tests can override a setting with
``monkeypatch.setattr(settings, "NAME", value)``.
"""

import os

DB_HOST = os.getenv("DB_HOST", "orders-db")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "orders")
DB_USER = os.getenv("DB_USER", "orders_user")
DB_PASSWORD = os.getenv("DB_PASSWORD", "orders-pass")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
DB_STARTUP_TIMEOUT_SECS = float(os.getenv("DB_STARTUP_TIMEOUT_SECS", "30"))

# Product catalog (sibling service)
PRODUCT_SERVICE_BASE_URL = os.getenv("PRODUCT_SERVICE_BASE_URL", "http://products:9002")
PRODUCT_SERVICE_TIMEOUT_SECS = float(os.getenv("PRODUCT_SERVICE_TIMEOUT_SECS", "5.0"))
HTTP_CIRCUIT_FAIL_THRESHOLD = int(os.getenv("HTTP_CIRCUIT_FAIL_THRESHOLD", "5"))
HTTP_CIRCUIT_RESET_TIMEOUT = float(os.getenv("HTTP_CIRCUIT_RESET_TIMEOUT", "30.0"))

DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "10"))

API_MAX_BYTES = int(os.getenv("API_MAX_BYTES", str(1 * 1024 * 1024)))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
