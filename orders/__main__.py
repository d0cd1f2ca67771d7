"""Run the orders API with uvicorn for local development.

Production runs use gunicorn with ``gunicorn.conf.py``.
"""

import os

import uvicorn


def main():
    uvicorn.run(
        "orders.api:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "9003")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
