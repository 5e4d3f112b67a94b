"""FastAPI application entrypoint.

Re-exports the API application, configures logging and makes sure the
database schema exists before serving requests::

    uvicorn service_center.main:app
"""

from __future__ import annotations

from .api import app as app  # re-use existing API routes
from .config import configure_logging
from .database import ensure_schema


@app.on_event("startup")
def _startup() -> None:
    configure_logging()
    ensure_schema()
