"""FastAPI application wiring for the sales-chat signal service.

The HTTP surface is deliberately thin:

- Configures logging (application, access and fallback audit logs), CORS for
  the admin dashboard when requested, and Prometheus metrics.
- Binds the tenant of every request to the runtime context.
- Mounts the signals router (trends, timing, confidence gating, embedding
  and disengagement) plus health/version/config probes.
"""

import logging
import os
from dataclasses import asdict

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from .__version__ import __build_date__, __commit_sha__, __version__
from .app_logging import init_logging
from .core.tenant_middleware import TenantContextMiddleware
from .routers import signals
from .signals.config import get_signal_settings

load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(title="Sales Signals", version=__version__)
init_logging(app)
app.add_middleware(TenantContextMiddleware)
# Optional CORS for the admin dashboard
admin_ui_origins = os.getenv("ADMIN_UI_ORIGINS")
if admin_ui_origins:
    origins = [o.strip() for o in admin_ui_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.include_router(signals.router)

# Expose Prometheus metrics
Instrumentator().instrument(app).expose(
    app, include_in_schema=False, endpoint="/api/metrics"
)


@app.get("/api/health")
async def health():
    """Liveness/readiness probe with a minimal JSON body."""
    return {"status": "ok"}


@app.get("/api/version")
async def version():
    """Return version information for the application."""
    return {
        "version": __version__,
        "build_date": __build_date__,
        "commit_sha": __commit_sha__,
    }


@app.get("/api/config")
async def config():
    """Expose the active signal thresholds for the dashboard."""
    settings = asdict(get_signal_settings())
    settings["vector_store"] = os.getenv("VECTOR_STORE", "pgvector")
    return settings
