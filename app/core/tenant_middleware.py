"""Middleware that binds the tenant of each request to the runtime context."""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from app.signals.config import get_signal_settings

from .tenant_context import reset_tenant_context, set_tenant_context

__all__ = ["TENANT_HEADER", "TenantContextMiddleware"]

logger = logging.getLogger(__name__)

TENANT_HEADER = "X-Tenant-Id"
_TENANT_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,62}$")


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Populate ``request.state.tenant_id`` and the tenant context variable.

    Requests without the tenant header are served as the configured default
    tenant. Identifiers end up inside vector-store collection names, so only
    a conservative character set is accepted.
    """

    def __init__(self, app: ASGIApp, *, default_tenant: str | None = None) -> None:
        super().__init__(app)
        self._default_tenant = default_tenant

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:  # type: ignore[override]
        tenant_id = request.headers.get(TENANT_HEADER, "").strip() or self._fallback()
        if not _TENANT_PATTERN.match(tenant_id):
            logger.info("Rejected request with invalid tenant id %r", tenant_id)
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"detail": f"Invalid {TENANT_HEADER} header."},
            )

        request.state.tenant_id = tenant_id
        token = set_tenant_context(tenant_id)
        try:
            return await call_next(request)
        finally:
            reset_tenant_context(token)

    def _fallback(self) -> str:
        if self._default_tenant:
            return self._default_tenant
        return get_signal_settings().default_tenant_id
