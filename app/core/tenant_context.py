"""Request-scoped tenant context.

``TenantContextMiddleware`` stores the tenant serving the current request in
a :class:`contextvars.ContextVar`. Services that need tenant scoping, such as
the embedding policy building ``{tenant}_{collection}`` names, call
:func:`get_current_tenant_id` instead of receiving the HTTP request.
"""

from __future__ import annotations

from contextvars import ContextVar, Token

__all__ = [
    "get_current_tenant_id",
    "reset_tenant_context",
    "set_tenant_context",
    "tenant_collection_name",
]

_tenant_id: ContextVar[str | None] = ContextVar("tenant_id", default=None)


def set_tenant_context(tenant_id: str) -> Token[str | None]:
    """Bind ``tenant_id`` to the current context.

    Returns the token that must be handed back to
    :func:`reset_tenant_context` once the request is finished.
    """

    return _tenant_id.set(tenant_id)


def reset_tenant_context(token: Token[str | None]) -> None:
    _tenant_id.reset(token)


def get_current_tenant_id() -> str | None:
    """Return the tenant bound to this context, or ``None`` outside a request."""

    return _tenant_id.get()


def tenant_collection_name(tenant_id: str, collection: str) -> str:
    return f"{tenant_id}_{collection}"
