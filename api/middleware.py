"""Acting-user middleware using ContextVar.

Extracts the acting user from the X-User-ID request header. The id is
stored in a ContextVar so that any downstream code (router dependencies,
the collaboration service, log lines) can call get_current_user_id()
without explicit parameter passing. The id is also bound into structlog
contextvars for the lifetime of the request.
"""

from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.observability.logging_setup import bind_actor, clear_context

# ---------------------------------------------------------------------------
# Context variable: thread/task-safe acting user
# ---------------------------------------------------------------------------

_current_user_id: ContextVar[Optional[str]] = ContextVar("current_user_id", default=None)


def get_current_user_id() -> Optional[str]:
    """Return the raw X-User-ID of the current request, if any.

    Safe to call from any context within the request lifecycle::

        user_id = get_current_user_id()
        actor = service.get_user(UUID(user_id)) if user_id else service.current_user
    """
    return _current_user_id.get()


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class ActingUserMiddleware(BaseHTTPMiddleware):
    """Record who is acting for the duration of a request.

    Without the header the request acts as the workspace's current user.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        user_id = request.headers.get("X-User-ID") or None

        token = _current_user_id.set(user_id)
        bind_actor(user_id or "current", path=request.url.path, method=request.method)
        try:
            response = await call_next(request)
            return response
        finally:
            _current_user_id.reset(token)
            clear_context()
