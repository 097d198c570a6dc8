"""Request ID middleware.

Generates (or propagates) a UUID request ID for every incoming request and
publishes it through ``current_request_id`` so log records emitted while the
request is handled carry the same ID. The ID is echoed back in the
``X-Request-ID`` response header.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

current_request_id: ContextVar[str | None] = ContextVar("current_request_id", default=None)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, expose it to logging, and return it to the caller."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        token = current_request_id.set(request_id)
        try:
            response: Response = await call_next(request)
        finally:
            current_request_id.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response
