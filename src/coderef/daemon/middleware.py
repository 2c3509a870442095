"""HTTP middleware for request correlation."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from coderef.config.constants import DELIVERY_HEADER
from coderef.core.logging import clear_request_id, set_request_id

REQUEST_ID_HEADER = "X-Request-ID"

# Type alias for the call_next function
CallNext = Callable[[Request], Awaitable[Response]]


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a correlation id for the duration of a request.

    GitHub deliveries reuse their delivery id so log lines can be matched
    against the repository's webhook delivery log.
    """

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        incoming = request.headers.get(DELIVERY_HEADER) or request.headers.get(REQUEST_ID_HEADER)
        request_id = set_request_id(incoming)
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
