"""Request ID middleware.

Reuses the caller's X-Request-Id or mints one, and echoes it on the response
so console requests can be matched to the API calls they caused.
"""

from __future__ import annotations

import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-Id"
MAX_REQUEST_ID_LENGTH = 128


def _accept_request_id(value: str | None) -> str:
    if value and len(value) <= MAX_REQUEST_ID_LENGTH and value.isprintable():
        return value
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Middleware to propagate a request ID to handlers and the API."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse a well-formed caller ID or mint a new one
        request_id = _accept_request_id(request.headers.get(REQUEST_ID_HEADER))

        # Store in request state; the fetcher forwards it to the API
        request.state.request_id = request_id

        response = await call_next(request)

        # Echo on the response
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
