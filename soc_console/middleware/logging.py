"""Structured request logging.

One ``request`` record per request, with the signed-in user when the gate
attached a session.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

log = logging.getLogger("soc-console")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for structured request logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()

        # Process request
        response = await call_next(request)

        # Calculate duration
        duration_ms = (time.perf_counter() - started) * 1000

        # The gate attaches the session on allowed requests only
        session = getattr(request.state, "session", None)
        user = session.user if session is not None else None

        # Log request details
        log.info(
            "request",
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "user_id": user.id if user else None,
                "role": user.role.value if user else None,
                "client_ip": request.client.host if request.client else None,
            },
        )
        return response
