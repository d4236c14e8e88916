"""Access gate middleware.

Every protected path is checked against the session before the request
reaches a router. Denied visitors are redirected to the login page with
their session cleared.
"""

from __future__ import annotations

import logging
from typing import Callable, Set

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse

from soc_console.auth.gate import AccessGate
from soc_console.auth.session import SessionStore

log = logging.getLogger("soc-console.gate-middleware")

PUBLIC_PATHS: Set[str] = {
    "/",
    "/login",
    "/logout",
    "/health",
    "/version",
    "/openapi.json",
    "/docs",
    "/redoc",
}

PUBLIC_PATH_PREFIXES: tuple[str, ...] = (
    "/docs",
    "/redoc",
)


def is_public_path(path: str) -> bool:
    if path in PUBLIC_PATHS:
        return True
    return path.startswith(PUBLIC_PATH_PREFIXES)


class AccessGateMiddleware(BaseHTTPMiddleware):
    """Applies the AccessGate to every protected request.

    Must sit inside SessionMiddleware so ``request.session`` is available.
    Paths that are neither public nor protected pass through untouched and
    end in the router's 404.
    """

    def __init__(self, app, gate: AccessGate):
        super().__init__(app)
        self.gate = gate

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if is_public_path(path) or not self.gate.is_protected(path):
            return await call_next(request)

        store = SessionStore(request.session)
        decision = self.gate.check(path, store)
        if not decision.allowed:
            log.info(
                "Redirecting denied request",
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "path": path,
                    "gate_state": decision.state.value,
                },
            )
            return RedirectResponse(decision.redirect_to, status_code=303)

        request.state.session = store.load()
        return await call_next(request)
