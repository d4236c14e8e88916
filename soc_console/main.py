"""SOC Console - FastAPI Application.

Gateway between the analyst's browser and the telemetry API: owns the
signed session cookie, gates views by role, and returns chart, map and
table view-models built from API data.
"""

from __future__ import annotations

import logging
import os
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from soc_console.auth.gate import AccessGate
from soc_console.auth.session import SessionStore
from soc_console.config import get_config
from soc_console.fetcher import AuthFailure, FetchError, LoginFailed
from soc_console.middleware.gate import AccessGateMiddleware
from soc_console.middleware.logging import StructuredLoggingMiddleware
from soc_console.middleware.request_id import RequestIdMiddleware
from soc_console.routers import admin_router, analyst_router, auth_router, notifications_router
from soc_console.routes import build_route_table

SERVICE_NAME = "soc-console"
VERSION = "0.1.0"
API_VERSION = "v1"

log = logging.getLogger(SERVICE_NAME)


def build_app(transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Build and configure the FastAPI application.

    Args:
        transport: httpx transport for calls to the telemetry API. Tests pass
            a MockTransport; production leaves it unset.
    """
    config = get_config()
    logging.basicConfig(level=getattr(logging, config.log_level, logging.INFO))

    config_errors = config.validate()
    if config_errors:
        error_msg = "; ".join(config_errors)
        log.error("Configuration validation failed: %s", error_msg)
        raise RuntimeError(f"Configuration validation failed: {error_msg}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info(
            "Starting %s v%s",
            SERVICE_NAME,
            VERSION,
            extra={"service": SERVICE_NAME, "version": VERSION, "api_base_url": config.api_base_url},
        )
        yield
        log.info("Shutting down %s", SERVICE_NAME)

    app = FastAPI(
        title="SOC Console",
        description="Security operations console gateway",
        version=VERSION,
        lifespan=lifespan,
    )

    gate = AccessGate(build_route_table())

    # add_middleware wraps: the last one added runs first.
    app.add_middleware(AccessGateMiddleware, gate=gate)
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        session_cookie=config.session_cookie_name,
        max_age=config.session_ttl_seconds,
        same_site="strict",
        https_only=config.is_prod,
    )
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-Id"],
        expose_headers=["X-Request-Id"],
    )

    app.state.config = config
    app.state.gate = gate
    app.state.api_transport = transport
    app.state.service = SERVICE_NAME
    app.state.version = VERSION
    app.state.api_version = API_VERSION
    app.state.instance_id = str(uuid.uuid4())
    app.state.start_time = datetime.now(timezone.utc)

    @app.exception_handler(AuthFailure)
    async def auth_failure_handler(request: Request, exc: AuthFailure) -> RedirectResponse:
        log.warning(
            "API rejected session token",
            extra={"request_id": getattr(request.state, "request_id", None), "resource": exc.resource},
        )
        login_path = request.app.state.gate.force_reauthentication(SessionStore(request.session))
        return RedirectResponse(login_path, status_code=303)

    @app.exception_handler(FetchError)
    async def fetch_error_handler(request: Request, exc: FetchError) -> JSONResponse:
        log.warning(
            "View fetch failed: %s",
            exc,
            extra={
                "request_id": getattr(request.state, "request_id", None),
                "resource": exc.resource,
                "upstream_status": exc.status_code,
            },
        )
        retry_url = request.url.path
        if request.url.query:
            retry_url = f"{retry_url}?{request.url.query}"
        return JSONResponse(
            status_code=502,
            content={
                "view": getattr(request.state, "view_name", None),
                "status": "error",
                "message": exc.message,
                "retry_url": retry_url,
            },
        )

    @app.exception_handler(LoginFailed)
    async def login_failed_handler(request: Request, exc: LoginFailed) -> JSONResponse:
        log.info("Login refused: %s", exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    app.include_router(auth_router)
    app.include_router(analyst_router)
    app.include_router(notifications_router)
    app.include_router(admin_router)

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:
        return {
            "status": "ok",
            "service": request.app.state.service,
            "version": request.app.state.version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": getattr(request.state, "request_id", None),
        }

    @app.get("/version")
    async def version(request: Request) -> dict[str, Any]:
        return {
            "service": request.app.state.service,
            "version": request.app.state.version,
            "api_version": request.app.state.api_version,
            "build_commit": os.getenv("SOC_BUILD_COMMIT"),
            "build_time": os.getenv("SOC_BUILD_TIME"),
        }

    return app
