"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Query, Request

from soc_console.auth.session import Session, SessionStore
from soc_console.config import ConsoleConfig
from soc_console.fetcher import DataFetcher
from soc_console.views import ViewParams


def get_console_config(request: Request) -> ConsoleConfig:
    return request.app.state.config


def get_session_store(request: Request) -> SessionStore:
    """The session store backed by this request's signed cookie."""
    return SessionStore(request.session)


def get_current_session(store: SessionStore = Depends(get_session_store)) -> Session:
    """Session of a request that already passed the access gate.

    Raises:
        HTTPException: 401 if no session is present. The gate normally
            redirects before this can happen.
    """
    session = store.load()
    if not session.is_present:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


def _make_fetcher(request: Request, token: Optional[str]) -> DataFetcher:
    config: ConsoleConfig = request.app.state.config
    return DataFetcher(
        config.api_base_url,
        token,
        timeout=config.request_timeout_seconds,
        transport=getattr(request.app.state, "api_transport", None),
        request_id=getattr(request.state, "request_id", None),
    )


def get_fetcher(request: Request, session: Session = Depends(get_current_session)) -> DataFetcher:
    """Fetcher carrying the session's bearer token."""
    return _make_fetcher(request, session.token)


def get_anonymous_fetcher(request: Request) -> DataFetcher:
    return _make_fetcher(request, None)


def get_view_params(
    request: Request,
    page: int = Query(1, description="Page number (1-based, clamped into range)"),
    page_size: Optional[int] = Query(None, ge=1, le=500, description="Rows per page"),
) -> ViewParams:
    config: ConsoleConfig = request.app.state.config
    return ViewParams(page=page, page_size=page_size or config.page_size)
