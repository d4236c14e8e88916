"""View routers.

Each protected path renders exactly one registered view. The access gate
has already run by the time a handler is reached.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from soc_console.auth.session import Session
from soc_console.dependencies import get_current_session, get_fetcher, get_view_params
from soc_console.fetcher import DataFetcher
from soc_console.views import ViewParams, get_view, load_view

log = logging.getLogger("soc-console.views-router")

analyst_router = APIRouter(tags=["analyst"])
admin_router = APIRouter(prefix="/admin", tags=["admin"])


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class ProcessSort(str, Enum):
    CPU = "CPU"
    MEMORY = "Memory"


class ThreatList(str, Enum):
    BLACKLISTED_IPS = "blacklisted_ips"
    WHITELISTED_IPS = "whitelisted_ips"
    PHISHING_SITES = "phishing_sites"


async def render(
    request: Request,
    name: str,
    fetcher: DataFetcher,
    params: Optional[ViewParams] = None,
) -> dict[str, Any]:
    """Load a view; fetch failures are turned into error responses by the app."""
    request.state.view_name = name
    return await load_view(get_view(name), fetcher, params)


def _simple_view(name: str):
    async def handler(request: Request, fetcher: DataFetcher = Depends(get_fetcher)) -> dict[str, Any]:
        return await render(request, name, fetcher)

    handler.__name__ = f"{name.replace('-', '_')}_view"
    return handler


for _path, _name in (
    ("/dashboard", "dashboard"),
    ("/siem", "siem"),
    ("/soar", "soar"),
    ("/xdr", "xdr"),
    ("/edr", "edr"),
    ("/ndr", "ndr"),
    ("/ueba", "ueba"),
    ("/threat-intelligence", "threat-intelligence"),
    ("/ml-security", "ml-security"),
):
    analyst_router.add_api_route(_path, _simple_view(_name), methods=["GET"], name=_name)


@analyst_router.get("/account")
async def account(
    request: Request,
    session: Session = Depends(get_current_session),
    fetcher: DataFetcher = Depends(get_fetcher),
) -> dict[str, Any]:
    """Profile of the signed-in user, as the API holds it."""
    return await render(request, "account", fetcher, ViewParams(user_id=str(session.user.id)))


@admin_router.get("")
async def admin_users(
    request: Request,
    q: Optional[str] = Query(None, max_length=256, description="Match against name or email"),
    sort: Optional[str] = Query(None, description="id, name, email or role"),
    order: SortOrder = Query(SortOrder.ASC),
    params: ViewParams = Depends(get_view_params),
    fetcher: DataFetcher = Depends(get_fetcher),
) -> dict[str, Any]:
    """Registered users with search, sort and pagination."""
    params = replace(params, q=q, sort=sort, order=order.value)
    return await render(request, "admin-users", fetcher, params)


@admin_router.get("/users/{user_id}/dashboard")
async def user_dashboard(
    request: Request,
    user_id: str,
    fetcher: DataFetcher = Depends(get_fetcher),
) -> dict[str, Any]:
    """Overview dashboard opened from the user registry."""
    result = await render(request, "dashboard", fetcher)
    result["user_id"] = user_id
    return result


@admin_router.get("/process-log")
async def process_log(
    request: Request,
    q: Optional[str] = Query(None, max_length=256, description="Filter on process name"),
    sort: ProcessSort = Query(ProcessSort.CPU),
    params: ViewParams = Depends(get_view_params),
    fetcher: DataFetcher = Depends(get_fetcher),
) -> dict[str, Any]:
    params = replace(params, q=q, sort=sort.value)
    return await render(request, "process-log", fetcher, params)


@admin_router.get("/usb")
async def usb(
    request: Request,
    params: ViewParams = Depends(get_view_params),
    fetcher: DataFetcher = Depends(get_fetcher),
) -> dict[str, Any]:
    return await render(request, "usb", fetcher, params)


@admin_router.get("/threat-lists")
async def threat_lists(
    request: Request,
    list_name: ThreatList = Query(ThreatList.BLACKLISTED_IPS, alias="list"),
    params: ViewParams = Depends(get_view_params),
    fetcher: DataFetcher = Depends(get_fetcher),
) -> dict[str, Any]:
    """IP black/white lists and phishing sites, one list per page."""
    params = replace(params, list_name=list_name.value)
    return await render(request, "threat-lists", fetcher, params)
