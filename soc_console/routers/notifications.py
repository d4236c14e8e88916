"""Notifications router.

Besides the one-shot view, notifications are offered as a server-sent event
stream that re-polls the API while the client keeps the stream open.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse

from soc_console.config import ConsoleConfig
from soc_console.dependencies import get_console_config, get_fetcher
from soc_console.fetcher import AuthFailure, DataFetcher, FetchError
from soc_console.lifecycle import Poller, ViewScope
from soc_console.routers.views import render
from soc_console.views import get_view, load_view

log = logging.getLogger("soc-console.notifications")

router = APIRouter(prefix="/notifications", tags=["notifications"])

# How often the stream checks whether the client went away.
DISCONNECT_CHECK_SECONDS = 1.0

# Where a stream client is sent when the API rejects its token. The
# response headers are already out, so the session is cleared there.
REAUTH_PATH = "/logout"


def format_event(event: str, payload: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(payload, default=str)}\n\n"


async def notification_events(
    request: Request,
    fetcher: DataFetcher,
    interval: float,
    limit: Optional[int] = None,
) -> AsyncIterator[str]:
    """Yield SSE frames until the client disconnects or ``limit`` is reached.

    Polling is owned by a ViewScope, so it stops as soon as this generator
    is closed.
    """
    spec = get_view("notifications")
    queue: asyncio.Queue = asyncio.Queue()

    async def poll() -> None:
        try:
            payload = await load_view(spec, fetcher)
        except AuthFailure:
            await queue.put(("reauth", {"redirect_to": REAUTH_PATH}))
            return
        except FetchError as e:
            log.warning("Notification poll failed: %s", e)
            await queue.put(("error", {"status": "error", "message": e.message}))
            return
        except Exception:
            log.exception("Notification poll crashed")
            await queue.put(("error", {"status": "error", "message": "notifications unavailable"}))
            return
        await queue.put(("notifications", payload))

    sent = 0
    async with ViewScope("notifications-stream") as scope:
        Poller(scope, interval, poll).start()
        while limit is None or sent < limit:
            if await request.is_disconnected():
                break
            try:
                event, payload = await asyncio.wait_for(queue.get(), timeout=DISCONNECT_CHECK_SECONDS)
            except asyncio.TimeoutError:
                continue
            yield format_event(event, payload)
            sent += 1
            if event == "reauth":
                break


@router.get("")
async def notifications(request: Request, fetcher: DataFetcher = Depends(get_fetcher)) -> dict[str, Any]:
    return await render(request, "notifications", fetcher)


@router.get("/stream")
async def notifications_stream(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, description="Close the stream after this many events"),
    fetcher: DataFetcher = Depends(get_fetcher),
    config: ConsoleConfig = Depends(get_console_config),
) -> StreamingResponse:
    return StreamingResponse(
        notification_events(request, fetcher, config.notification_poll_seconds, limit),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/mark-all-read")
async def mark_all_read(fetcher: DataFetcher = Depends(get_fetcher)) -> dict[str, Any]:
    await fetcher.post("notifications/mark_all_read")
    log.info("Marked all notifications read")
    return {"status": "ok"}
