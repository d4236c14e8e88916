"""View lifetime management.

A ViewScope stands for one mounted view: one request being rendered, or one
open event stream. Work started on behalf of the view is owned by its scope
and cancelled when the scope is disposed, and state writes that land after
disposal are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Coroutine, Optional, Set

log = logging.getLogger("soc-console.lifecycle")


class ScopeDisposed(RuntimeError):
    """Work was submitted to a scope that has already been disposed."""


class ViewScope:
    """Owns the tasks of one mounted view.

    Usable as an async context manager; leaving the block disposes the scope.
    """

    def __init__(self, name: str):
        self.name = name
        self._tasks: Set[asyncio.Task] = set()
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        if self._disposed:
            coro.close()
            raise ScopeDisposed(f"view scope {self.name} is disposed")
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        pending = [t for t in self._tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        log.debug("Disposed view scope %s (cancelled %d tasks)", self.name, len(pending))

    async def __aenter__(self) -> ViewScope:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()


class ViewStatus(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class ViewState:
    """Readiness of a view: loading, then ready or error.

    Writes after the owning scope is disposed are ignored and return False.
    """

    def __init__(self, scope: ViewScope):
        self._scope = scope
        self.status = ViewStatus.LOADING
        self.data: Any = None
        self.error: Optional[str] = None

    def _writable(self, what: str) -> bool:
        if self._scope.disposed:
            log.debug("Dropping %s write to disposed view %s", what, self._scope.name)
            return False
        return True

    def set_ready(self, data: Any) -> bool:
        if not self._writable("ready"):
            return False
        self.status = ViewStatus.READY
        self.data = data
        self.error = None
        return True

    def set_error(self, message: str) -> bool:
        if not self._writable("error"):
            return False
        self.status = ViewStatus.ERROR
        self.error = message
        return True

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.status.value}
        if self.status is ViewStatus.READY:
            out["data"] = self.data
        elif self.status is ViewStatus.ERROR:
            out["message"] = self.error
        return out


class Poller:
    """Calls ``fn`` now and then every ``interval`` seconds until stopped.

    The polling task belongs to ``scope``, so disposing the scope stops it.
    An exception raised by ``fn`` ends the polling and is kept on the task.
    """

    def __init__(self, scope: ViewScope, interval: float, fn: Callable[[], Awaitable[Any]]):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.scope = scope
        self.interval = interval
        self.fn = fn
        self.runs = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> Poller:
        if self.running:
            return self
        self._task = self.scope.spawn(self._run())
        return self

    async def _run(self) -> None:
        while True:
            await self.fn()
            self.runs += 1
            await asyncio.sleep(self.interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
