"""View registry and the fetch/aggregate/bind pipeline shared by all views."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Optional

from soc_console.fetcher import DataFetcher
from soc_console.lifecycle import ViewScope, ViewState

log = logging.getLogger("soc-console.views")

ViewData = Mapping[str, Any]


@dataclass(frozen=True)
class ViewParams:
    """Query parameters a view may honour."""

    page: int = 1
    page_size: int = 10
    q: Optional[str] = None
    sort: Optional[str] = None
    order: str = "asc"
    list_name: Optional[str] = None
    user_id: Optional[str] = None


Builder = Callable[[ViewData, ViewParams], dict[str, Any]]


@dataclass(frozen=True)
class ViewSpec:
    """A named view: which resources it reads and how it binds them.

    ``text`` views read plain-text resources instead of JSON arrays.
    ``single`` views read one JSON document; its resource may contain a
    ``{user_id}`` placeholder filled from the params.
    """

    name: str
    resources: tuple[str, ...]
    build: Builder
    text: bool = False
    single: bool = False

    def resolve_resources(self, params: ViewParams) -> list[str]:
        if not self.single:
            return list(self.resources)
        return [r.format(user_id=params.user_id) for r in self.resources]


_REGISTRY: dict[str, ViewSpec] = {}


def register(spec: ViewSpec) -> ViewSpec:
    if spec.name in _REGISTRY:
        raise ValueError(f"view already registered: {spec.name}")
    _REGISTRY[spec.name] = spec
    return spec


def view(
    name: str,
    resources: Iterable[str],
    *,
    text: bool = False,
    single: bool = False,
) -> Callable[[Builder], Builder]:
    """Decorator registering a builder function as a view."""

    def _wrap(fn: Builder) -> Builder:
        register(ViewSpec(name=name, resources=tuple(resources), build=fn, text=text, single=single))
        return fn

    return _wrap


def get_view(name: str) -> ViewSpec:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(f"unknown view: {name}") from None


def all_views() -> list[ViewSpec]:
    return list(_REGISTRY.values())


async def _fetch(spec: ViewSpec, fetcher: DataFetcher, params: ViewParams) -> dict[str, Any]:
    resources = spec.resolve_resources(params)
    if spec.text:
        return await fetcher.fetch_texts(resources)
    if spec.single:
        return {spec.resources[0]: await fetcher.fetch_one(resources[0])}
    return await fetcher.fetch_batch(resources)


async def load_view(
    spec: ViewSpec,
    fetcher: DataFetcher,
    params: Optional[ViewParams] = None,
) -> dict[str, Any]:
    """Fetch, aggregate and bind one view.

    The fetch runs inside a ViewScope owned by this call. Fetch errors
    propagate to the caller; nothing partial is bound.
    """
    params = params or ViewParams()
    async with ViewScope(spec.name) as scope:
        state = ViewState(scope)
        data = await scope.spawn(_fetch(spec, fetcher, params))
        state.set_ready(spec.build(data, params))
        log.debug("Bound view %s", spec.name)
        return {"view": spec.name, **state.to_dict()}
