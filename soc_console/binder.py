"""Binding of aggregation results into widget payloads.

Charts are emitted in the shape Chart.js consumes, map markers in the shape
Leaflet markers need, and tables as lists of row objects.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, Iterable, Mapping, Optional, Sequence, TypeVar

from soc_console.aggregation import AggregationResult, Record, to_number, valid_coordinates

PALETTE: tuple[str, ...] = (
    "#ef4444",
    "#3b82f6",
    "#10b981",
    "#f59e0b",
    "#8b5cf6",
    "#ec4899",
    "#14b8a6",
    "#f97316",
    "#6366f1",
    "#0ea5e9",
)

CHART_KINDS = {"bar", "line", "pie", "doughnut"}

T = TypeVar("T")


def color_for(index: int) -> str:
    return PALETTE[index % len(PALETTE)]


def _check_kind(kind: str) -> str:
    if kind not in CHART_KINDS:
        raise ValueError(f"unsupported chart kind: {kind}")
    return kind


def bind_chart(result: AggregationResult, *, label: str, kind: str = "bar") -> dict[str, Any]:
    """Single-series chart; label ``i`` always gets palette colour ``i``."""
    return {
        "type": _check_kind(kind),
        "labels": list(result.labels),
        "datasets": [
            {
                "label": label,
                "data": list(result.values),
                "backgroundColor": [color_for(i) for i in range(len(result.labels))],
            }
        ],
    }


def bind_series(series: Mapping[str, AggregationResult], *, kind: str = "bar") -> dict[str, Any]:
    """Multi-series chart over the union of all labels.

    Labels keep first-seen order across the series; a series without a
    label contributes 0 at that position. Series ``i`` gets palette colour
    ``i``.
    """
    labels: list[str] = []
    seen: set[str] = set()
    for result in series.values():
        for lbl in result.labels:
            if lbl not in seen:
                seen.add(lbl)
                labels.append(lbl)

    datasets = []
    for i, (name, result) in enumerate(series.items()):
        values = dict(result.items())
        datasets.append(
            {
                "label": name,
                "data": [values.get(lbl, 0) for lbl in labels],
                "backgroundColor": color_for(i),
            }
        )
    return {"type": _check_kind(kind), "labels": labels, "datasets": datasets}


def bind_markers(
    records: Iterable[Record],
    *,
    lat_key: str = "latitude",
    lng_key: str = "longitude",
    popup_keys: Sequence[str] = (),
) -> list[dict[str, Any]]:
    """Map markers for records with valid coordinates."""
    markers = []
    for record in valid_coordinates(records, lat_key, lng_key):
        markers.append(
            {
                "lat": to_number(record.get(lat_key)),
                "lng": to_number(record.get(lng_key)),
                "popup": {k: record.get(k) for k in popup_keys},
            }
        )
    return markers


def bind_cards(pairs: Iterable[tuple[str, Any]]) -> list[dict[str, Any]]:
    return [{"label": label, "value": value} for label, value in pairs]


def bind_table(records: Iterable[Record], columns: Sequence[str]) -> list[dict[str, Any]]:
    return [{c: record.get(c) for c in columns} for record in records]


class BoundView(Generic[T]):
    """Memoised binding of one record collection.

    ``bind`` is re-run only when the collection passed in is a different
    object from the last one; the same object returns the cached payload.
    """

    def __init__(self, bind: Callable[[Any], T]):
        self._bind = bind
        self._source: Any = None
        self._bound: Optional[T] = None
        self._has_value = False

    def __call__(self, records: Any) -> T:
        if not self._has_value or records is not self._source:
            self._bound = self._bind(records)
            self._source = records
            self._has_value = True
        return self._bound  # type: ignore[return-value]

    @property
    def rebinds_on(self) -> Any:
        return self._source


@dataclass(frozen=True)
class PageState:
    """One page of a record list.

    Always constructed clamped: ``current_page`` lies in
    ``[1, max(1, total_pages)]``.
    """

    items: tuple[Any, ...]
    page_size: int
    current_page: int

    @classmethod
    def create(cls, items: Sequence[Any], page_size: int, page: int = 1) -> PageState:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        items = tuple(items)
        total = math.ceil(len(items) / page_size)
        current = min(max(1, int(page)), max(1, total))
        return cls(items=items, page_size=page_size, current_page=current)

    @property
    def total_items(self) -> int:
        return len(self.items)

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.items) / self.page_size)

    @property
    def page_items(self) -> list[Any]:
        start = (self.current_page - 1) * self.page_size
        return list(self.items[start : start + self.page_size])

    def with_items(self, items: Sequence[Any]) -> PageState:
        return PageState.create(items, self.page_size, self.current_page)

    def with_page_size(self, page_size: int) -> PageState:
        return PageState.create(self.items, page_size, self.current_page)

    def goto(self, page: int) -> PageState:
        return PageState.create(self.items, self.page_size, page)

    def to_dict(self) -> dict[str, Any]:
        return {
            "items": self.page_items,
            "page": self.current_page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "total_items": self.total_items,
        }


def paginate(items: Sequence[Any], page: int, page_size: int) -> dict[str, Any]:
    return PageState.create(items, page_size, page).to_dict()
