"""Tests for the view binder."""

import pytest

from soc_console.aggregation import AggregationResult
from soc_console.binder import (
    PALETTE,
    BoundView,
    PageState,
    bind_cards,
    bind_chart,
    bind_markers,
    bind_series,
    bind_table,
    color_for,
    paginate,
)


def test_bind_chart_shape_and_palette_by_label_index():
    chart = bind_chart(AggregationResult(("high", "low"), (30, 20)), label="Alerts", kind="pie")
    assert chart == {
        "type": "pie",
        "labels": ["high", "low"],
        "datasets": [{"label": "Alerts", "data": [30, 20], "backgroundColor": [PALETTE[0], PALETTE[1]]}],
    }


def test_bind_chart_colours_are_stable_across_renders():
    result = AggregationResult(("a", "b", "c"), (1, 2, 3))
    first = bind_chart(result, label="x")
    second = bind_chart(result, label="x")
    assert first["datasets"][0]["backgroundColor"] == second["datasets"][0]["backgroundColor"]


def test_color_for_cycles_palette():
    assert color_for(len(PALETTE)) == PALETTE[0]


def test_bind_chart_rejects_unknown_kind():
    with pytest.raises(ValueError):
        bind_chart(AggregationResult(), label="x", kind="radar")


def test_bind_series_aligns_labels_and_fills_zero():
    chart = bind_series(
        {
            "anomalies": AggregationResult(("scan", "flood"), (3, 1)),
            "indicators": AggregationResult(("ip", "scan"), (2, 5)),
        }
    )
    assert chart["labels"] == ["scan", "flood", "ip"]
    assert chart["datasets"][0]["data"] == [3, 1, 0]
    assert chart["datasets"][1]["data"] == [5, 0, 2]
    assert chart["datasets"][1]["backgroundColor"] == PALETTE[1]


def test_bind_markers_drops_invalid_coordinates():
    records = [
        {"latitude": "51.5", "longitude": "-0.12", "city": "London"},
        {"latitude": None, "longitude": "2"},
    ]
    markers = bind_markers(records, popup_keys=("city",))
    assert markers == [{"lat": 51.5, "lng": -0.12, "popup": {"city": "London"}}]


def test_bind_cards_and_table():
    assert bind_cards([("Total", 4)]) == [{"label": "Total", "value": 4}]
    assert bind_table([{"a": 1, "b": 2}], ("a", "c")) == [{"a": 1, "c": None}]


def test_bound_view_rebinds_only_on_identity_change():
    calls = []

    def bind(records):
        calls.append(records)
        return len(records)

    view = BoundView(bind)
    records = [1, 2]
    assert view(records) == 2
    assert view(records) == 2
    assert len(calls) == 1

    assert view([1, 2]) == 2
    assert len(calls) == 2


def test_pagination_25_items_page_size_10():
    items = list(range(25))
    state = PageState.create(items, page_size=10)
    assert state.total_pages == 3
    assert len(state.goto(3).page_items) == 5
    assert state.goto(0).current_page == 1
    assert state.goto(4).current_page == 3


def test_pagination_reclamps_on_items_and_page_size_change():
    state = PageState.create(list(range(25)), page_size=10, page=3)
    assert state.with_items(list(range(5))).current_page == 1
    assert state.with_page_size(25).current_page == 1
    assert state.with_page_size(5).current_page == 3


def test_pagination_of_empty_list():
    state = PageState.create([], page_size=10, page=5)
    assert state.total_pages == 0
    assert state.current_page == 1
    assert state.page_items == []


def test_paginate_shape():
    page = paginate(list("abcdefghijk"), page=2, page_size=10)
    assert page == {"items": ["k"], "page": 2, "page_size": 10, "total_pages": 2, "total_items": 11}


def test_page_size_must_be_positive():
    with pytest.raises(ValueError):
        PageState.create([1], page_size=0)
