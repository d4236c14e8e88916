"""Tests for the view builders, run against the fake API's sample data."""

import httpx
import pytest

from soc_console.fetcher import DataFetcher
from soc_console.views import ViewParams, all_views, get_view, load_view
from soc_console.views.admin import parse_ip_list, parse_url_list, search_users, sort_records
from soc_console.views.analyst import DASHBOARD_RESOURCES

from fake_api import sample_data


def _build(name, params=None, data=None):
    spec = get_view(name)
    return spec.build(data or sample_data(), params or ViewParams())


def _cards(payload):
    return {c["label"]: c["value"] for c in payload["cards"]}


def test_every_view_is_registered():
    names = {spec.name for spec in all_views()}
    assert names == {
        "dashboard", "siem", "soar", "xdr", "edr", "ndr", "ueba", "threat-intelligence",
        "ml-security", "notifications", "account", "admin-users", "process-log", "usb", "threat-lists",
    }


def test_unknown_view():
    with pytest.raises(KeyError):
        get_view("nope")


def test_dashboard_reads_all_telemetry_collections():
    assert len(DASHBOARD_RESOURCES) == 18
    payload = _build("dashboard")
    assert _cards(payload)["alerts"] == 4
    assert payload["charts"]["alert_severity"]["labels"] == ["high", "low", "unknown"]
    assert payload["charts"]["alerts_over_time"]["labels"] == ["2024-03-01", "2024-03-02", "unknown"]
    assert payload["tables"]["recent_files"][1] == {"file_name": "b.dll", "action": "deleted"}
    assert [m["popup"]["city"] for m in payload["markers"]] == ["London"]


def test_siem_cards():
    cards = _cards(_build("siem"))
    assert cards["Total alerts"] == 4
    assert cards["Alert types"] == 3
    assert cards["Open / resolved incidents"] == "1 / 1"


def test_soar_resolution_and_fallback_labels():
    payload = _build("soar")
    cards = _cards(payload)
    assert cards["Resolved"] == 2
    assert cards["Unresolved"] == 1
    assert cards["Resolved %"] == 50
    assert cards["Avg response time"] == 15.0
    assert "Unknown Action" in payload["charts"]["analyst_actions"]["labels"]
    assert payload["charts"]["response_actions"]["labels"] == ["block", "Unknown Type"]


def test_edr_falls_back_to_reviewed():
    payload = _build("edr")
    assert payload["charts"]["analyst_actions"]["labels"] == ["quarantine", "Reviewed"]


def test_ndr_excludes_placeholder_anomalies():
    payload = _build("ndr")
    assert payload["charts"]["anomaly_types"]["labels"] == ["port_scan"]
    assert payload["charts"]["top_source_ips"]["labels"][0] == "10.0.0.1"


def test_ueba_flags_and_markers():
    payload = _build("ueba")
    assert payload["charts"]["ip_reputation"]["datasets"][0]["data"] == [1, 1]
    assert len(payload["markers"]) == 1


def test_threat_intelligence_multi_series():
    chart = _build("threat-intelligence")["charts"]["anomalies_vs_indicators"]
    assert chart["labels"] == ["port_scan", "ip"]
    assert [d["data"] for d in chart["datasets"]] == [[1, 0], [1, 1]]


def test_ml_security_only_counts_scanned_files():
    cards = _cards(_build("ml-security"))
    assert cards["Files scanned"] == 2
    assert cards["Malicious files"] == 1
    assert cards["Total size (MB)"] == 2.0
    assert cards["Malicious %"] == 50


def test_notifications_unread_count():
    payload = _build("notifications")
    assert payload["unread"] == 1
    assert payload["total"] == 2


def test_admin_users_search_sort_and_paginate():
    payload = _build("admin-users", ViewParams(q="ANA", page_size=10))
    assert [u["name"] for u in payload["page"]["items"]] == ["Ana Lyst"]

    payload = _build("admin-users", ViewParams(sort="id", order="desc", page_size=2, page=2))
    assert [u["id"] for u in payload["page"]["items"]] == [3]
    assert payload["page"]["total_pages"] == 2


def test_admin_users_ignores_unknown_sort_field():
    payload = _build("admin-users", ViewParams(sort="password"))
    assert payload["query"]["sort"] is None


def test_search_and_sort_helpers():
    users = sample_data()["users/all-users"]
    assert len(search_users(users, "corp.test")) == 1
    assert len(search_users(users, None)) == 3
    assert [u["name"] for u in sort_records(users, "name")] == ["Ada Min", "Ana Lyst", "Bob Stone"]


def test_process_log_rounds_filters_and_sorts():
    payload = _build("process-log", ViewParams(q="chrom", sort="Memory"))
    rows = payload["page"]["items"]
    assert [r["ProcessName"] for r in rows] == ["Chromium", "chrome.exe"]
    assert rows[1]["CPU"] == 12.35
    cards = _cards(payload)
    assert cards["Infected"] == 1
    assert cards["Total CPU"] == 63.35
    assert [t["time"] for t in payload["trend"]] == [
        "2024-03-01T10:00:00Z", "2024-03-02T10:00:00Z", "2024-03-03T10:00:00Z",
    ]


def test_usb_paginates_and_charts_first_ten():
    payload = _build("usb", ViewParams(page=3, page_size=10))
    assert len(payload["page"]["items"]) == 5
    assert payload["page"]["total_pages"] == 3
    assert len(payload["charts"]["scans"]["labels"]) == 10
    assert [d["label"] for d in payload["charts"]["scans"]["datasets"]] == ["Files Scanned", "Virus Found"]


def test_threat_list_parsing():
    assert parse_ip_list("1.2.3.4\n\nnope\n ::1 \n999.1.1.1") == ["1.2.3.4", "::1"]
    assert parse_url_list("http://a\nftp://b\n\nhttps://c") == ["http://a", "https://c"]


@pytest.mark.asyncio
async def test_load_view_fetches_declared_resources(fake_api):
    fetcher = DataFetcher(
        "http://api.test", "admin-token", transport=httpx.MockTransport(fake_api.handler)
    )
    result = await load_view(get_view("threat-lists"), fetcher, ViewParams(list_name="phishing_sites"))

    assert result["view"] == "threat-lists"
    assert result["status"] == "ready"
    assert result["data"]["list"] == "phishing_sites"
    assert result["data"]["page"]["items"] == ["http://bad.test", "https://worse.test"]
    assert {c["label"]: c["value"] for c in result["data"]["cards"]}["blacklisted_ips"] == 3


@pytest.mark.asyncio
async def test_load_account_uses_session_user_id(fake_api):
    fetcher = DataFetcher("http://api.test", "user-token", transport=httpx.MockTransport(fake_api.handler))
    result = await load_view(get_view("account"), fetcher, ViewParams(user_id="3"))

    assert result["data"]["user"]["email"] == "analyst@example.com"
    assert fake_api.paths() == ["/users/3"]
