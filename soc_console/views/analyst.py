"""Analyst views, open to every signed-in role."""

from __future__ import annotations

from typing import Any

from soc_console.aggregation import (
    count_where,
    distinct_count,
    filter_records,
    frequency_table,
    mean_field,
    ratio,
    split_counts,
    sum_field,
    time_bucket,
    to_number,
    top_n,
)
from soc_console.binder import bind_cards, bind_chart, bind_markers, bind_series, bind_table
from soc_console.views.base import ViewData, ViewParams, view

DASHBOARD_RESOURCES = (
    "alerts",
    "ip_analysis",
    "edr_alerts",
    "edr_endpoints",
    "edr_analyst_logs",
    "filelog",
    "network_logs",
    "network_alerts_xdr",
    "incident",
    "analyst_logs",
    "case_timeline_soar",
    "collaboration_log_soar",
    "response_action_log_soar",
    "threats_xdr",
    "ti_feed_soar",
    "user_activity",
    "cloud_alerts_xdr",
    "endpoints_xdr",
)

IP_POPUP = ("ip_address", "city", "country")
RECENT_ROWS = 10
BYTES_PER_MB = 1024 * 1024


def _eq(field: str, value: Any):
    return lambda record: record.get(field) == value


def _flag(field: str):
    # The API sends these flags as "1"/"0" strings or as numbers.
    return lambda record: str(record.get(field)) == "1"


@view("dashboard", DASHBOARD_RESOURCES)
def dashboard(data: ViewData, params: ViewParams) -> dict[str, Any]:
    alerts = data["alerts"]
    files = [
        {
            "file_name": r.get("fileName") or r.get("filename"),
            "action": r.get("FileEvent") or r.get("action"),
        }
        for r in data["filelog"][:RECENT_ROWS]
    ]
    return {
        "cards": bind_cards((name, len(data[name])) for name in DASHBOARD_RESOURCES),
        "charts": {
            "alert_status": bind_chart(frequency_table(alerts, "status"), label="Alerts", kind="doughnut"),
            "alerts_over_time": bind_chart(time_bucket(alerts, "alert_datetime"), label="Alerts", kind="line"),
            "alert_severity": bind_chart(frequency_table(alerts, "severity"), label="Alerts"),
            "endpoint_status": bind_chart(
                frequency_table(data["edr_endpoints"], "status"), label="Endpoints", kind="pie"
            ),
            "network_alert_types": bind_chart(
                frequency_table(data["network_alerts_xdr"], "type"), label="Network alerts"
            ),
            "threat_types": bind_chart(
                frequency_table(data["threats_xdr"], "threat_type"), label="Threats", kind="doughnut"
            ),
            "user_activity": bind_chart(
                frequency_table(data["user_activity"], "activity_type"), label="Activities"
            ),
        },
        "markers": bind_markers(data["ip_analysis"], popup_keys=IP_POPUP),
        "tables": {
            "recent_files": files,
            "cloud_alerts": bind_table(
                data["cloud_alerts_xdr"][:RECENT_ROWS], ("user_email", "alert_type", "severity")
            ),
        },
    }


@view("siem", ("alerts", "incident", "ip_analysis", "network_logs"))
def siem(data: ViewData, params: ViewParams) -> dict[str, Any]:
    alerts = data["alerts"]
    incidents = data["incident"]
    open_incidents = count_where(incidents, _eq("status", "open"))
    resolved_incidents = count_where(incidents, _eq("status", "resolved"))
    return {
        "cards": bind_cards(
            [
                ("Total alerts", len(alerts)),
                ("Alert types", distinct_count(alerts, "alert_type")),
                ("Open alerts", count_where(alerts, _eq("status", "open"))),
                ("Resolved alerts", count_where(alerts, _eq("status", "resolved"))),
                ("Incidents", len(incidents)),
                ("Open / resolved incidents", f"{open_incidents} / {resolved_incidents}"),
                ("Network log entries", len(data["network_logs"])),
            ]
        ),
        "charts": {
            "alert_status": bind_chart(frequency_table(alerts, "status"), label="Alerts", kind="pie"),
            "alerts_over_time": bind_chart(time_bucket(alerts, "alert_datetime"), label="Alerts", kind="line"),
            "alert_severity": bind_chart(frequency_table(alerts, "severity"), label="Alerts"),
            "detection_source": bind_chart(frequency_table(alerts, "detection_source"), label="Alerts"),
            "incident_status": bind_chart(frequency_table(incidents, "status"), label="Incidents", kind="doughnut"),
            "incident_priority": bind_chart(frequency_table(incidents, "priority"), label="Incidents"),
            "incident_type": bind_chart(frequency_table(incidents, "incident_type"), label="Incidents"),
        },
        "markers": bind_markers(data["ip_analysis"], popup_keys=IP_POPUP + ("incident_count",)),
    }


@view(
    "soar",
    (
        "alerts",
        "analyst_logs",
        "case_timeline_soar",
        "collaboration_log_soar",
        "response_action_log_soar",
    ),
)
def soar(data: ViewData, params: ViewParams) -> dict[str, Any]:
    alerts = data["alerts"]
    analyst_logs = data["analyst_logs"]
    resolved = count_where(alerts, _eq("status", "resolved"))
    unresolved = count_where(alerts, _eq("status", "unresolved"))
    return {
        "cards": bind_cards(
            [
                ("Total alerts", len(alerts)),
                ("Resolved", resolved),
                ("Unresolved", unresolved),
                ("Resolved %", ratio(resolved, len(alerts))),
                ("Analysts", distinct_count(analyst_logs, "analyst_id")),
                ("Avg response time", round(mean_field(analyst_logs, "response_time"), 2)),
                ("Case events", len(data["case_timeline_soar"])),
                ("Collaboration messages", len(data["collaboration_log_soar"])),
            ]
        ),
        "charts": {
            "resolution": bind_chart(
                split_counts(
                    filter_records(alerts, lambda r: r.get("status") in ("resolved", "unresolved")),
                    _eq("status", "resolved"),
                    ("Resolved", "Unresolved"),
                ),
                label="Alerts",
                kind="doughnut",
            ),
            "analyst_actions": bind_chart(
                frequency_table(analyst_logs, "action_performed", missing_label="Unknown Action"),
                label="Actions",
            ),
            "response_actions": bind_chart(
                frequency_table(
                    data["response_action_log_soar"], "action_type", missing_label="Unknown Type"
                ),
                label="Response actions",
                kind="pie",
            ),
        },
    }


@view(
    "xdr",
    ("cloud_alerts_xdr", "network_alerts_xdr", "threats_xdr", "endpoints_xdr", "ti_feed_soar"),
)
def xdr(data: ViewData, params: ViewParams) -> dict[str, Any]:
    cloud = data["cloud_alerts_xdr"]
    network = data["network_alerts_xdr"]
    threats = data["threats_xdr"]
    endpoints = data["endpoints_xdr"]
    return {
        "cards": bind_cards(
            [
                ("Cloud alerts", len(cloud)),
                ("Network alerts", len(network)),
                ("Threats", len(threats)),
                ("Endpoints", len(endpoints)),
            ]
        ),
        "charts": {
            "cloud_severity": bind_chart(frequency_table(cloud, "severity"), label="Cloud alerts", kind="pie"),
            "cloud_alert_types": bind_chart(frequency_table(cloud, "alert_type"), label="Cloud alerts"),
            "network_alerts_over_time": bind_chart(
                time_bucket(network, "detected_at"), label="Network alerts", kind="line"
            ),
            "threat_types": bind_chart(frequency_table(threats, "threat_type"), label="Threats"),
            "threat_status": bind_chart(frequency_table(threats, "status"), label="Threats", kind="doughnut"),
            "endpoint_os": bind_chart(frequency_table(endpoints, "os_type"), label="Endpoints", kind="pie"),
            "top_techniques": bind_chart(
                top_n(data["ti_feed_soar"], "technique_name", 10), label="Techniques"
            ),
        },
    }


@view("edr", ("edr_alerts", "edr_endpoints", "edr_analyst_logs"))
def edr(data: ViewData, params: ViewParams) -> dict[str, Any]:
    alerts = data["edr_alerts"]
    endpoints = data["edr_endpoints"]
    logs = data["edr_analyst_logs"]
    return {
        "cards": bind_cards(
            [
                ("EDR alerts", len(alerts)),
                ("Endpoints", len(endpoints)),
                ("Analyst actions", len(logs)),
                ("Analysts", distinct_count(logs, "analyst_name")),
            ]
        ),
        "charts": {
            "alert_severity": bind_chart(frequency_table(alerts, "severity"), label="Alerts", kind="pie"),
            "alerts_over_time": bind_chart(time_bucket(alerts, "detected_at"), label="Alerts", kind="line"),
            "endpoint_os": bind_chart(frequency_table(endpoints, "os_type"), label="Endpoints"),
            "analyst_actions": bind_chart(
                frequency_table(logs, "action_type", missing_label="Reviewed"),
                label="Analyst actions",
                kind="doughnut",
            ),
        },
    }


@view("ndr", ("network_logs", "network_alerts_xdr", "ip_analysis"))
def ndr(data: ViewData, params: ViewParams) -> dict[str, Any]:
    logs = data["network_logs"]
    alerts = data["network_alerts_xdr"]
    return {
        "cards": bind_cards(
            [
                ("Network log entries", len(logs)),
                ("Network alerts", len(alerts)),
                ("Source IPs", distinct_count(logs, "source_ip")),
            ]
        ),
        "charts": {
            "traffic_over_time": bind_chart(time_bucket(logs, "datetime"), label="Log entries", kind="line"),
            "alert_severity": bind_chart(frequency_table(alerts, "severity"), label="Alerts", kind="pie"),
            "top_source_ips": bind_chart(top_n(logs, "source_ip", 10), label="Entries"),
            "anomaly_types": bind_chart(
                frequency_table(logs, "anomaly_type", exclude=("NA", "")), label="Anomalies", kind="doughnut"
            ),
        },
        "markers": bind_markers(data["ip_analysis"], popup_keys=IP_POPUP),
    }


@view("ueba", ("user_activity",))
def ueba(data: ViewData, params: ViewParams) -> dict[str, Any]:
    activity = data["user_activity"]
    return {
        "cards": bind_cards(
            [
                ("Activities", len(activity)),
                ("Users", distinct_count(activity, "user_id")),
                ("Blacklisted IPs", count_where(activity, _flag("is_ip_blacklisted"))),
            ]
        ),
        "charts": {
            "ip_reputation": bind_chart(
                split_counts(activity, _flag("is_ip_blacklisted"), ("Blacklisted", "Whitelisted")),
                label="Activities",
                kind="pie",
            ),
            "publisher_verification": bind_chart(
                split_counts(activity, _flag("publisher_verified"), ("Verified", "Unverified")),
                label="Software installs",
                kind="doughnut",
            ),
            "top_countries": bind_chart(top_n(activity, "country", 10), label="Activities"),
        },
        "markers": bind_markers(
            activity, popup_keys=("user_id", "ip_address", "city", "region", "country", "new_software_name")
        ),
    }


@view("threat-intelligence", ("threats_xdr", "network_logs", "ti_feed_soar"))
def threat_intelligence(data: ViewData, params: ViewParams) -> dict[str, Any]:
    threats = data["threats_xdr"]
    logs = data["network_logs"]
    feed = data["ti_feed_soar"]
    return {
        "cards": bind_cards(
            [
                ("Threats", len(threats)),
                ("Critical threats", count_where(threats, _eq("severity", "Critical"))),
                ("Open threats", count_where(threats, _eq("status", "Open"))),
                ("High threat indicators", count_where(feed, _eq("threat_level", "High"))),
                ("Network log entries", len(logs)),
            ]
        ),
        "charts": {
            "threat_types": bind_chart(frequency_table(threats, "threat_type"), label="Threats", kind="pie"),
            "anomalies_vs_indicators": bind_series(
                {
                    "Network anomalies": frequency_table(logs, "anomaly_type", exclude=("NA", "")),
                    "Threat indicators": frequency_table(feed, "indicator_type"),
                }
            ),
            "top_countries": bind_chart(top_n(logs, "country", 10), label="Log entries"),
        },
    }


@view("ml-security", ("filelog",))
def ml_security(data: ViewData, params: ViewParams) -> dict[str, Any]:
    scanned = filter_records(data["filelog"], lambda r: to_number(r.get("MLScan")) == 1)
    malicious = count_where(scanned, lambda r: to_number(r.get("isMalicious")) == 1)
    return {
        "cards": bind_cards(
            [
                ("Files scanned", len(scanned)),
                ("Malicious files", malicious),
                ("Clean files", len(scanned) - malicious),
                ("Total size (MB)", round(sum_field(scanned, "fileSize") / BYTES_PER_MB, 2)),
                ("Malicious %", ratio(malicious, len(scanned))),
            ]
        ),
        "charts": {
            "verdicts": bind_chart(
                split_counts(scanned, lambda r: to_number(r.get("isMalicious")) == 1, ("Malicious", "Clean")),
                label="Files",
                kind="doughnut",
            ),
        },
        "table": bind_table(scanned, ("fileName", "fileSize", "isMalicious", "FileEvent")),
    }


@view("notifications", ("notifications",))
def notifications(data: ViewData, params: ViewParams) -> dict[str, Any]:
    items = data["notifications"]
    return {
        "unread": count_where(items, lambda r: not r.get("read")),
        "total": len(items),
        "items": bind_table(items, ("id", "title", "message", "type", "read", "timestamp")),
    }


@view("account", ("users/{user_id}",), single=True)
def account(data: ViewData, params: ViewParams) -> dict[str, Any]:
    user = data["users/{user_id}"]
    if not isinstance(user, dict):
        user = {}
    return {"user": {k: user.get(k) for k in ("id", "name", "email", "role")}}
