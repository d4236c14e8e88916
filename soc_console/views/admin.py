"""Admin-only views: user registry, process scans, USB scans, indicator lists."""

from __future__ import annotations

import ipaddress
import math
from typing import Any, Iterable, Mapping, Optional, Sequence

from soc_console.aggregation import (
    AggregationResult,
    Record,
    count_where,
    frequency_table,
    parse_date,
    sum_field,
    to_number,
)
from soc_console.binder import bind_cards, bind_chart, bind_series, bind_table, paginate
from soc_console.views.base import ViewData, ViewParams, view

USER_COLUMNS = ("id", "name", "email", "role")
PROCESS_SORT_KEYS = ("CPU", "Memory")
PROCESS_COLUMNS = (
    "id",
    "ProcessName",
    "processID",
    "UserName",
    "CPU",
    "Memory",
    "fileSize",
    "isSigned",
    "MalwareFamily",
    "VirusType",
    "DateTimeP",
)
USB_COLUMNS = (
    "macAddress",
    "product_key",
    "UserName",
    "Total_FileScanned",
    "Total_Virus_Found",
    "Detection_Time",
    "Removal_Time",
)

THREAT_LISTS = {
    "blacklisted_ips": "threat_lists/blacklisted_ips",
    "whitelisted_ips": "threat_lists/whitelisted_ips",
    "phishing_sites": "threat_lists/phishing_sites",
}
DEFAULT_THREAT_LIST = "blacklisted_ips"


def _sort_key(value: Any) -> tuple:
    # Numbers before strings, missing values last.
    if value is None:
        return (2, 0.0, "")
    n = to_number(value)
    if math.isfinite(n):
        return (0, n, "")
    return (1, 0.0, str(value).lower())


def _unique_labels(labels: Iterable[Any]) -> list[str]:
    seen: dict[str, int] = {}
    out = []
    for raw in labels:
        label = "unknown" if raw is None else str(raw)
        n = seen.get(label, 0) + 1
        seen[label] = n
        out.append(label if n == 1 else f"{label} #{n}")
    return out


def _metric_result(rows: Sequence[Record], label_field: str, metric: str) -> AggregationResult:
    return AggregationResult(
        labels=tuple(_unique_labels(r.get(label_field) for r in rows)),
        values=tuple(r.get(metric) or 0 for r in rows),
    )


def search_users(users: Iterable[Record], q: Optional[str]) -> list[Record]:
    """Case-insensitive match of ``q`` against user name or email."""
    users = list(users)
    needle = (q or "").strip().lower()
    if not needle:
        return users
    return [
        u
        for u in users
        if needle in str(u.get("name") or "").lower() or needle in str(u.get("email") or "").lower()
    ]


def sort_records(records: Iterable[Record], field: Optional[str], order: str = "asc") -> list[Record]:
    records = list(records)
    if not field:
        return records
    return sorted(records, key=lambda r: _sort_key(r.get(field)), reverse=order == "desc")


@view("admin-users", ("users/all-users",))
def admin_users(data: ViewData, params: ViewParams) -> dict[str, Any]:
    users = data["users/all-users"]
    sort = params.sort if params.sort in USER_COLUMNS else None
    matched = sort_records(search_users(users, params.q), sort, params.order)
    return {
        "cards": bind_cards(
            [
                ("Users", len(users)),
                ("Admins", count_where(users, lambda u: str(u.get("role") or "").lower() == "admin")),
            ]
        ),
        "charts": {
            "roles": bind_chart(frequency_table(users, "role"), label="Users", kind="pie"),
        },
        "query": {"q": params.q, "sort": sort, "order": params.order},
        "page": paginate(bind_table(matched, USER_COLUMNS), params.page, params.page_size),
    }


def normalize_process(record: Record) -> dict[str, Any]:
    """Round CPU and memory to two places; unparseable values become 0."""
    row = dict(record)
    for key in PROCESS_SORT_KEYS:
        n = to_number(record.get(key))
        row[key] = round(n, 2) if math.isfinite(n) else 0.0
    return row


@view("process-log", ("ProcessLog1",))
def process_log(data: ViewData, params: ViewParams) -> dict[str, Any]:
    rows = [normalize_process(r) for r in data["ProcessLog1"]]
    sort = params.sort if params.sort in PROCESS_SORT_KEYS else "CPU"
    needle = (params.q or "").strip().lower()
    filtered = [r for r in rows if needle in str(r.get("ProcessName") or "").lower()]
    filtered.sort(key=lambda r: r[sort], reverse=True)
    top = filtered[:5]

    dated = [(parse_date(r.get("DateTimeP")), r) for r in rows]
    trend = [
        {"time": r.get("DateTimeP"), "CPU": r["CPU"], "Memory": r["Memory"]}
        for _, r in sorted(
            (item for item in dated if item[0] is not None), key=lambda item: item[0]
        )
    ]

    return {
        "cards": bind_cards(
            [
                ("Processes", len(rows)),
                ("Total CPU", round(sum_field(rows, "CPU"), 2)),
                ("Total memory", round(sum_field(rows, "Memory"), 2)),
                ("Infected", count_where(rows, lambda r: bool(r.get("MalwareFamily")))),
            ]
        ),
        "charts": {
            "top_cpu": bind_chart(_metric_result(top, "ProcessName", "CPU"), label="CPU"),
            "top_memory": bind_chart(_metric_result(top, "ProcessName", "Memory"), label="Memory"),
            "cpu_distribution": bind_chart(_metric_result(top, "ProcessName", "CPU"), label="CPU", kind="pie"),
            "virus_types": bind_chart(
                frequency_table(filter_infected(rows), "VirusType"), label="Infections", kind="doughnut"
            ),
        },
        "trend": trend,
        "query": {"q": params.q, "sort": sort},
        "page": paginate(bind_table(filtered, PROCESS_COLUMNS), params.page, params.page_size),
    }


def filter_infected(rows: Iterable[Record]) -> list[Record]:
    return [r for r in rows if r.get("MalwareFamily")]


@view("usb", ("USBLog",))
def usb(data: ViewData, params: ViewParams) -> dict[str, Any]:
    logs = data["USBLog"]
    head = logs[:10]
    labels = tuple(_unique_labels(r.get("macAddress") for r in head))
    return {
        "cards": bind_cards(
            [
                ("Devices", len(logs)),
                ("Files scanned", int(sum_field(logs, "Total_FileScanned"))),
                ("Viruses found", int(sum_field(logs, "Total_Virus_Found"))),
            ]
        ),
        "charts": {
            "scans": bind_series(
                {
                    "Files Scanned": AggregationResult(
                        labels, tuple(_count_value(r, "Total_FileScanned") for r in head)
                    ),
                    "Virus Found": AggregationResult(
                        labels, tuple(_count_value(r, "Total_Virus_Found") for r in head)
                    ),
                }
            ),
        },
        "page": paginate(bind_table(logs, USB_COLUMNS), params.page, params.page_size),
    }


def _count_value(record: Record, field: str) -> float:
    n = to_number(record.get(field))
    return n if math.isfinite(n) else 0


def _is_ip(text: str) -> bool:
    try:
        ipaddress.ip_address(text)
    except ValueError:
        return False
    return True


def parse_ip_list(text: str) -> list[str]:
    """One address per line; blank lines and invalid addresses are dropped."""
    return [line for line in (raw.strip() for raw in text.splitlines()) if line and _is_ip(line)]


def parse_url_list(text: str) -> list[str]:
    """One URL per line; only http(s) entries are kept."""
    return [line for line in (raw.strip() for raw in text.splitlines()) if line.startswith("http")]


def parse_threat_lists(texts: Mapping[str, str]) -> dict[str, list[str]]:
    return {
        "blacklisted_ips": parse_ip_list(texts[THREAT_LISTS["blacklisted_ips"]]),
        "whitelisted_ips": parse_ip_list(texts[THREAT_LISTS["whitelisted_ips"]]),
        "phishing_sites": parse_url_list(texts[THREAT_LISTS["phishing_sites"]]),
    }


@view("threat-lists", tuple(THREAT_LISTS.values()), text=True)
def threat_lists(data: ViewData, params: ViewParams) -> dict[str, Any]:
    lists = parse_threat_lists(data)
    active = params.list_name if params.list_name in lists else DEFAULT_THREAT_LIST
    return {
        "cards": bind_cards((name, len(entries)) for name, entries in lists.items()),
        "list": active,
        "page": paginate(lists[active], params.page, params.page_size),
    }
