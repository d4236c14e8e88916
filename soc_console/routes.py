"""Protected route surface of the console."""

from __future__ import annotations

from soc_console.auth.gate import ADMIN_ROLES, ANALYST_ROLES, RouteDescriptor, RouteTable
from soc_console.auth.session import Role

ADMIN_HOME = "/admin"
ANALYST_HOME = "/dashboard"

ANALYST_ROUTES = (
    RouteDescriptor("/dashboard", ANALYST_ROLES, view="dashboard"),
    RouteDescriptor("/siem", ANALYST_ROLES, view="siem"),
    RouteDescriptor("/soar", ANALYST_ROLES, view="soar"),
    RouteDescriptor("/xdr", ANALYST_ROLES, view="xdr"),
    RouteDescriptor("/edr", ANALYST_ROLES, view="edr"),
    RouteDescriptor("/ndr", ANALYST_ROLES, view="ndr"),
    RouteDescriptor("/ueba", ANALYST_ROLES, view="ueba"),
    RouteDescriptor("/threat-intelligence", ANALYST_ROLES, view="threat-intelligence"),
    RouteDescriptor("/ml-security", ANALYST_ROLES, view="ml-security"),
    RouteDescriptor("/account", ANALYST_ROLES, view="account"),
    RouteDescriptor("/notifications", ANALYST_ROLES, view="notifications"),
)

# Sub-paths such as /admin/users/{id}/dashboard inherit the /admin allow-list.
ADMIN_ROUTES = (
    RouteDescriptor("/admin", ADMIN_ROLES, view="admin-users"),
    RouteDescriptor("/admin/process-log", ADMIN_ROLES, view="process-log"),
    RouteDescriptor("/admin/usb", ADMIN_ROLES, view="usb"),
    RouteDescriptor("/admin/threat-lists", ADMIN_ROLES, view="threat-lists"),
)


def build_route_table() -> RouteTable:
    return RouteTable(ANALYST_ROUTES + ADMIN_ROUTES)


def home_for(role: Role) -> str:
    """Where a freshly signed-in user lands."""
    return ADMIN_HOME if role is Role.ADMIN else ANALYST_HOME
