"""Session and access control for the SOC console."""

from soc_console.auth.gate import (
    ADMIN_ROLES,
    ANALYST_ROLES,
    LOGIN_PATH,
    AccessGate,
    GateDecision,
    GateState,
    RouteDescriptor,
    RouteTable,
    evaluate_access,
)
from soc_console.auth.session import Role, Session, SessionStore, UserProfile

__all__ = [
    "ADMIN_ROLES",
    "ANALYST_ROLES",
    "LOGIN_PATH",
    "AccessGate",
    "GateDecision",
    "GateState",
    "Role",
    "RouteDescriptor",
    "RouteTable",
    "Session",
    "SessionStore",
    "UserProfile",
    "evaluate_access",
]
