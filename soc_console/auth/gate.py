"""Route-level access gate.

Decides whether a requested view may render for the current session, or
whether the visitor must be sent back to the login entry point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from soc_console.auth.session import Role, Session, SessionStore

log = logging.getLogger("soc-console.gate")

LOGIN_PATH = "/"

ANALYST_ROLES: frozenset[Role] = frozenset({Role.USER, Role.ADMIN})
ADMIN_ROLES: frozenset[Role] = frozenset({Role.ADMIN})


@dataclass(frozen=True)
class RouteDescriptor:
    """A protected path and the roles allowed to open it."""

    path: str
    allowed_roles: frozenset[Role]
    view: Optional[str] = None

    def __post_init__(self):
        if not self.path.startswith("/"):
            raise ValueError(f"route path must be absolute: {self.path}")
        if not self.allowed_roles:
            raise ValueError(f"route {self.path} must allow at least one role")
        object.__setattr__(self, "allowed_roles", frozenset(Role(r) for r in self.allowed_roles))


def _normalize(path: str) -> str:
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/")
    return path or "/"


class RouteTable:
    """Immutable lookup of route descriptors by path."""

    def __init__(self, descriptors: Iterable[RouteDescriptor]):
        table: dict[str, RouteDescriptor] = {}
        for d in descriptors:
            key = _normalize(d.path)
            if key in table:
                raise ValueError(f"duplicate route: {key}")
            table[key] = d
        self._table = table

    def __iter__(self):
        return iter(self._table.values())

    def __len__(self) -> int:
        return len(self._table)

    def get(self, path: str) -> Optional[RouteDescriptor]:
        return self._table.get(_normalize(path))

    def resolve(self, path: str) -> Optional[RouteDescriptor]:
        """Find the descriptor for a path or its nearest protected ancestor."""
        candidate = _normalize(path)
        while True:
            descriptor = self._table.get(candidate)
            if descriptor is not None:
                return descriptor
            if candidate == "/":
                return None
            candidate = candidate.rsplit("/", 1)[0] or "/"


class GateState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_UNAUTHORIZED = "authenticated_unauthorized"
    AUTHENTICATED_AUTHORIZED = "authenticated_authorized"


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    redirect_to: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.state is GateState.AUTHENTICATED_AUTHORIZED


def evaluate_access(session: Session, descriptor: RouteDescriptor) -> GateDecision:
    if not session.is_present:
        return GateDecision(GateState.UNAUTHENTICATED)
    if session.role not in descriptor.allowed_roles:
        return GateDecision(GateState.AUTHENTICATED_UNAUTHORIZED)
    return GateDecision(GateState.AUTHENTICATED_AUTHORIZED)


class AccessGate:
    """Applies a route table to the live session.

    Denial is fail-closed: whatever session was present is wiped before the
    caller redirects to the login page.
    """

    def __init__(self, routes: RouteTable, login_path: str = LOGIN_PATH):
        self.routes = routes
        self.login_path = login_path

    def is_protected(self, path: str) -> bool:
        return self.routes.resolve(path) is not None

    def check(self, path: str, store: SessionStore) -> GateDecision:
        """Evaluate a protected path against the stored session.

        Raises:
            LookupError: If no route protects ``path``.
        """
        descriptor = self.routes.resolve(path)
        if descriptor is None:
            raise LookupError(f"no protected route for {path}")

        session = store.load()
        decision = evaluate_access(session, descriptor)
        if decision.allowed:
            return decision
        state = decision.state

        log.warning(
            "Access denied: path=%s state=%s user=%s role=%s",
            path,
            state.value,
            session.user.id if session.user else None,
            session.role.value if session.role else None,
        )
        store.clear()
        return GateDecision(state=state, redirect_to=self.login_path)

    def force_reauthentication(self, store: SessionStore) -> str:
        """Drop the session after the API rejected its token."""
        session = store.load()
        log.info(
            "Forcing re-authentication for user=%s",
            session.user.id if session.user else None,
        )
        store.clear()
        return self.login_path
