"""Session storage.

The console keeps exactly two entries in the client's persistent storage
(the signed session cookie): the API bearer token and the serialized user
profile. They are only ever read and written as a pair through SessionStore.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, MutableMapping, Optional, Union

log = logging.getLogger("soc-console.session")

TOKEN_KEY = "token"
USER_KEY = "user"

UserId = Union[int, str]


class Role(str, Enum):
    """Console roles as issued by the API's login endpoint."""

    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class UserProfile:
    """User profile returned by the API on login.

    Attributes:
        id: User identifier, kept exactly as the API returned it
        role: Console role
        name: Display name, if the API sent one
        email: Email address, if the API sent one
    """

    id: UserId
    role: Role
    name: Optional[str] = None
    email: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "role": self.role.value}
        if self.name is not None:
            data["name"] = self.name
        if self.email is not None:
            data["email"] = self.email
        return data

    @classmethod
    def from_dict(cls, data: Any) -> UserProfile:
        """Build a profile from an API payload.

        Raises:
            ValueError: If the payload is not an object, lacks an id, or
                carries an empty or unknown role.
        """
        if not isinstance(data, dict):
            raise ValueError("user payload must be an object")
        user_id = data.get("id")
        if user_id is None or user_id == "" or isinstance(user_id, bool):
            raise ValueError("user payload is missing id")
        if not isinstance(user_id, (int, str)):
            raise ValueError("user id must be a string or integer")
        role_raw = str(data.get("role") or "").strip().lower()
        if not role_raw:
            raise ValueError("user payload is missing role")
        try:
            role = Role(role_raw)
        except ValueError:
            raise ValueError(f"unknown role: {role_raw}") from None
        name = data.get("name")
        email = data.get("email")
        return cls(
            id=user_id,
            role=role,
            name=str(name) if name is not None else None,
            email=str(email) if email is not None else None,
        )


@dataclass(frozen=True)
class Session:
    """Authenticated session: a token and the profile it belongs to.

    A session is either fully present or fully absent. Use
    ``Session.absent()`` for the empty value.
    """

    token: Optional[str] = None
    user: Optional[UserProfile] = None

    def __post_init__(self):
        if (self.token is None) != (self.user is None):
            raise ValueError("token and user must be set together")

    @classmethod
    def absent(cls) -> Session:
        return cls()

    @property
    def is_present(self) -> bool:
        return self.token is not None and self.user is not None

    @property
    def role(self) -> Optional[Role]:
        return self.user.role if self.user else None


class SessionStore:
    """Pairs the token and user entries of a persistent storage mapping.

    ``storage`` is any mutable mapping that survives between requests; in
    the app it is ``request.session`` from Starlette's SessionMiddleware.
    """

    def __init__(self, storage: MutableMapping[str, Any]):
        self._storage = storage

    def load(self) -> Session:
        """Read the persisted session.

        A missing entry, an unparseable user payload or an invalid profile
        wipes both entries and yields an absent session.
        """
        token = self._storage.get(TOKEN_KEY)
        raw_user = self._storage.get(USER_KEY)

        if token is None and raw_user is None:
            return Session.absent()

        if not isinstance(token, str) or not token or raw_user is None:
            log.warning("Discarding partial session (token=%s, user=%s)", token is not None, raw_user is not None)
            self.clear()
            return Session.absent()

        try:
            payload = json.loads(raw_user) if isinstance(raw_user, str) else raw_user
            user = UserProfile.from_dict(payload)
        except (ValueError, TypeError) as e:
            log.warning("Discarding corrupt session user payload: %s", e)
            self.clear()
            return Session.absent()

        return Session(token=token, user=user)

    def save(self, token: str, user: UserProfile | dict[str, Any]) -> Session:
        """Persist a token and its user as one write.

        Raises:
            ValueError: If the token is empty or the user is invalid. Nothing
                is written in that case.
        """
        if not isinstance(token, str) or not token:
            raise ValueError("token must be a non-empty string")
        profile = user if isinstance(user, UserProfile) else UserProfile.from_dict(user)
        serialized = json.dumps(profile.to_dict())

        self._storage.update({TOKEN_KEY: token, USER_KEY: serialized})
        return Session(token=token, user=profile)

    def clear(self) -> None:
        self._storage.pop(TOKEN_KEY, None)
        self._storage.pop(USER_KEY, None)
