"""Remote API fetcher.

Issues the read requests a view needs against the telemetry API, attaching
the session's bearer token. A batch succeeds only if every request in it
succeeds.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Iterable, Optional, TypeVar

import httpx

log = logging.getLogger("soc-console.fetcher")

T = TypeVar("T")


class FetchError(Exception):
    """A request against the remote API failed."""

    def __init__(self, resource: str, message: str, status_code: Optional[int] = None):
        super().__init__(f"{resource}: {message}")
        self.resource = resource
        self.message = message
        self.status_code = status_code


class AuthFailure(FetchError):
    """The remote API rejected the session token."""


class LoginFailed(Exception):
    """The remote API refused the submitted credentials."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_detail(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        detail = payload.get("error") or payload.get("detail") or payload.get("message")
        if detail:
            return str(detail)
    return response.reason_phrase


def _resource_path(resource: str) -> str:
    return resource if resource.startswith("/") else f"/{resource}"


async def _all_or_nothing(jobs: dict[str, Awaitable[T]]) -> dict[str, T]:
    """Run jobs concurrently; the first failure cancels the rest and is raised."""
    tasks = {name: asyncio.ensure_future(job) for name, job in jobs.items()}
    if not tasks:
        return {}
    try:
        done, _ = await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION)
        for task in done:
            exc = task.exception()
            if exc is not None:
                raise exc
    finally:
        for task in tasks.values():
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks.values(), return_exceptions=True)
    return {name: task.result() for name, task in tasks.items()}


class DataFetcher:
    """Reads view data from the remote API.

    Args:
        base_url: API origin; resource paths are relative to it
        token: Bearer token from the session, or None when logged out
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests inject a MockTransport)
        request_id: Propagated as X-Request-Id
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        request_id: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._transport = transport
        self._request_id = request_id

    def _headers(self, *, authenticated: bool = True) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if authenticated and self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if self._request_id:
            headers["X-Request-Id"] = self._request_id
        return headers

    def _client(self) -> httpx.AsyncClient:
        # Redirects are never followed so the bearer token cannot leak off-origin.
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            follow_redirects=False,
            transport=self._transport,
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        resource: str,
        *,
        json_body: Optional[dict[str, Any]] = None,
        authenticated: bool = True,
        check_status: bool = True,
    ) -> httpx.Response:
        try:
            response = await client.request(
                method,
                _resource_path(resource),
                json=json_body,
                headers=self._headers(authenticated=authenticated),
            )
        except httpx.TimeoutException:
            raise FetchError(resource, "request timed out") from None
        except httpx.HTTPError as e:
            raise FetchError(resource, f"network error: {e.__class__.__name__}") from None

        if not check_status:
            return response
        if response.status_code == 401:
            raise AuthFailure(resource, _error_detail(response), status_code=401)
        if response.status_code >= 400:
            raise FetchError(resource, _error_detail(response), status_code=response.status_code)
        return response

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        resource: str,
        *,
        expect_list: bool,
    ) -> Any:
        response = await self._request(client, "GET", resource)
        try:
            payload = response.json()
        except ValueError:
            raise FetchError(resource, "response is not valid JSON", response.status_code) from None
        if not expect_list:
            return payload
        if not isinstance(payload, list):
            raise FetchError(resource, "expected a JSON array", response.status_code)
        # Views read records as objects; anything else in the array is dropped.
        records = [item for item in payload if isinstance(item, dict)]
        if len(records) != len(payload):
            log.warning(
                "Dropped non-object records from %s",
                resource,
                extra={"resource": resource, "dropped": len(payload) - len(records)},
            )
        return records

    async def fetch_batch(self, resources: Iterable[str]) -> dict[str, list[Any]]:
        """Fetch several collections concurrently.

        Returns a mapping of resource name to its JSON array.

        Raises:
            AuthFailure: If the API answered 401 for any resource.
            FetchError: For any other failure; nothing partial is returned.
        """
        names = list(dict.fromkeys(resources))
        async with self._client() as client:
            result = await _all_or_nothing(
                {name: self._get_json(client, name, expect_list=True) for name in names}
            )
        log.debug("Fetched batch: %s", ", ".join(names))
        return result

    async def fetch_one(self, resource: str) -> Any:
        """Fetch a single JSON document (object or array)."""
        async with self._client() as client:
            return await self._get_json(client, resource, expect_list=False)

    async def fetch_texts(self, resources: Iterable[str]) -> dict[str, str]:
        """Fetch plain-text resources such as indicator lists, all-or-nothing."""
        names = list(dict.fromkeys(resources))

        async def _text(client: httpx.AsyncClient, name: str) -> str:
            response = await self._request(client, "GET", name)
            return response.text

        async with self._client() as client:
            return await _all_or_nothing({name: _text(client, name) for name in names})

    async def post(self, resource: str, json_body: Optional[dict[str, Any]] = None) -> Any:
        """Authenticated write; returns the decoded JSON body, if any."""
        async with self._client() as client:
            response = await self._request(client, "POST", resource, json_body=json_body)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def login(self, email: str, password: str) -> tuple[str, dict[str, Any]]:
        """Exchange credentials for a token and user profile.

        Raises:
            LoginFailed: If the API refused the credentials or answered with
                an unusable payload.
            FetchError: If the API could not be reached or failed.
        """
        async with self._client() as client:
            response = await self._request(
                client,
                "POST",
                "/login",
                json_body={"email": email, "password": password},
                authenticated=False,
                check_status=False,
            )

        if response.status_code >= 500:
            raise FetchError("/login", _error_detail(response), status_code=response.status_code)
        if response.status_code >= 400:
            raise LoginFailed(_error_detail(response), status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError:
            raise LoginFailed("login response is not valid JSON", status_code=502) from None

        token = payload.get("token") if isinstance(payload, dict) else None
        user = payload.get("user") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token or not isinstance(user, dict):
            raise LoginFailed("login response is missing token or user", status_code=502)
        return token, user
