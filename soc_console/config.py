"""Console configuration.

Environment-based settings for the SOC console gateway.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

VALID_ENVS = {
    "prod",
    "production",
    "staging",
    "dev",
    "development",
    "local",
    "test",
}

DEV_CORS_ORIGINS = "http://localhost:4000,http://localhost:5173"


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default


def _env_csv(name: str, default: str = "") -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass(frozen=True)
class ConsoleConfig:
    """Console configuration from environment variables.

    Environment Variables:
        SOC_ENV: Environment (prod/staging/dev/test)
        SOC_API_BASE_URL: Origin of the remote telemetry API
        SOC_SESSION_SECRET: Secret for signing session cookies
        SOC_SESSION_COOKIE_NAME: Session cookie name (default: soc_console_session)
        SOC_SESSION_TTL_SECONDS: Session cookie max-age (default: 28800 = 8 hours)
        SOC_REQUEST_TIMEOUT_SECONDS: Per-request timeout for API calls (default: 10)
        SOC_NOTIFICATION_POLL_SECONDS: Notification poll interval (default: 30)
        SOC_PAGE_SIZE: Default page size for paginated views (default: 10)
        SOC_LOG_LEVEL: Root log level (default: INFO)
        SOC_CORS_ORIGINS: CSV of allowed CORS origins
    """

    env: str = "dev"
    api_base_url: str = ""

    session_secret: str = field(default_factory=lambda: os.urandom(32).hex())
    session_secret_explicit: bool = False
    session_cookie_name: str = "soc_console_session"
    session_ttl_seconds: int = 28800

    request_timeout_seconds: float = 10.0
    notification_poll_seconds: float = 30.0
    page_size: int = 10

    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=list)

    @property
    def env_lower(self) -> str:
        return (self.env or "dev").strip().lower()

    @property
    def is_prod(self) -> bool:
        return self.env_lower in ("prod", "production")

    @property
    def is_prod_like(self) -> bool:
        return self.env_lower in ("prod", "production", "staging")

    @property
    def is_test(self) -> bool:
        return self.env_lower == "test"

    def validate(self) -> list[str]:
        errors: list[str] = []

        if self.env_lower not in VALID_ENVS:
            errors.append(
                f"Invalid SOC_ENV='{self.env}'. Valid values: {', '.join(sorted(VALID_ENVS))}."
            )

        if not self.api_base_url:
            errors.append("SOC_API_BASE_URL must be set")
        elif not self.api_base_url.startswith(("http://", "https://")):
            errors.append(f"SOC_API_BASE_URL must be an http(s) URL, got '{self.api_base_url}'")

        if self.is_prod_like and not self.session_secret_explicit:
            errors.append("SOC_SESSION_SECRET must be set in production/staging")

        if self.session_ttl_seconds <= 0:
            errors.append("SOC_SESSION_TTL_SECONDS must be positive")
        if self.request_timeout_seconds <= 0:
            errors.append("SOC_REQUEST_TIMEOUT_SECONDS must be positive")
        if self.notification_poll_seconds <= 0:
            errors.append("SOC_NOTIFICATION_POLL_SECONDS must be positive")
        if self.page_size <= 0:
            errors.append("SOC_PAGE_SIZE must be positive")

        if self.is_prod and "*" in self.cors_origins:
            errors.append("Wildcard CORS origin (*) is not allowed in production")

        return errors


@lru_cache(maxsize=1)
def get_config() -> ConsoleConfig:
    secret = os.getenv("SOC_SESSION_SECRET")
    env = os.getenv("SOC_ENV", "dev")
    cors_default = "" if env.strip().lower() in ("prod", "production") else DEV_CORS_ORIGINS
    return ConsoleConfig(
        env=env,
        api_base_url=(os.getenv("SOC_API_BASE_URL") or "").strip().rstrip("/"),
        session_secret=secret or os.urandom(32).hex(),
        session_secret_explicit=bool(secret),
        session_cookie_name=os.getenv("SOC_SESSION_COOKIE_NAME", "soc_console_session"),
        session_ttl_seconds=_env_int("SOC_SESSION_TTL_SECONDS", 28800),
        request_timeout_seconds=_env_float("SOC_REQUEST_TIMEOUT_SECONDS", 10.0),
        notification_poll_seconds=_env_float("SOC_NOTIFICATION_POLL_SECONDS", 30.0),
        page_size=_env_int("SOC_PAGE_SIZE", 10),
        log_level=os.getenv("SOC_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        cors_origins=_env_csv("SOC_CORS_ORIGINS", cors_default),
    )


def reset_config() -> None:
    get_config.cache_clear()
