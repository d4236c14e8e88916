"""Test fixtures for the SOC console."""

import sys

import httpx
import pytest
from fastapi.testclient import TestClient

from fake_api import API_BASE_URL, PASSWORD, FakeApi


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Point the console at the fake API with a fixed session secret."""
    monkeypatch.setenv("SOC_ENV", "test")
    monkeypatch.setenv("SOC_API_BASE_URL", API_BASE_URL)
    monkeypatch.setenv("SOC_SESSION_SECRET", "test-session-secret")
    monkeypatch.setenv("SOC_NOTIFICATION_POLL_SECONDS", "0.05")
    for key in ("SOC_SESSION_COOKIE_NAME", "SOC_PAGE_SIZE", "SOC_CORS_ORIGINS", "SOC_LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)

    # Clear module cache to pick up new env vars
    mods_to_remove = [k for k in sys.modules if k.startswith("soc_console") and ".tests" not in k]
    for mod in mods_to_remove:
        del sys.modules[mod]

    yield


@pytest.fixture
def fake_api():
    return FakeApi()


@pytest.fixture
def app(fake_api):
    from soc_console.main import build_app

    return build_app(transport=httpx.MockTransport(fake_api.handler))


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def login():
    """Return a function that signs a client in as an analyst or admin."""

    def _login(client, role="user"):
        email = "admin@example.com" if role == "admin" else "analyst@example.com"
        response = client.post("/login", json={"email": email, "password": PASSWORD})
        assert response.status_code == 200, response.text
        return response

    return _login
