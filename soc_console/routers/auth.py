"""Authentication router.

Serves the login entry page and handles sign-in and sign-out against the
remote API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel, Field

from soc_console.auth.gate import LOGIN_PATH
from soc_console.auth.session import SessionStore, UserProfile
from soc_console.dependencies import get_anonymous_fetcher, get_session_store
from soc_console.fetcher import DataFetcher, LoginFailed
from soc_console.routes import home_for

log = logging.getLogger("soc-console.auth-router")

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1, max_length=1024)


class LoginResponse(BaseModel):
    status: str
    redirect_to: str
    user: dict


LOGIN_PAGE = """\
<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width,initial-scale=1"/>
  <title>SOC Console</title>
  <style>
    body { margin:0; font-family: ui-sans-serif, system-ui, Arial; background:#0b1120; color:#e2e8f0; }
    form { max-width: 360px; margin: 12vh auto; padding: 24px; background:#111827; border-radius: 12px; }
    label { display:block; margin-top: 12px; font-size: 13px; color:#94a3b8; }
    input { width:100%; padding: 8px; margin-top: 4px; border-radius: 6px; border: 1px solid #334155;
            background:#0f172a; color:#e2e8f0; box-sizing: border-box; }
    button { margin-top: 18px; width:100%; padding: 10px; border:0; border-radius: 6px;
             background:#3b82f6; color:white; cursor:pointer; }
    #error { color:#f87171; min-height: 1.2em; margin-top: 12px; font-size: 13px; }
  </style>
</head>
<body>
  <form id="login">
    <h2>SOC Console</h2>
    <label>Email <input id="email" type="email" autocomplete="username" required/></label>
    <label>Password <input id="password" type="password" autocomplete="current-password" required/></label>
    <button type="submit">Sign in</button>
    <div id="error"></div>
  </form>
  <script>
    document.getElementById("login").addEventListener("submit", async (ev) => {
      ev.preventDefault();
      const err = document.getElementById("error");
      err.textContent = "";
      const res = await fetch("/login", {
        method: "POST",
        headers: {"Content-Type": "application/json"},
        credentials: "same-origin",
        body: JSON.stringify({
          email: document.getElementById("email").value,
          password: document.getElementById("password").value,
        }),
      });
      const body = await res.json().catch(() => ({}));
      if (res.ok) { window.location.assign(body.redirect_to); return; }
      err.textContent = body.detail || "Sign-in failed";
    });
  </script>
</body>
</html>
"""


@router.get(LOGIN_PATH, response_class=HTMLResponse, include_in_schema=False)
async def login_page() -> HTMLResponse:
    """Public entry point. Leaves any existing session untouched."""
    return HTMLResponse(LOGIN_PAGE)


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    store: SessionStore = Depends(get_session_store),
    fetcher: DataFetcher = Depends(get_anonymous_fetcher),
) -> LoginResponse:
    """Exchange credentials with the API and open a console session."""
    token, user = await fetcher.login(payload.email, payload.password)
    try:
        profile = UserProfile.from_dict(user)
    except ValueError as e:
        log.warning("Login response carried an unusable profile: %s", e)
        raise LoginFailed("login response carries an invalid user profile", status_code=502) from None

    session = store.save(token, profile)
    log.info(
        "User signed in",
        extra={"user_id": profile.id, "role": profile.role.value},
    )
    return LoginResponse(
        status="ok",
        redirect_to=home_for(session.role),
        user=profile.to_dict(),
    )


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(store: SessionStore = Depends(get_session_store)):
    session = store.load()
    store.clear()
    if session.is_present:
        log.info("User signed out", extra={"user_id": session.user.id})
    return RedirectResponse(url=LOGIN_PATH, status_code=303)
