"""ASGI entrypoint for the SOC console.

Kept separate so importing soc_console.main has no side effects.
Run with:  uvicorn soc_console.asgi:app
"""

from __future__ import annotations

from soc_console.main import build_app

app = build_app()
