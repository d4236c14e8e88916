"""Console views.

Importing this package registers every view.
"""

from soc_console.views.base import (
    ViewParams,
    ViewSpec,
    all_views,
    get_view,
    load_view,
    register,
)
from soc_console.views import admin, analyst  # noqa: F401

__all__ = [
    "ViewParams",
    "ViewSpec",
    "all_views",
    "get_view",
    "load_view",
    "register",
]
