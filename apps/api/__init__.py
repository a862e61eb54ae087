"""
API application package.

`app` and `create_app` are resolved lazily so importing the package does not build the
application.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .main.app import app, create_app

__all__ = ["app", "create_app"]


def __getattr__(name: str) -> Any:
    if name == "app":
        from .main.app import app

        return app
    if name == "create_app":
        from .main.app import create_app

        return create_app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
