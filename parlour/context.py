"""Helpers for reaching the application config and request globals."""

import os
from typing import Any, Optional

from flask import current_app, g, has_app_context


def get_application_config(app: Optional[object] = None) -> Any:
    """
    Get the configuration for the current application.

    Falls back to ``os.environ`` when called outside of an application
    context.
    """
    if app is not None and hasattr(app, 'config'):
        return app.config     # type: ignore
    if has_app_context():
        return current_app.config
    return os.environ


def get_application_global() -> Optional[Any]:
    """Get the application global, if there is an app context."""
    if not has_app_context():
        return None
    return g
