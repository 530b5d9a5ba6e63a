"""
Configuration module.

Provides access to harness settings.

Usage:
    from exprcheck.config import get_settings

    settings = get_settings()
    print(settings.backends)
"""

from exprcheck.config.settings import (
    KNOWN_BACKENDS,
    HarnessSettings,
    get_settings,
    load_settings,
    reload_settings,
)

__all__ = [
    "KNOWN_BACKENDS",
    "HarnessSettings",
    "get_settings",
    "load_settings",
    "reload_settings",
]
