"""Configuration package."""

from smartspend.config.settings import (
    AppSettings,
    GeminiSettings,
    RetrySettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "RetrySettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
