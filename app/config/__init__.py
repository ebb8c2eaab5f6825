"""Configuration package for application settings."""

from app.config.settings import settings, Settings, get_settings

__all__ = [
    "settings",
    "Settings",
    "get_settings",
]
