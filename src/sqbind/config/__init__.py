"""Configuration management for sqbind.

Usage:
    >>> from sqbind.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.default_dialect)
"""

from sqbind.config.settings import Settings, get_settings, resolve_dialect

__all__ = [
    "Settings",
    "get_settings",
    "resolve_dialect",
]
