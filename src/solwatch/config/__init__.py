"""Configuration module for Solwatch.

Usage:
    from solwatch.config import get_settings

    settings = get_settings()  # Cached
    print(settings.app_name)

Note:
    There is no module-level `settings` instance because that would fail
    on import if required env vars aren't set.
"""

from solwatch.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
