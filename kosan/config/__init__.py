"""
Configuration package for the kos booking client.
"""

from kosan.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
