"""
Application configuration.

Settings come from environment variables (or .env) and are loaded once
per process.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
