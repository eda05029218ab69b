"""
Configuration module for the inventory dashboard.

This module provides centralized configuration management using pydantic-settings.
All environment variables and configuration values should be accessed through this module.

Usage:
    from config import get_settings

    settings = get_settings()
    backend = settings.store_backend
"""

from config.settings import Settings, get_settings

# Note: This will be None if the environment holds invalid values
try:
    settings = get_settings()
except Exception:
    settings = None  # Allow import even if env vars are broken (for testing)

__all__ = ["Settings", "get_settings", "settings"]
