"""Configuration management for justdothething.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides for the identity provider
credentials, and holds the live Yell Mode settings.
"""

from justdothething.config.settings import (
    MonitorSettings,
    Settings,
    SettingsStore,
    Subscription,
    load_settings,
)

__all__ = ["MonitorSettings", "Settings", "SettingsStore", "Subscription", "load_settings"]
