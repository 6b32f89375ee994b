"""Configuration management for the polygon weather engine."""

from __future__ import annotations

from .settings import DashboardSettings, ProviderSettings, Settings, get_settings, reset_settings

__all__ = ["Settings", "ProviderSettings", "DashboardSettings", "get_settings", "reset_settings"]
