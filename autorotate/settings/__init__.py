"""
Settings Module

Persisted key/value settings with synchronous change notification.
"""

from .store import AppSetting, DEFAULT_SETTINGS, SettingsStore, Subscription

__all__ = [
    "AppSetting",
    "DEFAULT_SETTINGS",
    "SettingsStore",
    "Subscription",
]
