"""Persistent settings and credential storage."""

from .settings import SecretVault, Settings, SettingsStore

__all__ = ["SecretVault", "Settings", "SettingsStore"]
