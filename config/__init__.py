"""
Configuration Management Module
"""
from .settings import (
    Settings,
    ResolverSettings,
    NetworkSettings,
    StorageSettings,
    get_settings,
    get_network_settings,
)

__all__ = [
    "Settings",
    "ResolverSettings",
    "NetworkSettings",
    "StorageSettings",
    "get_settings",
    "get_network_settings",
]
