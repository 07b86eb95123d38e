"""Core utilities for configuration, logging, and dependency wiring."""

from .config import (
    AnalyticsSettings,
    AppSettings,
    JmapSettings,
    LoggingSettings,
    ServerSettings,
    load_app_settings,
)
from .container import ServiceContainer, build_container
from .logging import configure_logging

__all__ = [
    "AnalyticsSettings",
    "AppSettings",
    "JmapSettings",
    "LoggingSettings",
    "ServerSettings",
    "ServiceContainer",
    "build_container",
    "configure_logging",
    "load_app_settings",
]
