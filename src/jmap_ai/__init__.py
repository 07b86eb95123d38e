"""JMAP mail tools and analytics for AI assistants."""

from .core import AppSettings, build_container, load_app_settings

__all__ = ["AppSettings", "__version__", "build_container", "load_app_settings"]

__version__ = "0.1.0"
