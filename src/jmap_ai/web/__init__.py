"""HTTP gateway entry point for JMAP AI."""

from .app import create_app

__all__ = ["create_app"]
