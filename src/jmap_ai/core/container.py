"""Simple service container for dependency management."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from .config import AppSettings

if TYPE_CHECKING:
    import httpx

T = TypeVar("T")


class ServiceContainer:
    """Minimal dependency container with lazy singleton semantics."""

    def __init__(self) -> None:
        """Initialise container storage."""
        self._factories: dict[str, Callable[[ServiceContainer], Any]] = {}
        self._instances: dict[str, Any] = {}

    def register(self, key: str, factory: Callable[[ServiceContainer], T]) -> None:
        """Register a factory under a given key."""
        self._factories[key] = factory

    def resolve(self, key: str) -> Any:
        """Resolve a dependency by key, invoking its factory once."""
        if key in self._instances:
            return self._instances[key]
        if key not in self._factories:
            msg = f"Service '{key}' is not registered"
            raise KeyError(msg)
        instance = self._factories[key](self)
        self._instances[key] = instance
        return instance

    def try_resolve(self, key: str) -> Any | None:
        """Resolve a dependency if available; return None otherwise."""
        try:
            return self.resolve(key)
        except KeyError:
            return None

    def close(self) -> None:
        """Release resolved services that hold connections, then forget them."""
        client = self._instances.get("client")
        if client is not None:
            client.close()
        self._instances.clear()


def build_container(
    settings: AppSettings, *, transport: httpx.BaseTransport | None = None
) -> ServiceContainer:
    """Wire settings, client, analytics engine and tool registry.

    ``transport`` is handed to the JMAP client so tests can route traffic
    to an in-memory server.
    """
    # Imported lazily: the transport and tools layers depend on ``core``.
    from jmap_ai.analytics import AnalyticsEngine
    from jmap_ai.tools import ToolRegistry
    from jmap_ai.transport import JmapClient

    container = ServiceContainer()
    container.register("settings", lambda _: settings)
    container.register(
        "client",
        lambda c: JmapClient(c.resolve("settings").jmap, transport=transport),
    )
    container.register(
        "analytics",
        lambda c: AnalyticsEngine(
            c.resolve("client"), settings=c.resolve("settings").analytics
        ),
    )
    container.register(
        "tools",
        lambda c: ToolRegistry(c.resolve("client"), c.resolve("analytics")),
    )
    return container


__all__ = ["ServiceContainer", "build_container"]
