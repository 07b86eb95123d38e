"""Shared fixtures wiring the JMAP client to the in-memory server."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from fake_jmap import ACCOUNT_EMAIL, SESSION_URL, FakeJmapServer
from jmap_ai.core import ServiceContainer, build_container
from jmap_ai.core.config import AnalyticsSettings, AppSettings, JmapSettings
from jmap_ai.tools import ToolRegistry
from jmap_ai.transport import JmapClient


@pytest.fixture
def server() -> FakeJmapServer:
    return FakeJmapServer()


@pytest.fixture
def jmap_settings() -> JmapSettings:
    return JmapSettings(
        session_url=SESSION_URL,
        email=ACCOUNT_EMAIL,
        api_token="secret-token",
        max_retries=3,
        retry_backoff_seconds=0.5,
    )


@pytest.fixture
def app_settings(jmap_settings: JmapSettings) -> AppSettings:
    return AppSettings(
        jmap=jmap_settings, analytics=AnalyticsSettings(page_size=10)
    )


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def uninitialized_client(
    server: FakeJmapServer, jmap_settings: JmapSettings, sleeps: list[float]
) -> Iterator[JmapClient]:
    with JmapClient(
        jmap_settings, transport=server.transport(), sleep=sleeps.append
    ) as client:
        yield client


@pytest.fixture
def client(uninitialized_client: JmapClient) -> JmapClient:
    uninitialized_client.initialize()
    return uninitialized_client


@pytest.fixture
def container(
    server: FakeJmapServer, app_settings: AppSettings
) -> Iterator[ServiceContainer]:
    services = build_container(app_settings, transport=server.transport())
    yield services
    services.close()


@pytest.fixture
def registry(container: ServiceContainer) -> ToolRegistry:
    return container.resolve("tools")
