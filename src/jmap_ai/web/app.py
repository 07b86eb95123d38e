"""FastAPI gateway exposing the tool registry over HTTP."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Query, Request, status as http_status
from fastapi.responses import PlainTextResponse

from jmap_ai.core import (
    AppSettings,
    ServiceContainer,
    build_container,
    load_app_settings,
)
from jmap_ai.tools import ToolRegistry, ToolResult

LOGGER = logging.getLogger(__name__)

_ENV_FILE_OVERRIDE_VAR = "JMAP_AI_ENV_FILE"


def create_app(
    settings: AppSettings | None = None,
    *,
    registry: ToolRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Pass ``registry`` to serve an existing catalog (tests do this); otherwise
    a container is built from ``settings`` or the environment.
    """
    container: ServiceContainer | None = None
    if registry is None:
        app_settings = settings or load_app_settings(env_file=_resolve_env_file())
        container = build_container(app_settings)
        registry = container.resolve("tools")
    tools = registry

    app = FastAPI(title="JMAP AI Gateway")

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        """Close the JMAP client on app shutdown."""
        if container is not None:
            container.close()
            LOGGER.info("JMAP client closed")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/tools")
    async def list_tools() -> dict[str, Any]:
        return {"tools": [tool.describe() for tool in tools.definitions()]}

    @app.post("/api/tools/{name}")
    async def call_tool(name: str, request: Request) -> dict[str, Any]:
        """Invoke a tool; tool failures still answer 200 with ``isError`` set."""
        arguments = await _read_arguments(request)
        if isinstance(arguments, ToolResult):
            return _serialize_result(arguments)
        result = await asyncio.to_thread(tools.call, name, arguments)
        return _serialize_result(result)

    @app.get("/api/report", response_class=PlainTextResponse)
    async def report(
        days: int | None = Query(default=None, ge=1),  # noqa: B008
    ) -> PlainTextResponse:
        arguments = {} if days is None else {"days": days}
        result = await asyncio.to_thread(tools.call, "get_email_report", arguments)
        status_code = (
            http_status.HTTP_502_BAD_GATEWAY
            if result.is_error
            else http_status.HTTP_200_OK
        )
        return PlainTextResponse(result.text, status_code=status_code)

    return app


async def _read_arguments(request: Request) -> dict[str, Any] | ToolResult:
    body = await request.body()
    if not body.strip():
        return {}
    try:
        arguments = json.loads(body)
    except ValueError:
        return ToolResult.error("Request body is not valid JSON")
    if not isinstance(arguments, dict):
        return ToolResult.error("Tool arguments must be a JSON object")
    return arguments


def _serialize_result(result: ToolResult) -> dict[str, Any]:
    return {"isError": result.is_error, "content": result.text}


def _resolve_env_file() -> Path | None:
    override = os.getenv(_ENV_FILE_OVERRIDE_VAR)
    if override:
        return Path(override)
    return None


__all__ = ["create_app"]
