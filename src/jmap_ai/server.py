"""Model Context Protocol server exposing the tool registry over stdio."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from jmap_ai.core import AppSettings, build_container
from jmap_ai.tools import ToolRegistry

LOGGER = logging.getLogger(__name__)

PROMPTS: tuple[types.Prompt, ...] = (
    types.Prompt(
        name="inbox_summary",
        description="Get a summary of unread emails in the inbox",
    ),
    types.Prompt(
        name="compose_reply",
        description="Compose a reply to an email",
        arguments=[
            types.PromptArgument(
                name="emailId", description="ID of the email to reply to", required=True
            ),
            types.PromptArgument(
                name="tone", description="Tone of the reply", required=True
            ),
        ],
    ),
)


def render_prompt(name: str, arguments: dict[str, str] | None) -> str:
    """Return the user message for prompt ``name``."""
    arguments = arguments or {}
    if name == "inbox_summary":
        return (
            "Please give me a summary of my unread emails in the inbox. "
            "List the sender, subject, and a brief preview for each."
        )
    if name == "compose_reply":
        missing = [key for key in ("emailId", "tone") if not arguments.get(key)]
        if missing:
            raise ValueError(f"Missing prompt arguments: {', '.join(missing)}")
        return (
            f"Please help me compose a {arguments['tone']} reply to the email "
            f"with ID {arguments['emailId']}. First, get the email details to "
            "understand the context, then draft an appropriate response."
        )
    raise ValueError(f"Unknown prompt: {name}")


def create_server(registry: ToolRegistry, name: str = "jmap-ai") -> Server:
    """Build an MCP server whose tools delegate to ``registry``."""
    server: Server = Server(name)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=tool.name,
                description=tool.description,
                inputSchema=tool.input_schema(),
            )
            for tool in registry.definitions()
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> types.CallToolResult:
        # The registry is synchronous; keep the event loop free for the protocol.
        result = await asyncio.to_thread(registry.call, name, arguments)
        return types.CallToolResult(
            content=[types.TextContent(type="text", text=result.text)],
            isError=result.is_error,
        )

    @server.list_prompts()
    async def list_prompts() -> list[types.Prompt]:
        return list(PROMPTS)

    @server.get_prompt()
    async def get_prompt(
        name: str, arguments: dict[str, str] | None
    ) -> types.GetPromptResult:
        text = render_prompt(name, arguments)
        return types.GetPromptResult(
            messages=[
                types.PromptMessage(
                    role="user", content=types.TextContent(type="text", text=text)
                )
            ]
        )

    return server


async def serve(settings: AppSettings) -> None:
    """Run the stdio server until the host closes the stream."""
    container = build_container(settings)
    registry: ToolRegistry = container.resolve("tools")
    server = create_server(registry, settings.server.name)
    LOGGER.info("Starting MCP server '%s' on stdio", settings.server.name)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    finally:
        container.close()
        LOGGER.info("MCP server stopped")


__all__ = ["PROMPTS", "create_server", "render_prompt", "serve"]
