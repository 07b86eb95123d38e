"""Tests for the MCP server wiring and prompt templates."""

from __future__ import annotations

import asyncio

import pytest
from mcp import types

from fake_jmap import FakeJmapServer
from jmap_ai.server import PROMPTS, create_server, render_prompt
from jmap_ai.tools import ToolRegistry


def test_prompt_catalog() -> None:
    assert [prompt.name for prompt in PROMPTS] == ["inbox_summary", "compose_reply"]


def test_compose_reply_prompt_mentions_email_and_tone() -> None:
    text = render_prompt("compose_reply", {"emailId": "M7", "tone": "friendly"})

    assert "friendly reply" in text
    assert "ID M7" in text


def test_compose_reply_requires_arguments() -> None:
    with pytest.raises(ValueError, match="tone"):
        render_prompt("compose_reply", {"emailId": "M7"})


def test_unknown_prompt() -> None:
    with pytest.raises(ValueError, match="Unknown prompt"):
        render_prompt("nope", None)


def test_server_advertises_registry_tools(registry: ToolRegistry) -> None:
    server = create_server(registry, "jmap-test")
    handler = server.request_handlers[types.ListToolsRequest]

    result = asyncio.run(handler(types.ListToolsRequest(method="tools/list")))

    tools = result.root.tools
    assert server.name == "jmap-test"
    assert [tool.name for tool in tools] == registry.names()
    assert tools[0].inputSchema["type"] == "object"


def test_server_renders_prompts(registry: ToolRegistry) -> None:
    server = create_server(registry)
    handler = server.request_handlers[types.GetPromptRequest]

    result = asyncio.run(
        handler(
            types.GetPromptRequest(
                method="prompts/get",
                params=types.GetPromptRequestParams(name="inbox_summary"),
            )
        )
    )

    message = result.root.messages[0]
    assert message.role == "user"
    assert "unread emails" in message.content.text


def test_server_calls_registry_tools(
    server: FakeJmapServer, registry: ToolRegistry
) -> None:
    server.add_email(subject="Quarterly numbers")
    mcp_server = create_server(registry)
    handler = mcp_server.request_handlers[types.CallToolRequest]

    result = asyncio.run(
        handler(
            types.CallToolRequest(
                method="tools/call",
                params=types.CallToolRequestParams(
                    name="list_emails", arguments={"limit": 5}
                ),
            )
        )
    )

    assert result.root.isError is False
    assert "Quarterly numbers" in result.root.content[0].text
