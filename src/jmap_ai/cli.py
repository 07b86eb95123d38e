"""Command-line entry point for JMAP AI."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Callable
from pathlib import Path

from jmap_ai.core import (
    AppSettings,
    build_container,
    configure_logging,
    load_app_settings,
)
from jmap_ai.tools import ToolRegistry


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="JMAP mail tools for AI assistants")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=Path(".env"),
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "serve", "http", "tools", "call", "report"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "tool",
        nargs="?",
        default=None,
        help="Tool name for the call command.",
    )
    parser.add_argument(
        "--args",
        dest="tool_args",
        default="{}",
        help="JSON object with tool arguments for the call command.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=None,
        help="Window size for the report command (default: configured days).",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return an exit status."""
    command = args.command
    if command == "info":
        print("JMAP AI is ready. Configure an API token to get started.")
        print(f"Session URL: {settings.jmap.session_url}")
        print(f"Account email: {settings.jmap.email or '(from session)'}")
        print(f"API token configured: {'yes' if settings.jmap.api_token else 'no'}")
        return 0
    if command == "serve":
        from jmap_ai.server import serve

        asyncio.run(serve(settings))
        return 0
    if command == "http":
        return _run_http(settings)
    if command == "tools":
        return _with_registry(settings, _print_tools)
    if command == "call":
        if not args.tool:
            print("The call command needs a tool name.", file=sys.stderr)
            return 2
        try:
            arguments = json.loads(args.tool_args)
        except ValueError as exc:
            print(f"Invalid --args JSON: {exc}", file=sys.stderr)
            return 2
        return _with_registry(
            settings, lambda registry: _call_tool(registry, args.tool, arguments)
        )
    if command == "report":
        arguments = {} if args.days is None else {"days": args.days}
        return _with_registry(
            settings,
            lambda registry: _call_tool(registry, "get_email_report", arguments),
        )
    return 2


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    sys.exit(execute(args, settings))


def _with_registry(
    settings: AppSettings, action: Callable[[ToolRegistry], int]
) -> int:
    container = build_container(settings)
    try:
        return action(container.resolve("tools"))
    finally:
        container.close()


def _print_tools(registry: ToolRegistry) -> int:
    for tool in registry.definitions():
        print(f"{tool.name:<24} {tool.description}")
    return 0


def _call_tool(registry: ToolRegistry, name: str, arguments: object) -> int:
    if not isinstance(arguments, dict):
        print("Tool arguments must be a JSON object.", file=sys.stderr)
        return 2
    result = registry.call(name, arguments)
    print(result.text, file=sys.stderr if result.is_error else sys.stdout)
    return 1 if result.is_error else 0


def _run_http(settings: AppSettings) -> int:
    """Serve the HTTP gateway with uvicorn."""
    import uvicorn

    from jmap_ai.web import create_app

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
    )
    return 0


if __name__ == "__main__":
    main()
