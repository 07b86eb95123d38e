"""Tool catalog shared by the MCP server and the HTTP gateway.

:meth:`ToolRegistry.call` is the boundary between hosts and the mail
client: every failure, including invalid arguments and unknown tool names,
comes back as an error :class:`ToolResult` instead of an exception.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from jmap_ai.core.errors import JmapError, NotFoundError

from .formatting import (
    analytics_to_dict,
    patterns_to_dict,
    senders_to_list,
    serialize_batch,
    serialize_mailbox,
    serialize_message_detail,
    serialize_message_summary,
    to_json,
    volume_to_dict,
)
from .schemas import (
    AdvancedSearchInput,
    AnalyticsInput,
    DaysInput,
    EmailIdInput,
    EmailIdsInput,
    ListEmailsInput,
    MarkManyReadInput,
    MarkReadInput,
    MoveInput,
    MoveManyInput,
    NoArguments,
    SearchInput,
    SendEmailInput,
    ToolInput,
    TopSendersInput,
)

if TYPE_CHECKING:
    from jmap_ai.analytics import AnalyticsEngine
    from jmap_ai.transport import JmapClient

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Text payload returned to a host; ``is_error`` marks failures."""

    text: str
    is_error: bool = False

    @classmethod
    def error(cls, message: str) -> ToolResult:
        return cls(text=f"Error: {message}", is_error=True)


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Name, description, argument model and handler for one tool."""

    name: str
    description: str
    input_model: type[ToolInput]
    handler: Callable[[Any], str]

    def input_schema(self) -> dict[str, Any]:
        schema = self.input_model.model_json_schema(by_alias=True)
        schema.setdefault("properties", {})
        return schema

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid arguments - " + "; ".join(problems)


class ToolRegistry:
    """Dispatch tool calls to the mail client and analytics engine."""

    def __init__(self, client: JmapClient, engine: AnalyticsEngine) -> None:
        self._client = client
        self._engine = engine
        self._init_lock = threading.Lock()
        self._tools: dict[str, ToolDefinition] = {
            tool.name: tool for tool in self._build_definitions()
        }

    def definitions(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def call(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResult:
        """Run ``name`` with ``arguments``; never raises."""
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult.error(f"Unknown tool: {name}")

        try:
            payload = tool.input_model.model_validate(dict(arguments or {}))
            self._ensure_initialized()
            text = tool.handler(payload)
        except ValidationError as exc:
            return ToolResult.error(_format_validation_error(exc))
        except (JmapError, ValueError) as exc:
            LOGGER.warning("Tool %s failed: %s", name, exc)
            return ToolResult.error(str(exc))
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.exception("Unexpected failure in tool %s", name)
            return ToolResult.error(str(exc) or exc.__class__.__name__)
        return ToolResult(text=text)

    def _ensure_initialized(self) -> None:
        if self._client.is_initialized:
            return
        with self._init_lock:
            if not self._client.is_initialized:
                self._client.initialize()

    # Catalog ----------------------------------------------------------------
    def _build_definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                "list_mailboxes",
                "List all email folders/mailboxes in the account",
                NoArguments,
                self._list_mailboxes,
            ),
            ToolDefinition(
                "list_emails",
                "List emails with optional mailbox, keyword and text filters",
                ListEmailsInput,
                self._list_emails,
            ),
            ToolDefinition(
                "get_email",
                "Get full details of a specific email including body content",
                EmailIdInput,
                self._get_email,
            ),
            ToolDefinition(
                "send_email",
                "Send a new email",
                SendEmailInput,
                self._send_email,
            ),
            ToolDefinition(
                "mark_email_read",
                "Mark an email as read or unread",
                MarkReadInput,
                self._mark_email_read,
            ),
            ToolDefinition(
                "mark_emails_read",
                "Mark several emails as read or unread",
                MarkManyReadInput,
                self._mark_emails_read,
            ),
            ToolDefinition(
                "move_email",
                "Move an email to a different mailbox/folder",
                MoveInput,
                self._move_email,
            ),
            ToolDefinition(
                "move_emails",
                "Move several emails to a different mailbox/folder",
                MoveManyInput,
                self._move_emails,
            ),
            ToolDefinition(
                "delete_email",
                "Permanently delete an email",
                EmailIdInput,
                self._delete_email,
            ),
            ToolDefinition(
                "delete_emails",
                "Permanently delete several emails",
                EmailIdsInput,
                self._delete_emails,
            ),
            ToolDefinition(
                "search_emails",
                "Search for emails containing specific text",
                SearchInput,
                self._search_emails,
            ),
            ToolDefinition(
                "advanced_search",
                "Search with the full JMAP filter vocabulary and custom sorting",
                AdvancedSearchInput,
                self._advanced_search,
            ),
            ToolDefinition(
                "get_email_analytics",
                "Compute volume, sender, activity, folder, content and backlog "
                "statistics for a time window",
                AnalyticsInput,
                self._get_email_analytics,
            ),
            ToolDefinition(
                "get_email_volume",
                "Count sent and received emails over the last N days",
                DaysInput,
                self._get_email_volume,
            ),
            ToolDefinition(
                "get_top_senders",
                "Rank the most frequent senders over the last N days",
                TopSendersInput,
                self._get_top_senders,
            ),
            ToolDefinition(
                "get_activity_patterns",
                "Hourly, daily and monthly email activity over the last N days",
                DaysInput,
                self._get_activity_patterns,
            ),
            ToolDefinition(
                "get_email_report",
                "Human-readable analytics report with recommendations",
                DaysInput,
                self._get_email_report,
            ),
        ]

    # Handlers ---------------------------------------------------------------
    def _list_mailboxes(self, _: NoArguments) -> str:
        mailboxes = self._client.list_mailboxes()
        return to_json([serialize_mailbox(mailbox) for mailbox in mailboxes])

    def _list_emails(self, args: ListEmailsInput) -> str:
        page = self._client.list_messages(args.to_options())
        return to_json(
            {
                "total": page.total,
                "count": len(page.messages),
                "emails": [serialize_message_summary(item) for item in page.messages],
            }
        )

    def _get_email(self, args: EmailIdInput) -> str:
        message = self._client.get_message(args.email_id)
        if message is None:
            raise NotFoundError(f"Email not found: {args.email_id}")
        return to_json(serialize_message_detail(message))

    def _send_email(self, args: SendEmailInput) -> str:
        result = self._client.send_message(args.to_options())
        return to_json(
            {"success": True, "emailId": result.message_id, "sentAt": result.sent_at}
        )

    def _mark_email_read(self, args: MarkReadInput) -> str:
        self._client.update_read_state(args.email_id, args.read)
        state = "read" if args.read else "unread"
        return to_json({"success": True, "message": f"Email marked as {state}"})

    def _mark_emails_read(self, args: MarkManyReadInput) -> str:
        result = self._client.mark_messages_read(args.email_ids, args.read)
        return to_json(serialize_batch(result))

    def _move_email(self, args: MoveInput) -> str:
        self._client.move_message(args.email_id, args.target_mailbox_id)
        return to_json({"success": True, "message": "Email moved successfully"})

    def _move_emails(self, args: MoveManyInput) -> str:
        result = self._client.move_messages(args.email_ids, args.target_mailbox_id)
        return to_json(serialize_batch(result))

    def _delete_email(self, args: EmailIdInput) -> str:
        self._client.delete_message(args.email_id)
        return to_json({"success": True, "message": "Email deleted successfully"})

    def _delete_emails(self, args: EmailIdsInput) -> str:
        return to_json(serialize_batch(self._client.delete_messages(args.email_ids)))

    def _search_emails(self, args: SearchInput) -> str:
        page = self._client.search_by_text(args.query, args.limit)
        return to_json(
            {
                "total": page.total,
                "count": len(page.messages),
                "query": args.query,
                "emails": [serialize_message_summary(item) for item in page.messages],
            }
        )

    def _advanced_search(self, args: AdvancedSearchInput) -> str:
        result = self._client.advanced_search(
            args.filter, args.sort, limit=args.limit, position=args.position
        )
        return to_json(
            {
                "total": result.total,
                "position": result.position,
                "count": len(result.messages),
                "hasMoreResults": result.has_more_results,
                "emails": [
                    serialize_message_summary(item) for item in result.messages
                ],
            }
        )

    def _get_email_analytics(self, args: AnalyticsInput) -> str:
        analytics = self._engine.compute_analytics(
            start_date=args.start_date,
            end_date=args.end_date,
            max_messages=args.max_emails,
            include_content=args.include_content,
        )
        return to_json(analytics_to_dict(analytics))

    def _get_email_volume(self, args: DaysInput) -> str:
        return to_json(volume_to_dict(self._engine.volume(args.days)))

    def _get_top_senders(self, args: TopSendersInput) -> str:
        senders = self._engine.top_senders(limit=args.limit, days=args.days)
        return to_json({"topSenders": senders_to_list(senders)})

    def _get_activity_patterns(self, args: DaysInput) -> str:
        return to_json(patterns_to_dict(self._engine.activity_patterns(args.days)))

    def _get_email_report(self, args: DaysInput) -> str:
        return self._engine.report(args.days)


__all__ = ["ToolDefinition", "ToolRegistry", "ToolResult"]
