"""Input models for every tool; their JSON schemas are advertised to hosts."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from jmap_ai.transport.filters import (
    DEFAULT_LIMIT,
    AdvancedFilter,
    ListMessagesOptions,
    MessageFilter,
    Recipient,
    SendMessageOptions,
    SortSpec,
)

MAX_LIMIT = 500
MAX_BATCH_SIZE = 100


class ToolInput(BaseModel):
    """Base for tool arguments: camelCase on the wire, unknown keys rejected."""

    model_config = ConfigDict(
        extra="forbid", populate_by_name=True, alias_generator=to_camel
    )


class NoArguments(ToolInput):
    pass


class ListEmailsInput(ToolInput):
    mailbox_id: str | None = Field(
        default=None, description="ID of the mailbox to list emails from"
    )
    limit: int = Field(
        default=DEFAULT_LIMIT,
        ge=1,
        le=MAX_LIMIT,
        description="Maximum number of emails to return",
    )
    position: int = Field(default=0, ge=0, description="Zero-based result offset")
    is_unread: bool | None = Field(
        default=None, description="True for unread only, false for read only"
    )
    search_text: str | None = Field(
        default=None, description="Search for emails containing this text"
    )
    from_: str | None = Field(
        default=None, alias="from", description="Filter emails from this sender"
    )
    to: str | None = Field(default=None, description="Filter emails to this recipient")
    subject: str | None = Field(
        default=None, description="Filter emails with this subject"
    )
    after: datetime | None = Field(
        default=None, description="Only emails received after this time"
    )
    before: datetime | None = Field(
        default=None, description="Only emails received before this time"
    )
    has_attachment: bool | None = Field(
        default=None, description="Filter on attachment presence"
    )

    def to_options(self) -> ListMessagesOptions:
        message_filter = MessageFilter(
            text=self.search_text,
            from_=self.from_,
            to=self.to,
            subject=self.subject,
            after=self.after,
            before=self.before,
            has_attachment=self.has_attachment,
            is_unread=self.is_unread,
        )
        return ListMessagesOptions(
            mailbox_id=self.mailbox_id,
            limit=self.limit,
            position=self.position,
            filter=message_filter,
        )


class EmailIdInput(ToolInput):
    email_id: str = Field(min_length=1, description="The ID of the email")


class EmailIdsInput(ToolInput):
    email_ids: list[str] = Field(
        min_length=1, max_length=MAX_BATCH_SIZE, description="IDs of the emails"
    )


class SendEmailInput(ToolInput):
    to: list[Recipient] = Field(min_length=1, description="Recipients")
    cc: list[Recipient] = Field(default_factory=list, description="CC recipients")
    bcc: list[Recipient] = Field(default_factory=list, description="BCC recipients")
    from_: str | None = Field(
        default=None,
        alias="from",
        description="Sending identity address; defaults to the first identity",
    )
    subject: str = Field(description="Email subject")
    text_body: str | None = Field(default=None, description="Plain text body")
    html_body: str | None = Field(default=None, description="HTML body")
    in_reply_to: list[str] | str | None = Field(
        default=None, description="Message-ID(s) this email replies to"
    )
    references: list[str] | str | None = Field(
        default=None, description="Message-IDs of the thread being replied to"
    )

    def to_options(self) -> SendMessageOptions:
        """Build send options; raises ``ValidationError`` when no body is given."""
        return SendMessageOptions(
            from_address=self.from_,
            to=self.to,
            cc=self.cc,
            bcc=self.bcc,
            subject=self.subject,
            text_body=self.text_body,
            html_body=self.html_body,
            in_reply_to=self.in_reply_to,
            references=self.references,
        )


class MarkReadInput(EmailIdInput):
    read: bool = Field(
        default=True, description="True to mark as read, false to mark as unread"
    )


class MarkManyReadInput(EmailIdsInput):
    read: bool = Field(
        default=True, description="True to mark as read, false to mark as unread"
    )


class MoveInput(EmailIdInput):
    target_mailbox_id: str = Field(
        min_length=1, description="The ID of the target mailbox"
    )


class MoveManyInput(EmailIdsInput):
    target_mailbox_id: str = Field(
        min_length=1, description="The ID of the target mailbox"
    )


class SearchInput(ToolInput):
    query: str = Field(min_length=1, description="Search query")
    limit: int = Field(
        default=DEFAULT_LIMIT,
        ge=1,
        le=MAX_LIMIT,
        description="Maximum number of results",
    )


class AdvancedSearchInput(ToolInput):
    filter: AdvancedFilter = Field(
        default_factory=AdvancedFilter, description="JMAP Email/query filter"
    )
    sort: list[SortSpec] | None = Field(
        default=None, description="Sort comparators; newest first by default"
    )
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT)
    position: int = Field(default=0, ge=0)


class AnalyticsInput(ToolInput):
    start_date: datetime | None = Field(
        default=None, description="Window start; defaults to the configured span"
    )
    end_date: datetime | None = Field(default=None, description="Window end; now")
    max_emails: int | None = Field(
        default=None, ge=1, description="Cap on messages analysed"
    )
    include_content: bool = Field(
        default=True, description="Include keyword and subject analysis"
    )


class DaysInput(ToolInput):
    days: int | None = Field(
        default=None, ge=1, le=3650, description="Number of days to analyse"
    )


class TopSendersInput(DaysInput):
    limit: int = Field(default=10, ge=1, le=100, description="Number of senders")


__all__ = [
    "AdvancedSearchInput",
    "AnalyticsInput",
    "DaysInput",
    "EmailIdInput",
    "EmailIdsInput",
    "ListEmailsInput",
    "MarkManyReadInput",
    "MarkReadInput",
    "MoveInput",
    "MoveManyInput",
    "NoArguments",
    "SearchInput",
    "SendEmailInput",
    "ToolInput",
    "TopSendersInput",
]
