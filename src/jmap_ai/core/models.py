"""Core domain models used across the application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

SEEN_KEYWORD = "$seen"
FLAGGED_KEYWORD = "$flagged"
DRAFT_KEYWORD = "$draft"


@dataclass(frozen=True, slots=True)
class JmapSession:
    """Authenticated endpoints and account resolved from the session document."""

    api_url: str
    upload_url: str | None
    download_url: str | None
    event_source_url: str | None
    username: str | None
    state: str | None
    account_id: str
    capabilities: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class EmailAddress:
    """Mailbox address with an optional display name."""

    email: str
    name: str | None = None

    def __str__(self) -> str:
        if self.name:
            return f"{self.name} <{self.email}>"
        return self.email


@dataclass(frozen=True, slots=True)
class MailboxRights:
    """Permissions the account holds on a mailbox."""

    may_read_items: bool = False
    may_add_items: bool = False
    may_remove_items: bool = False
    may_set_seen: bool = False
    may_set_keywords: bool = False
    may_create_child: bool = False
    may_rename: bool = False
    may_delete: bool = False
    may_submit: bool = False


# pylint: disable=too-many-instance-attributes
@dataclass(frozen=True, slots=True)
class Mailbox:
    """Folder in the remote mail store."""

    id: str
    name: str
    parent_id: str | None = None
    role: str | None = None
    sort_order: int = 0
    total_emails: int = 0
    unread_emails: int = 0
    total_threads: int = 0
    unread_threads: int = 0
    rights: MailboxRights = field(default_factory=MailboxRights)
    is_subscribed: bool = False


@dataclass(frozen=True, slots=True)
class BodyPart:
    """Reference from a message body to an entry in ``body_values``."""

    part_id: str
    type: str


@dataclass(frozen=True, slots=True)
class Attachment:
    """Metadata describing an email attachment."""

    part_id: str | None
    blob_id: str | None
    size: int | None
    name: str | None
    type: str | None
    disposition: str | None = None


# pylint: disable=too-many-instance-attributes
@dataclass(frozen=True, slots=True)
class Message:
    """Transient copy of a message owned by the remote store."""

    id: str
    thread_id: str | None = None
    blob_id: str | None = None
    mailbox_ids: frozenset[str] = frozenset()
    keywords: frozenset[str] = frozenset()
    size: int = 0
    received_at: datetime | None = None
    sent_at: datetime | None = None
    subject: str | None = None
    from_: tuple[EmailAddress, ...] = ()
    to: tuple[EmailAddress, ...] = ()
    cc: tuple[EmailAddress, ...] = ()
    bcc: tuple[EmailAddress, ...] = ()
    reply_to: tuple[EmailAddress, ...] = ()
    preview: str = ""
    has_attachment: bool = False
    text_body: tuple[BodyPart, ...] = ()
    html_body: tuple[BodyPart, ...] = ()
    body_values: dict[str, str] = field(default_factory=dict)
    attachments: tuple[Attachment, ...] = ()

    @property
    def sender(self) -> EmailAddress | None:
        """Return the first ``From`` address if any."""
        return self.from_[0] if self.from_ else None

    @property
    def is_read(self) -> bool:
        return SEEN_KEYWORD in self.keywords

    @property
    def is_flagged(self) -> bool:
        return FLAGGED_KEYWORD in self.keywords

    @property
    def is_draft(self) -> bool:
        return DRAFT_KEYWORD in self.keywords

    def text_content(self) -> str:
        """Return the first plain-text body value, or an empty string."""
        return _first_body_value(self.text_body, self.body_values)

    def html_content(self) -> str:
        """Return the first HTML body value, or an empty string."""
        return _first_body_value(self.html_body, self.body_values)


@dataclass(frozen=True, slots=True)
class Identity:
    """Sending identity configured for the account."""

    id: str
    email: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class MessagePage:
    """One page of query results plus the server-side total."""

    messages: tuple[Message, ...]
    total: int


@dataclass(frozen=True, slots=True)
class SearchResult:
    """Advanced search page with a truncation hint."""

    messages: tuple[Message, ...]
    total: int
    position: int
    has_more_results: bool


@dataclass(frozen=True, slots=True)
class SendResult:
    """Committed message id and the server-assigned send time."""

    message_id: str
    sent_at: str | None


@dataclass(frozen=True, slots=True)
class BatchFailure:
    """Item that failed inside a best-effort batch."""

    id: str
    reason: str


@dataclass(slots=True)
class BatchResult:
    """Outcome of a batch operation; partial success is expected."""

    succeeded: list[str] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass(frozen=True, slots=True)
class EmailVolume:
    """Message counts bounded to an analytics window."""

    total: int
    sent: int
    received: int
    period_start: datetime
    period_end: datetime


@dataclass(frozen=True, slots=True)
class SenderStat:
    """Received-message count for one sender."""

    email: str
    name: str | None
    count: int
    percentage: float


@dataclass(frozen=True, slots=True)
class HourCount:
    hour: int
    count: int


@dataclass(frozen=True, slots=True)
class PeriodCount:
    """Count for a calendar key such as ``2025-01-31`` or ``2025-01``."""

    key: str
    count: int


@dataclass(frozen=True, slots=True)
class ActivityPatterns:
    """Hour-of-day, per-day and per-month histograms."""

    by_hour: tuple[HourCount, ...]
    by_day: tuple[PeriodCount, ...]
    by_month: tuple[PeriodCount, ...]


@dataclass(frozen=True, slots=True)
class FolderStat:
    folder_name: str
    email_count: int
    percentage: float


@dataclass(frozen=True, slots=True)
class KeywordCount:
    word: str
    frequency: int


@dataclass(frozen=True, slots=True)
class PatternCount:
    pattern: str
    count: int


@dataclass(frozen=True, slots=True)
class ContentInsights:
    """Preview length, attachment and subject statistics."""

    average_email_length: int
    total_attachments: int
    common_keywords: tuple[KeywordCount, ...]
    subject_analysis: tuple[PatternCount, ...]

    @classmethod
    def empty(cls) -> ContentInsights:
        """Zeroed placeholder used when content analysis is skipped."""
        return cls(
            average_email_length=0,
            total_attachments=0,
            common_keywords=(),
            subject_analysis=(),
        )


RESPONSE_TIME_NOTE = (
    "Average response time is not measured; it requires thread-level "
    "correlation of replies, which is not attempted."
)


@dataclass(frozen=True, slots=True)
class ResponseMetrics:
    """Unread backlog statistics among received messages."""

    unread_count: int
    unread_percentage: float
    oldest_unread: datetime | None
    average_response_time_hours: float = 0.0
    response_time_note: str = RESPONSE_TIME_NOTE


@dataclass(frozen=True, slots=True)
class AnalyticsResult:
    """Read-only snapshot recomputed for every analytics request."""

    volume: EmailVolume
    top_senders: tuple[SenderStat, ...]
    activity_patterns: ActivityPatterns
    folder_usage: tuple[FolderStat, ...]
    content_insights: ContentInsights
    response_metrics: ResponseMetrics
    timezone: str = "UTC"


def _first_body_value(parts: tuple[BodyPart, ...], values: dict[str, str]) -> str:
    if not parts:
        return ""
    return values.get(parts[0].part_id, "")


__all__ = [
    "ActivityPatterns",
    "AnalyticsResult",
    "Attachment",
    "BatchFailure",
    "BatchResult",
    "BodyPart",
    "ContentInsights",
    "DRAFT_KEYWORD",
    "EmailAddress",
    "EmailVolume",
    "FLAGGED_KEYWORD",
    "FolderStat",
    "HourCount",
    "Identity",
    "JmapSession",
    "KeywordCount",
    "Mailbox",
    "MailboxRights",
    "Message",
    "MessagePage",
    "PatternCount",
    "PeriodCount",
    "RESPONSE_TIME_NOTE",
    "ResponseMetrics",
    "SEEN_KEYWORD",
    "SearchResult",
    "SenderStat",
    "SendResult",
]
