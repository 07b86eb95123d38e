"""Windowed mailbox analytics computed from freshly fetched messages."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

from jmap_ai.core.config import AnalyticsSettings
from jmap_ai.core.datetime_utils import ensure_utc, resolve_timezone
from jmap_ai.core.errors import JmapError, ProtocolError, TransportError
from jmap_ai.core.interfaces import MailProvider
from jmap_ai.core.models import (
    ActivityPatterns,
    AnalyticsResult,
    ContentInsights,
    EmailVolume,
    FolderStat,
    HourCount,
    Message,
    PeriodCount,
    ResponseMetrics,
    SenderStat,
)
from jmap_ai.transport.filters import ListMessagesOptions, MessageFilter

from .content import subject_patterns, top_keywords
from .report import format_report

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


class AnalyticsEngine:
    """Derive volume, sender, temporal, folder, content and backlog statistics.

    The engine keeps no state between calls; every request re-fetches the
    window through the supplied :class:`MailProvider`.
    """

    def __init__(
        self,
        provider: MailProvider,
        *,
        account_email: str | None = None,
        settings: AnalyticsSettings | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Bind the engine to a provider and the account's own address.

        When ``account_email`` is omitted the provider's ``account_email``
        attribute is consulted at compute time.
        """
        self._provider = provider
        self._account_email = account_email
        self._settings = settings or AnalyticsSettings()
        self._clock = clock

    # Public API ---------------------------------------------------------------
    def compute_analytics(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        max_messages: int | None = None,
        include_content: bool = True,
    ) -> AnalyticsResult:
        """Compute every analytics facet for ``[start_date, end_date]``."""
        start, end = self._resolve_window(start_date, end_date)
        messages = self._fetch_window(start, end, max_messages)
        LOGGER.info(
            "Analysing %d message(s) from %s to %s",
            len(messages),
            start.isoformat(),
            end.isoformat(),
        )
        received = self._received(messages)
        return AnalyticsResult(
            volume=self._volume(messages, start, end),
            top_senders=self._top_senders(received),
            activity_patterns=self._activity_patterns(messages),
            folder_usage=self._folder_usage(messages),
            content_insights=(
                self._content_insights(messages)
                if include_content
                else ContentInsights.empty()
            ),
            response_metrics=self._response_metrics(received),
            timezone=self._settings.timezone,
        )

    def volume(self, days: int | None = None) -> EmailVolume:
        start, end = self._window_for_days(days)
        return self._volume(self._fetch_window(start, end, None), start, end)

    def top_senders(
        self, limit: int = 10, days: int | None = None
    ) -> tuple[SenderStat, ...]:
        start, end = self._window_for_days(days)
        received = self._received(self._fetch_window(start, end, None))
        return self._top_senders(received)[:limit]

    def activity_patterns(self, days: int | None = None) -> ActivityPatterns:
        start, end = self._window_for_days(days)
        return self._activity_patterns(self._fetch_window(start, end, None))

    def report(self, days: int | None = None) -> str:
        """Compute full analytics for the last ``days`` and render the report."""
        window_days = days or self._settings.default_days
        start, end = self._window_for_days(window_days)
        analytics = self.compute_analytics(start, end, include_content=True)
        return format_report(analytics, window_days)

    # Window and fetch ---------------------------------------------------------
    def _resolve_window(
        self, start_date: datetime | None, end_date: datetime | None
    ) -> tuple[datetime, datetime]:
        end = ensure_utc(end_date) or self._clock()
        start = ensure_utc(start_date) or end - timedelta(
            days=self._settings.default_days
        )
        if start > end:
            raise ValueError("start_date must not be after end_date")
        return start, end

    def _window_for_days(self, days: int | None) -> tuple[datetime, datetime]:
        span = days if days is not None else self._settings.default_days
        if span < 1:
            raise ValueError("days must be at least 1")
        end = self._clock()
        return end - timedelta(days=span), end

    def _fetch_window(
        self, start: datetime, end: datetime, max_messages: int | None
    ) -> list[Message]:
        """Page through the window once; sent and received are split later."""
        cap = max_messages if max_messages is not None else self._settings.max_messages
        collected: list[Message] = []
        position = 0
        try:
            while len(collected) < cap:
                page = self._provider.list_messages(
                    ListMessagesOptions(
                        limit=min(self._settings.page_size, cap - len(collected)),
                        position=position,
                        # "before" is exclusive and whole-second on the wire
                        filter=MessageFilter(
                            after=start, before=end + timedelta(seconds=1)
                        ),
                    )
                )
                collected.extend(page.messages)
                position += len(page.messages)
                if not page.messages or position >= page.total:
                    break
        except (TransportError, ProtocolError) as exc:
            LOGGER.warning("Error fetching messages for analytics: %s", exc)
            return []

        return [
            message
            for message in collected
            if message.received_at is not None and start <= message.received_at <= end
        ]

    # Facets -------------------------------------------------------------------
    def _self_address(self) -> str:
        address = self._account_email or getattr(self._provider, "account_email", None)
        return (address or "").casefold()

    def _is_sent(self, message: Message, own_address: str) -> bool:
        sender = message.sender
        return bool(own_address) and sender is not None and (
            sender.email.casefold() == own_address
        )

    def _received(self, messages: Sequence[Message]) -> list[Message]:
        own_address = self._self_address()
        return [
            message for message in messages if not self._is_sent(message, own_address)
        ]

    def _volume(
        self, messages: Sequence[Message], start: datetime, end: datetime
    ) -> EmailVolume:
        received = len(self._received(messages))
        return EmailVolume(
            total=len(messages),
            sent=len(messages) - received,
            received=received,
            period_start=start,
            period_end=end,
        )

    def _top_senders(self, received: Sequence[Message]) -> tuple[SenderStat, ...]:
        counts: dict[str, int] = {}
        names: dict[str, str | None] = {}
        for message in received:
            sender = message.sender
            if sender is None:
                continue
            key = sender.email.casefold()
            counts[key] = counts.get(key, 0) + 1
            names.setdefault(key, sender.name)

        total = len(received)
        stats = [
            SenderStat(
                email=email,
                name=names[email],
                count=count,
                percentage=_percentage(count, total),
            )
            for email, count in counts.items()
        ]
        # sorted() is stable: equal counts keep first-seen order
        return tuple(sorted(stats, key=lambda stat: stat.count, reverse=True))

    def _activity_patterns(self, messages: Sequence[Message]) -> ActivityPatterns:
        zone = resolve_timezone(self._settings.timezone)
        hours = [0] * 24
        days: dict[str, int] = {}
        months: dict[str, int] = {}
        for message in messages:
            if message.received_at is None:
                continue
            local = message.received_at.astimezone(zone)
            hours[local.hour] += 1
            day_key = local.date().isoformat()
            days[day_key] = days.get(day_key, 0) + 1
            month_key = local.strftime("%Y-%m")
            months[month_key] = months.get(month_key, 0) + 1

        return ActivityPatterns(
            by_hour=tuple(
                HourCount(hour=hour, count=count) for hour, count in enumerate(hours)
            ),
            by_day=tuple(PeriodCount(key=key, count=days[key]) for key in sorted(days)),
            by_month=tuple(
                PeriodCount(key=key, count=months[key]) for key in sorted(months)
            ),
        )

    def _folder_usage(self, messages: Sequence[Message]) -> tuple[FolderStat, ...]:
        try:
            mailboxes = self._provider.list_mailboxes()
        except JmapError as exc:
            LOGGER.warning("Error calculating folder analytics: %s", exc)
            return ()

        names = {mailbox.id: mailbox.name for mailbox in mailboxes}
        counts: dict[str, int] = {}
        for message in messages:
            for mailbox_id in sorted(message.mailbox_ids):
                folder = names.get(mailbox_id, mailbox_id)
                counts[folder] = counts.get(folder, 0) + 1

        total = len(messages)
        stats = [
            FolderStat(
                folder_name=folder,
                email_count=count,
                percentage=_percentage(count, total),
            )
            for folder, count in counts.items()
        ]
        return tuple(sorted(stats, key=lambda stat: stat.email_count, reverse=True))

    def _content_insights(self, messages: Sequence[Message]) -> ContentInsights:
        if not messages:
            return ContentInsights.empty()
        preview_length = sum(len(message.preview) for message in messages)
        return ContentInsights(
            average_email_length=round(preview_length / len(messages)),
            total_attachments=sum(1 for message in messages if message.has_attachment),
            common_keywords=top_keywords(messages),
            subject_analysis=subject_patterns(messages),
        )

    def _response_metrics(self, received: Sequence[Message]) -> ResponseMetrics:
        unread = [message for message in received if not message.is_read]
        timestamps = [
            message.received_at for message in unread if message.received_at is not None
        ]
        return ResponseMetrics(
            unread_count=len(unread),
            unread_percentage=_percentage(len(unread), len(received)),
            oldest_unread=min(timestamps) if timestamps else None,
        )


__all__ = ["AnalyticsEngine"]
