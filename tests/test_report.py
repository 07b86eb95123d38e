"""Tests for the plain-text analytics report and its recommendations."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime

from jmap_ai.analytics import build_recommendations, format_report
from jmap_ai.analytics.report import HEALTHY_MESSAGE
from jmap_ai.core.models import (
    ActivityPatterns,
    AnalyticsResult,
    ContentInsights,
    EmailVolume,
    FolderStat,
    HourCount,
    KeywordCount,
    ResponseMetrics,
    SenderStat,
)

START = datetime(2024, 5, 1, tzinfo=UTC)
END = datetime(2024, 5, 31, tzinfo=UTC)


def _snapshot(
    *,
    total: int = 10,
    senders: tuple[SenderStat, ...] = (),
    hours: dict[int, int] | None = None,
    attachments: int = 0,
    unread_percentage: float = 0.0,
    oldest_unread: datetime | None = None,
) -> AnalyticsResult:
    counts = hours if hours is not None else {10: total}
    return AnalyticsResult(
        volume=EmailVolume(
            total=total,
            sent=2 if total else 0,
            received=total - 2 if total else 0,
            period_start=START,
            period_end=END,
        ),
        top_senders=senders,
        activity_patterns=ActivityPatterns(
            by_hour=tuple(
                HourCount(hour=hour, count=counts.get(hour, 0)) for hour in range(24)
            ),
            by_day=(),
            by_month=(),
        ),
        folder_usage=(
            FolderStat(folder_name="Inbox", email_count=8, percentage=80.0),
            FolderStat(folder_name="Sent", email_count=2, percentage=20.0),
        ),
        content_insights=ContentInsights(
            average_email_length=42,
            total_attachments=attachments,
            common_keywords=(
                KeywordCount(word="invoice", frequency=3),
                KeywordCount(word="meeting", frequency=2),
                KeywordCount(word="report", frequency=2),
                KeywordCount(word="budget", frequency=1),
            ),
            subject_analysis=(),
        ),
        response_metrics=ResponseMetrics(
            unread_count=1,
            unread_percentage=unread_percentage,
            oldest_unread=oldest_unread,
        ),
    )


def test_healthy_snapshot_has_no_recommendations() -> None:
    analytics = _snapshot()

    assert build_recommendations(analytics) == []
    report = format_report(analytics, 30)
    assert report.endswith(f"RECOMMENDATIONS\n- {HEALTHY_MESSAGE}")


def test_thresholds_trigger_in_fixed_order() -> None:
    analytics = _snapshot(
        senders=(
            SenderStat(email="boss@example.com", name="Boss", count=4, percentage=50.0),
        ),
        hours={22: 6, 10: 4},
        attachments=6,
        unread_percentage=25.0,
    )

    assert build_recommendations(analytics) == [
        "Consider setting aside specific times for email processing",
        "Boss sends 30%+ of your emails - consider filters",
        "High attachment volume - consider cloud storage integration",
        "Most emails arrive outside business hours - consider notification schedules",
    ]


def test_thresholds_are_strict() -> None:
    analytics = _snapshot(
        senders=(
            SenderStat(email="a@example.com", name=None, count=3, percentage=30.0),
        ),
        attachments=5,
        unread_percentage=20.0,
    )

    assert build_recommendations(analytics) == []


def test_sender_without_name_uses_address() -> None:
    analytics = _snapshot(
        senders=(
            SenderStat(email="a@example.com", name=None, count=4, percentage=40.0),
        ),
    )

    assert build_recommendations(analytics) == [
        "a@example.com sends 30%+ of your emails - consider filters"
    ]


def test_empty_window_skips_peak_hour_check() -> None:
    analytics = _snapshot(total=0, hours={})

    assert build_recommendations(analytics) == []


def test_report_sections() -> None:
    analytics = _snapshot(
        senders=(
            SenderStat(email="a@example.com", name="Ann", count=3, percentage=37.5),
            SenderStat(email="b@example.com", name=None, count=1, percentage=12.5),
        ),
        hours={9: 5, 14: 3, 20: 1, 3: 1},
        oldest_unread=datetime(2024, 5, 3, 8, 30, tzinfo=UTC),
    )

    lines = format_report(analytics, 5).split("\n")

    assert lines[0] == "EMAIL ANALYTICS REPORT (Last 5 days)"
    assert lines[1] == "=" * 50
    assert "- Daily Average: 2 emails/day" in lines
    assert "1. Ann (3 emails, 37.5%)" in lines
    assert "2. b@example.com (1 emails, 12.5%)" in lines
    peak_index = lines.index("PEAK ACTIVITY HOURS")
    assert lines[peak_index + 1 : peak_index + 4] == [
        "1. 9:00 - 10:00 (5 emails)",
        "2. 14:00 - 15:00 (3 emails)",
        "3. 3:00 - 4:00 (1 emails)",
    ]
    assert "1. Inbox: 8 emails (80%)" in lines
    assert "- Top Keywords: invoice, meeting, report" in lines
    assert "- Oldest Unread: 2024-05-03" in lines
    assert "- Average Response Time: not measured" in lines


def test_report_with_zero_days_has_zero_average() -> None:
    report = format_report(_snapshot(), 0)

    assert "- Daily Average: 0 emails/day" in report
    assert "- Oldest Unread" not in report


def test_oldest_unread_date_follows_timezone() -> None:
    analytics = replace(
        _snapshot(oldest_unread=datetime(2024, 5, 3, 20, 30, tzinfo=UTC)),
        timezone="Asia/Tokyo",
    )

    assert "- Oldest Unread: 2024-05-04" in format_report(analytics, 30)
