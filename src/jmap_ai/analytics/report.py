"""Plain-text rendering of an analytics snapshot."""

from __future__ import annotations

from jmap_ai.core.datetime_utils import resolve_timezone
from jmap_ai.core.models import AnalyticsResult

REPORT_WIDTH = 50
UNREAD_PERCENTAGE_THRESHOLD = 20.0
TOP_SENDER_PERCENTAGE_THRESHOLD = 30.0
ATTACHMENT_RATIO_THRESHOLD = 0.5
BUSINESS_HOURS = range(9, 18)
HEALTHY_MESSAGE = "Your email management looks healthy!"


def _display_name(name: str | None, email: str) -> str:
    return name or email


def build_recommendations(analytics: AnalyticsResult) -> list[str]:
    """Return the triggered recommendations, in a fixed order."""
    recommendations: list[str] = []

    if analytics.response_metrics.unread_percentage > UNREAD_PERCENTAGE_THRESHOLD:
        recommendations.append(
            "Consider setting aside specific times for email processing"
        )

    if analytics.top_senders:
        top = analytics.top_senders[0]
        if top.percentage > TOP_SENDER_PERCENTAGE_THRESHOLD:
            recommendations.append(
                f"{_display_name(top.name, top.email)} sends 30%+ of your emails"
                " - consider filters"
            )

    total = analytics.volume.total
    attachments = analytics.content_insights.total_attachments
    if attachments > total * ATTACHMENT_RATIO_THRESHOLD:
        recommendations.append(
            "High attachment volume - consider cloud storage integration"
        )

    # An empty window has no meaningful peak hour.
    if total > 0:
        by_hour = analytics.activity_patterns.by_hour
        peak = max(by_hour, key=lambda bucket: bucket.count)
        if peak.hour not in BUSINESS_HOURS:
            recommendations.append(
                "Most emails arrive outside business hours"
                " - consider notification schedules"
            )

    return recommendations


def format_report(analytics: AnalyticsResult, days: int) -> str:
    """Render ``analytics`` for a window of ``days`` days."""
    volume = analytics.volume
    daily_average = round(volume.total / days) if days > 0 else 0

    lines = [
        f"EMAIL ANALYTICS REPORT (Last {days} days)",
        "=" * REPORT_WIDTH,
        "",
        "VOLUME SUMMARY",
        f"- Total Emails: {volume.total}",
        f"- Sent: {volume.sent}",
        f"- Received: {volume.received}",
        f"- Daily Average: {daily_average} emails/day",
        "",
        "TOP SENDERS",
    ]
    for index, sender in enumerate(analytics.top_senders[:5], start=1):
        lines.append(
            f"{index}. {_display_name(sender.name, sender.email)} "
            f"({sender.count} emails, {sender.percentage:g}%)"
        )

    lines += ["", "PEAK ACTIVITY HOURS"]
    busiest = sorted(
        (bucket for bucket in analytics.activity_patterns.by_hour if bucket.count),
        key=lambda bucket: bucket.count,
        reverse=True,
    )
    for index, bucket in enumerate(busiest[:3], start=1):
        lines.append(
            f"{index}. {bucket.hour}:00 - {bucket.hour + 1}:00 "
            f"({bucket.count} emails)"
        )

    lines += ["", "FOLDER USAGE"]
    for index, folder in enumerate(analytics.folder_usage[:5], start=1):
        lines.append(
            f"{index}. {folder.folder_name}: {folder.email_count} emails "
            f"({folder.percentage:g}%)"
        )

    content = analytics.content_insights
    keywords = ", ".join(keyword.word for keyword in content.common_keywords[:3])
    lines += [
        "",
        "CONTENT INSIGHTS",
        f"- Average Email Length: {content.average_email_length} characters",
        f"- Total Attachments: {content.total_attachments}",
        f"- Top Keywords: {keywords}",
    ]

    metrics = analytics.response_metrics
    lines += [
        "",
        "PRODUCTIVITY METRICS",
        f"- Unread Emails: {metrics.unread_count}",
        f"- Unread Percentage: {metrics.unread_percentage:g}%",
    ]
    if metrics.oldest_unread is not None:
        oldest = metrics.oldest_unread.astimezone(resolve_timezone(analytics.timezone))
        lines.append(f"- Oldest Unread: {oldest.date().isoformat()}")
    lines.append("- Average Response Time: not measured")

    lines += ["", "RECOMMENDATIONS"]
    recommendations = build_recommendations(analytics) or [HEALTHY_MESSAGE]
    lines.extend(f"- {item}" for item in recommendations)

    return "\n".join(lines)


__all__ = ["HEALTHY_MESSAGE", "build_recommendations", "format_report"]
