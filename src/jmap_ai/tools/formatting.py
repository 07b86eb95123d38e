"""Convert domain models into JSON-ready tool payloads."""

from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from jmap_ai.core.datetime_utils import serialize_datetime
from jmap_ai.core.models import (
    AnalyticsResult,
    ActivityPatterns,
    BatchResult,
    EmailAddress,
    EmailVolume,
    Mailbox,
    Message,
    SenderStat,
)

NO_SUBJECT = "(no subject)"
_UNKNOWN_SENDER = {"email": "unknown", "name": "Unknown"}


def to_json(payload: Any) -> str:
    """Pretty-print a payload the way every tool returns it."""
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _address(address: EmailAddress) -> dict[str, Any]:
    return {"email": address.email, "name": address.name}


def _addresses(addresses: Iterable[EmailAddress]) -> list[dict[str, Any]]:
    return [_address(address) for address in addresses]


def _sender(message: Message) -> dict[str, Any]:
    sender = message.sender
    return _address(sender) if sender is not None else dict(_UNKNOWN_SENDER)


def serialize_mailbox(mailbox: Mailbox) -> dict[str, Any]:
    return {
        "id": mailbox.id,
        "name": mailbox.name,
        "role": mailbox.role,
        "parentId": mailbox.parent_id,
        "totalEmails": mailbox.total_emails,
        "unreadEmails": mailbox.unread_emails,
        "path": mailbox.name,
    }


def serialize_message_summary(message: Message) -> dict[str, Any]:
    """Compact representation used by list and search results."""
    return {
        "id": message.id,
        "subject": message.subject or NO_SUBJECT,
        "from": _sender(message),
        "to": _addresses(message.to),
        "receivedAt": serialize_datetime(message.received_at),
        "preview": message.preview,
        "hasAttachment": message.has_attachment,
        "isRead": message.is_read,
        "isFlagged": message.is_flagged,
    }


def serialize_message_detail(message: Message) -> dict[str, Any]:
    """Full representation including bodies and attachment metadata."""
    return {
        "id": message.id,
        "threadId": message.thread_id,
        "subject": message.subject or NO_SUBJECT,
        "from": _sender(message),
        "to": _addresses(message.to),
        "cc": _addresses(message.cc),
        "bcc": _addresses(message.bcc),
        "replyTo": _addresses(message.reply_to),
        "receivedAt": serialize_datetime(message.received_at),
        "sentAt": serialize_datetime(message.sent_at),
        "mailboxIds": sorted(message.mailbox_ids),
        "textBody": message.text_content(),
        "htmlBody": message.html_content(),
        "hasAttachment": message.has_attachment,
        "attachments": [
            {
                "name": attachment.name,
                "type": attachment.type,
                "size": attachment.size,
                "blobId": attachment.blob_id,
            }
            for attachment in message.attachments
        ],
        "isRead": message.is_read,
        "isFlagged": message.is_flagged,
    }


def serialize_batch(result: BatchResult) -> dict[str, Any]:
    return {
        "succeeded": list(result.succeeded),
        "failed": [{"id": item.id, "error": item.reason} for item in result.failed],
    }


def volume_to_dict(volume: EmailVolume) -> dict[str, Any]:
    return {
        "totalEmails": volume.total,
        "sentEmails": volume.sent,
        "receivedEmails": volume.received,
        "periodStart": serialize_datetime(volume.period_start),
        "periodEnd": serialize_datetime(volume.period_end),
    }


def senders_to_list(senders: Iterable[SenderStat]) -> list[dict[str, Any]]:
    return [
        {
            "email": sender.email,
            "name": sender.name,
            "count": sender.count,
            "percentage": sender.percentage,
        }
        for sender in senders
    ]


def patterns_to_dict(patterns: ActivityPatterns) -> dict[str, Any]:
    return {
        "byHour": [
            {"hour": bucket.hour, "count": bucket.count} for bucket in patterns.by_hour
        ],
        "byDay": [
            {"day": bucket.key, "count": bucket.count} for bucket in patterns.by_day
        ],
        "byMonth": [
            {"month": bucket.key, "count": bucket.count} for bucket in patterns.by_month
        ],
    }


def analytics_to_dict(analytics: AnalyticsResult) -> dict[str, Any]:
    """camelCase payload for the full analytics snapshot."""
    content = analytics.content_insights
    metrics = analytics.response_metrics
    return {
        "emailVolume": volume_to_dict(analytics.volume),
        "topSenders": senders_to_list(analytics.top_senders),
        "activityPatterns": patterns_to_dict(analytics.activity_patterns),
        "folderUsage": [
            {
                "folderName": folder.folder_name,
                "emailCount": folder.email_count,
                "percentage": folder.percentage,
            }
            for folder in analytics.folder_usage
        ],
        "contentInsights": {
            "averageEmailLength": content.average_email_length,
            "totalAttachments": content.total_attachments,
            "commonKeywords": [
                {"word": keyword.word, "frequency": keyword.frequency}
                for keyword in content.common_keywords
            ],
            "subjectAnalysis": [
                {"pattern": pattern.pattern, "count": pattern.count}
                for pattern in content.subject_analysis
            ],
        },
        "responseMetrics": {
            "averageResponseTime": metrics.average_response_time_hours,
            "averageResponseTimeNote": metrics.response_time_note,
            "unreadCount": metrics.unread_count,
            "unreadPercentage": metrics.unread_percentage,
            "oldestUnread": serialize_datetime(metrics.oldest_unread),
        },
    }


__all__ = [
    "NO_SUBJECT",
    "analytics_to_dict",
    "patterns_to_dict",
    "senders_to_list",
    "serialize_batch",
    "serialize_mailbox",
    "serialize_message_detail",
    "serialize_message_summary",
    "to_json",
    "volume_to_dict",
]
