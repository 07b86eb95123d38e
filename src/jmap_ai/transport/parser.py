"""Utilities for parsing JMAP payloads into structured models."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from ..core.datetime_utils import parse_datetime
from ..core.errors import ConfigurationError, ProtocolError
from ..core.models import (
    Attachment,
    BodyPart,
    EmailAddress,
    Identity,
    JmapSession,
    Mailbox,
    MailboxRights,
    Message,
)
from .requests import MAIL_CAPABILITY


def parse_session(document: Any) -> JmapSession:
    """Build a :class:`JmapSession` from the well-known session document."""
    if not isinstance(document, Mapping):
        raise ProtocolError("Session document is not an object", payload=document)
    primary_accounts = document.get("primaryAccounts") or {}
    account_id = primary_accounts.get(MAIL_CAPABILITY)
    if not account_id:
        raise ConfigurationError("No primary mail account found")
    api_url = document.get("apiUrl")
    if not isinstance(api_url, str) or not api_url:
        raise ProtocolError("Session document missing 'apiUrl'", payload=document)
    return JmapSession(
        api_url=api_url,
        upload_url=document.get("uploadUrl"),
        download_url=document.get("downloadUrl"),
        event_source_url=document.get("eventSourceUrl"),
        username=document.get("username"),
        state=document.get("state"),
        account_id=str(account_id),
        capabilities=frozenset((document.get("capabilities") or {}).keys()),
    )


def parse_mailbox(payload: Mapping[str, Any]) -> Mailbox:
    """Convert a ``Mailbox`` object into a :class:`Mailbox`."""
    rights = payload.get("myRights") or {}
    return Mailbox(
        id=str(payload["id"]),
        name=payload.get("name") or "",
        parent_id=payload.get("parentId"),
        role=payload.get("role"),
        sort_order=int(payload.get("sortOrder") or 0),
        total_emails=int(payload.get("totalEmails") or 0),
        unread_emails=int(payload.get("unreadEmails") or 0),
        total_threads=int(payload.get("totalThreads") or 0),
        unread_threads=int(payload.get("unreadThreads") or 0),
        rights=MailboxRights(
            may_read_items=bool(rights.get("mayReadItems")),
            may_add_items=bool(rights.get("mayAddItems")),
            may_remove_items=bool(rights.get("mayRemoveItems")),
            may_set_seen=bool(rights.get("maySetSeen")),
            may_set_keywords=bool(rights.get("maySetKeywords")),
            may_create_child=bool(rights.get("mayCreateChild")),
            may_rename=bool(rights.get("mayRename")),
            may_delete=bool(rights.get("mayDelete")),
            may_submit=bool(rights.get("maySubmit")),
        ),
        is_subscribed=bool(payload.get("isSubscribed")),
    )


def parse_identity(payload: Mapping[str, Any]) -> Identity:
    return Identity(
        id=str(payload["id"]),
        email=payload.get("email") or "",
        name=payload.get("name") or None,
    )


def parse_message(payload: Mapping[str, Any]) -> Message:
    """Convert an ``Email`` object into a :class:`Message`."""
    body_values = {
        part_id: value.get("value", "")
        for part_id, value in (payload.get("bodyValues") or {}).items()
        if isinstance(value, Mapping)
    }
    return Message(
        id=str(payload["id"]),
        thread_id=payload.get("threadId"),
        blob_id=payload.get("blobId"),
        mailbox_ids=_true_keys(payload.get("mailboxIds")),
        keywords=_true_keys(payload.get("keywords")),
        size=int(payload.get("size") or 0),
        received_at=_try_parse_datetime(payload.get("receivedAt")),
        sent_at=_try_parse_datetime(payload.get("sentAt")),
        subject=payload.get("subject"),
        from_=tuple(_addresses(payload.get("from"))),
        to=tuple(_addresses(payload.get("to"))),
        cc=tuple(_addresses(payload.get("cc"))),
        bcc=tuple(_addresses(payload.get("bcc"))),
        reply_to=tuple(_addresses(payload.get("replyTo"))),
        preview=payload.get("preview") or "",
        has_attachment=bool(payload.get("hasAttachment")),
        text_body=tuple(_body_parts(payload.get("textBody"))),
        html_body=tuple(_body_parts(payload.get("htmlBody"))),
        body_values=body_values,
        attachments=tuple(_attachments(payload.get("attachments"))),
    )


def _true_keys(value: Any) -> frozenset[str]:
    if not isinstance(value, Mapping):
        return frozenset()
    return frozenset(key for key, flag in value.items() if flag)


def _addresses(value: Any) -> Iterable[EmailAddress]:
    for entry in value or ():
        if isinstance(entry, Mapping) and entry.get("email"):
            yield EmailAddress(email=entry["email"], name=entry.get("name") or None)


def _body_parts(value: Any) -> Iterable[BodyPart]:
    for entry in value or ():
        if isinstance(entry, Mapping) and entry.get("partId"):
            yield BodyPart(part_id=str(entry["partId"]), type=entry.get("type") or "")


def _attachments(value: Any) -> Iterable[Attachment]:
    for entry in value or ():
        if not isinstance(entry, Mapping):
            continue
        size = entry.get("size")
        yield Attachment(
            part_id=entry.get("partId"),
            blob_id=entry.get("blobId"),
            size=int(size) if size is not None else None,
            name=entry.get("name"),
            type=entry.get("type"),
            disposition=entry.get("disposition"),
        )


def _try_parse_datetime(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return parse_datetime(value)
    except ValueError:
        return None


__all__ = ["parse_identity", "parse_mailbox", "parse_message", "parse_session"]
