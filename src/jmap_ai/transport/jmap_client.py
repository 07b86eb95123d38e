"""JMAP transport adapter providing typed mail operations."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from types import TracebackType
from typing import Any

import httpx

from ..core.config import JmapSettings
from ..core.errors import (
    ConfigurationError,
    IdentityNotFoundError,
    InitializationError,
    JmapError,
    MailboxNotFoundError,
    NotFoundError,
    ProtocolError,
    SendError,
    TransportError,
    UninitializedError,
)
from ..core.interfaces import MailProvider
from ..core.models import (
    DRAFT_KEYWORD,
    SEEN_KEYWORD,
    BatchFailure,
    BatchResult,
    Identity,
    JmapSession,
    Mailbox,
    Message,
    MessagePage,
    SearchResult,
    SendResult,
)
from .filters import (
    DEFAULT_LIMIT,
    DEFAULT_SORT,
    AdvancedFilter,
    ListMessagesOptions,
    MessageFilter,
    SendMessageOptions,
    SortSpec,
)
from .parser import parse_identity, parse_mailbox, parse_message, parse_session
from .requests import (
    CORE_CAPABILITY,
    MAIL_CAPABILITY,
    SUBMISSION_CAPABILITY,
    CreationReference,
    JmapRequest,
    JmapResponse,
    ResultReference,
)

LOGGER = logging.getLogger(__name__)

LIST_BODY_BYTES = 256
DETAIL_BODY_BYTES = 100_000

LIST_PROPERTIES: tuple[str, ...] = (
    "id",
    "blobId",
    "threadId",
    "mailboxIds",
    "keywords",
    "size",
    "receivedAt",
    "subject",
    "from",
    "to",
    "cc",
    "bcc",
    "replyTo",
    "sentAt",
    "hasAttachment",
    "preview",
    "bodyValues",
    "textBody",
    "htmlBody",
    "attachments",
)

_DRAFT_CREATION_ID = "draft"
_SUBMISSION_CREATION_ID = "sendIt"


class JmapClient(MailProvider):
    """Session-bound client translating mail operations into JMAP batches."""

    def __init__(
        self,
        settings: JmapSettings,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialise the client; no network I/O happens until ``initialize``."""
        self._settings = settings
        self._transport = transport
        self._sleep = sleep
        self._http: httpx.Client | None = None
        self._session: JmapSession | None = None

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> JmapClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Release the HTTP connection pool on context exit."""
        self.close()

    # Session ----------------------------------------------------------------
    @property
    def is_initialized(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> JmapSession:
        return self._require_session()

    @property
    def account_email(self) -> str | None:
        """Address of the authenticated account, used to tell sent from received."""
        if self._settings.email:
            return self._settings.email
        return self._session.username if self._session else None

    def initialize(self) -> JmapSession:
        """Fetch the session document and resolve the primary mail account."""
        if not self._settings.api_token:
            raise ConfigurationError("JMAP API token is not configured")

        LOGGER.debug("Fetching JMAP session from %s", self._settings.session_url)
        try:
            response = self._client().get(self._settings.session_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise InitializationError(
                f"Failed to get session: HTTP {exc.response.status_code} "
                f"{exc.response.reason_phrase}"
            ) from exc
        except httpx.HTTPError as exc:
            raise InitializationError(f"Failed to get session: {exc}") from exc

        try:
            document = response.json()
        except ValueError as exc:
            raise ProtocolError(
                "Session response is not valid JSON", payload=response.text
            ) from exc

        session = parse_session(document)
        self._session = session
        LOGGER.info("JMAP session established for account %s", session.account_id)
        return session

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._http is None:
            return
        self._http.close()
        self._http = None

    # Public API ---------------------------------------------------------------
    def list_mailboxes(self) -> list[Mailbox]:
        """Return every mailbox in the account."""
        request = JmapRequest()
        request.add(
            "Mailbox/get",
            {"accountId": self._account_id(), "ids": None},
            "mailboxes",
        )
        result = self._execute(request).get("mailboxes", "Mailbox/get")
        return [parse_mailbox(item) for item in _require_list(result, "list")]

    def list_identities(self) -> list[Identity]:
        """Return the sending identities configured for the account."""
        request = JmapRequest(using=(CORE_CAPABILITY, SUBMISSION_CAPABILITY))
        request.add(
            "Identity/get",
            {"accountId": self._account_id(), "ids": None},
            "identities",
        )
        result = self._execute(request).get("identities", "Identity/get")
        return [parse_identity(item) for item in _require_list(result, "list")]

    def list_messages(
        self, options: ListMessagesOptions | None = None
    ) -> MessagePage:
        """Query message ids and fetch their details in one round trip."""
        options = options or ListMessagesOptions()
        messages, total = self._query_and_fetch(
            options.to_condition(),
            DEFAULT_SORT,
            limit=options.limit,
            position=options.position,
        )
        return MessagePage(messages=messages, total=total)

    def search_by_text(self, query: str, limit: int = DEFAULT_LIMIT) -> MessagePage:
        """Free-text search convenience wrapper."""
        return self.list_messages(
            ListMessagesOptions(limit=limit, filter=MessageFilter(text=query))
        )

    def advanced_search(
        self,
        filter: AdvancedFilter | None = None,  # pylint: disable=redefined-builtin
        sort: Sequence[SortSpec] | None = None,
        limit: int = DEFAULT_LIMIT,
        position: int = 0,
    ) -> SearchResult:
        """Search with the full filter vocabulary and custom sort order.

        ``has_more_results`` is set when the page is full, signalling that
        the caller should page on with ``position``.
        """
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if position < 0:
            raise ValueError("position must not be negative")
        condition = filter.to_filter() if filter else {}
        messages, total = self._query_and_fetch(
            condition,
            tuple(sort) if sort else DEFAULT_SORT,
            limit=limit,
            position=position,
        )
        return SearchResult(
            messages=messages,
            total=total,
            position=position,
            has_more_results=len(messages) == limit,
        )

    def get_message(self, message_id: str) -> Message | None:
        """Fetch a single message with its bodies; ``None`` when absent."""
        request = JmapRequest()
        request.add(
            "Email/get",
            {
                "accountId": self._account_id(),
                "ids": [message_id],
                "properties": None,
                "fetchTextBodyValues": True,
                "fetchHTMLBodyValues": True,
                "maxBodyValueBytes": DETAIL_BODY_BYTES,
            },
            "message",
        )
        result = self._execute(request).get("message", "Email/get")
        for item in _require_list(result, "list"):
            if item.get("id") == message_id:
                return parse_message(item)
        return None

    def send_message(self, options: SendMessageOptions) -> SendResult:
        """Create a draft and submit it for delivery in one batched request."""
        account_id = self._account_id()
        drafts = self._find_mailbox_by_role("drafts")
        identity = self._resolve_identity(options.from_address)

        request = JmapRequest(
            using=(CORE_CAPABILITY, MAIL_CAPABILITY, SUBMISSION_CAPABILITY)
        )
        request.add(
            "Email/set",
            {
                "accountId": account_id,
                "create": {
                    _DRAFT_CREATION_ID: _build_draft(options, drafts.id, identity)
                },
            },
            "draft",
        )
        request.add(
            "EmailSubmission/set",
            {
                "accountId": account_id,
                "onSuccessDestroyEmail": [CreationReference(_SUBMISSION_CREATION_ID)],
                "create": {
                    _SUBMISSION_CREATION_ID: {
                        "emailId": CreationReference(_DRAFT_CREATION_ID),
                        "identityId": identity.id,
                        "envelope": {
                            "mailFrom": {"email": identity.email},
                            "rcptTo": [
                                {"email": recipient.email}
                                for recipient in options.recipients
                            ],
                        },
                    }
                },
            },
            "submit",
        )

        LOGGER.info(
            "Sending message to %d recipient(s): %s",
            len(options.recipients),
            options.subject,
        )
        try:
            response = self._execute(request)
        except (TransportError, ProtocolError) as exc:
            LOGGER.error("Send request failed: %s", exc)
            raise SendError(f"Failed to send email: {exc}") from exc

        draft = _require_created(response, "draft", _DRAFT_CREATION_ID, "create draft")
        try:
            submission = _require_created(
                response, "submit", _SUBMISSION_CREATION_ID, "submit email"
            )
        except SendError:
            self._discard_draft(draft.get("id"))
            raise

        message_id = draft.get("id")
        if not isinstance(message_id, str):
            raise SendError("Draft creation returned no id", payload=draft)
        return SendResult(message_id=message_id, sent_at=submission.get("sendAt"))

    def update_read_state(self, message_id: str, read: bool = True) -> None:
        """Set or clear the ``$seen`` keyword."""
        # JMAP patch semantics: null removes the keyword
        self._update(message_id, {f"keywords/{SEEN_KEYWORD}": True if read else None})

    def move_message(self, message_id: str, target_mailbox_id: str) -> None:
        """Replace the message's mailbox membership with ``target_mailbox_id``."""
        if not self._message_exists(message_id):
            raise NotFoundError(f"Email not found: {message_id}")
        self._update(message_id, {"mailboxIds": {target_mailbox_id: True}})

    def delete_message(self, message_id: str) -> None:
        """Permanently destroy a message."""
        request = JmapRequest()
        request.add(
            "Email/set",
            {"accountId": self._account_id(), "destroy": [message_id]},
            "destroy",
        )
        result = self._execute(request).get("destroy", "Email/set")
        _raise_for_set_error(result, "notDestroyed", message_id)
        if message_id not in (result.get("destroyed") or []):
            raise ProtocolError(
                f"Server did not confirm deletion of {message_id}", payload=result
            )

    def delete_messages(self, message_ids: Iterable[str]) -> BatchResult:
        """Delete each id independently, collecting per-item outcomes."""
        return self._run_batch(message_ids, self.delete_message)

    def mark_messages_read(
        self, message_ids: Iterable[str], read: bool = True
    ) -> BatchResult:
        return self._run_batch(
            message_ids, lambda message_id: self.update_read_state(message_id, read)
        )

    def move_messages(
        self, message_ids: Iterable[str], target_mailbox_id: str
    ) -> BatchResult:
        return self._run_batch(
            message_ids,
            lambda message_id: self.move_message(message_id, target_mailbox_id),
        )

    # Internal helpers ---------------------------------------------------------
    def _client(self) -> httpx.Client:
        if self._http is None:
            self._http = httpx.Client(
                transport=self._transport,
                timeout=self._settings.timeout_seconds,
                headers={
                    "Authorization": f"Bearer {self._settings.api_token}",
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._http

    def _require_session(self) -> JmapSession:
        if self._session is None:
            raise UninitializedError()
        return self._session

    def _account_id(self) -> str:
        return self._require_session().account_id

    def _execute(self, request: JmapRequest) -> JmapResponse:
        """Send ``request`` and parse the batched response.

        Only read-only batches are retried; mutations get exactly one attempt.
        """
        session = self._require_session()
        payload = request.to_wire()
        attempts = self._settings.max_retries if request.is_read_only else 1
        LOGGER.debug(
            "JMAP request: %s",
            ", ".join(f"{call.name}#{call.call_id}" for call in request.calls),
        )
        for attempt in range(1, attempts + 1):
            try:
                return self._post(session.api_url, payload)
            except TransportError as exc:
                if not exc.retryable or attempt >= attempts:
                    raise
                delay = min(2**attempt, 8) * self._settings.retry_backoff_seconds
                LOGGER.warning(
                    "JMAP request failed (attempt %d/%d): %s; retrying in %.1fs",
                    attempt,
                    attempts,
                    exc,
                    delay,
                )
                self._sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover

    def _post(self, url: str, payload: dict[str, Any]) -> JmapResponse:
        try:
            response = self._client().post(url, json=payload)
        except httpx.TimeoutException as exc:
            raise TransportError("JMAP request timed out") from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"JMAP request failed: {exc}") from exc

        if response.is_error:
            status = response.status_code
            raise TransportError(
                f"JMAP request failed: HTTP {status} {response.reason_phrase}",
                status_code=status,
                retryable=status >= 500 or status == 429,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise ProtocolError(
                "JMAP response is not valid JSON", payload=response.text
            ) from exc
        return JmapResponse.from_wire(data)

    def _query_and_fetch(
        self,
        condition: dict[str, Any],
        sort: Sequence[SortSpec],
        *,
        limit: int,
        position: int,
    ) -> tuple[tuple[Message, ...], int]:
        account_id = self._account_id()
        request = JmapRequest()
        request.add(
            "Email/query",
            {
                "accountId": account_id,
                "filter": condition or None,
                "sort": [spec.to_comparator() for spec in sort],
                "limit": limit,
                "position": position,
                "calculateTotal": True,
            },
            "query",
        )
        request.add(
            "Email/get",
            {
                "accountId": account_id,
                "ids": ResultReference("query", "Email/query", "/ids"),
                "properties": list(LIST_PROPERTIES),
                "fetchTextBodyValues": True,
                "fetchHTMLBodyValues": True,
                "maxBodyValueBytes": LIST_BODY_BYTES,
            },
            "fetch",
        )
        response = self._execute(request)
        query_result = response.get("query", "Email/query")
        ids = [str(item) for item in _require_list(query_result, "ids")]
        total = query_result.get("total")
        if not isinstance(total, int):
            total = position + len(ids)
        if not ids:
            return (), total

        fetched = {
            item.get("id"): item
            for item in _require_list(response.get("fetch", "Email/get"), "list")
        }
        # Email/get does not promise to preserve the query order
        messages = tuple(
            parse_message(fetched[message_id])
            for message_id in ids
            if message_id in fetched
        )
        return messages, total

    def _find_mailbox_by_role(self, role: str) -> Mailbox:
        for mailbox in self.list_mailboxes():
            if mailbox.role == role:
                return mailbox
        raise MailboxNotFoundError(f"{role.capitalize()} mailbox not found")

    def _resolve_identity(self, from_address: str | None) -> Identity:
        identities = self.list_identities()
        if not identities:
            raise IdentityNotFoundError("No identities found")
        if from_address is None:
            return identities[0]
        wanted = from_address.strip().lower()
        for identity in identities:
            if identity.email.lower() == wanted:
                return identity
        LOGGER.warning(
            "No identity for %s; available: %s",
            from_address,
            ", ".join(identity.email for identity in identities),
        )
        raise IdentityNotFoundError(
            f"No identity found for email address: {from_address}"
        )

    def _discard_draft(self, draft_id: Any) -> None:
        """Best-effort removal of a draft whose submission was rejected."""
        if not isinstance(draft_id, str):
            return
        try:
            self.delete_message(draft_id)
        except JmapError as exc:
            LOGGER.warning("Could not remove orphaned draft: %s", exc)

    def _message_exists(self, message_id: str) -> bool:
        request = JmapRequest()
        request.add(
            "Email/get",
            {
                "accountId": self._account_id(),
                "ids": [message_id],
                "properties": ["id"],
            },
            "exists",
        )
        result = self._execute(request).get("exists", "Email/get")
        return any(
            item.get("id") == message_id for item in _require_list(result, "list")
        )

    def _update(self, message_id: str, patch: dict[str, Any]) -> None:
        request = JmapRequest()
        request.add(
            "Email/set",
            {"accountId": self._account_id(), "update": {message_id: patch}},
            "update",
        )
        result = self._execute(request).get("update", "Email/set")
        _raise_for_set_error(result, "notUpdated", message_id)
        if message_id not in (result.get("updated") or {}):
            raise ProtocolError(
                f"Server did not confirm update of {message_id}", payload=result
            )

    def _run_batch(
        self, message_ids: Iterable[str], operation: Callable[[str], None]
    ) -> BatchResult:
        self._require_session()
        outcome = BatchResult()
        for message_id in dict.fromkeys(message_ids):
            try:
                operation(message_id)
            except JmapError as exc:
                LOGGER.warning("Batch item %s failed: %s", message_id, exc)
                outcome.failed.append(BatchFailure(id=message_id, reason=str(exc)))
                continue
            outcome.succeeded.append(message_id)
        return outcome


def _build_draft(
    options: SendMessageOptions, mailbox_id: str, identity: Identity
) -> dict[str, Any]:
    sender: dict[str, Any] = {"email": identity.email}
    if identity.name:
        sender["name"] = identity.name
    email: dict[str, Any] = {
        "from": [sender],
        "to": [_recipient(item) for item in options.to],
        "subject": options.subject,
        "keywords": {DRAFT_KEYWORD: True},
        "mailboxIds": {mailbox_id: True},
        "bodyValues": {},
        "textBody": [],
    }
    if options.cc:
        email["cc"] = [_recipient(item) for item in options.cc]
    if options.bcc:
        email["bcc"] = [_recipient(item) for item in options.bcc]
    if options.in_reply_to:
        email["inReplyTo"] = options.in_reply_to
    if options.references:
        email["references"] = options.references

    if options.text_body:
        email["bodyValues"]["text"] = {"value": options.text_body, "charset": "utf-8"}
        email["textBody"].append({"partId": "text", "type": "text/plain"})
    if options.html_body:
        email["bodyValues"]["html"] = {"value": options.html_body, "charset": "utf-8"}
        email["htmlBody"] = [{"partId": "html", "type": "text/html"}]
    return email


def _recipient(recipient: Any) -> dict[str, Any]:
    entry = {"email": recipient.email}
    if recipient.name:
        entry["name"] = recipient.name
    return entry


def _require_list(result: dict[str, Any], key: str) -> list[Any]:
    value = result.get(key)
    if not isinstance(value, list):
        raise ProtocolError(f"JMAP result missing '{key}' list", payload=result)
    return value


def _raise_for_set_error(result: dict[str, Any], key: str, message_id: str) -> None:
    failures = result.get(key) or {}
    error = failures.get(message_id)
    if error is None:
        return
    error_type = error.get("type") if isinstance(error, dict) else None
    description = error.get("description") if isinstance(error, dict) else None
    detail = description or error_type or "unknown error"
    if error_type == "notFound":
        raise NotFoundError(f"Email not found: {message_id}")
    raise ProtocolError(
        f"Server rejected change to {message_id}: {detail}", payload=error
    )


def _require_created(
    response: JmapResponse, call_id: str, creation_id: str, step: str
) -> dict[str, Any]:
    """Return the created object or raise a single descriptive ``SendError``."""
    found = response.find(call_id)
    if found is None:
        raise SendError(f"Failed to {step}: no result received from JMAP server")
    name, result = found
    if name == "error":
        raise SendError(
            f"Failed to {step}: {result.get('type', 'unknown error')}", payload=result
        )
    not_created = result.get("notCreated") or {}
    if creation_id in not_created:
        raise SendError(
            f"Failed to {step}: {json.dumps(not_created[creation_id])}",
            payload=not_created,
        )
    created = result.get("created") or {}
    entry = created.get(creation_id) if isinstance(created, dict) else None
    if not isinstance(entry, dict):
        raise SendError(f"Failed to {step}: unexpected response shape", payload=result)
    return entry


__all__ = [
    "DETAIL_BODY_BYTES",
    "JmapClient",
    "LIST_BODY_BYTES",
    "LIST_PROPERTIES",
]
