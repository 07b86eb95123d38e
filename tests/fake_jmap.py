"""In-memory JMAP server used through ``httpx.MockTransport``."""

from __future__ import annotations

import copy
import json
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import httpx

SESSION_URL = "https://jmap.test/.well-known/jmap"
API_URL = "https://jmap.test/api/"
ACCOUNT_ID = "acc-1"
ACCOUNT_EMAIL = "me@example.com"

CORE = "urn:ietf:params:jmap:core"
MAIL = "urn:ietf:params:jmap:mail"
SUBMISSION = "urn:ietf:params:jmap:submission"

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def utc_date(value: datetime) -> str:
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class FakeJmapServer:
    """Tiny subset of a JMAP mail server with deterministic ids.

    Submissions with ``onSuccessDestroyEmail`` file the draft into the Sent
    mailbox instead of dropping it, mirroring servers that keep a sent copy.
    """

    def __init__(self, *, with_drafts: bool = True) -> None:
        self.mailboxes: dict[str, dict[str, Any]] = {
            "mb-inbox": {"id": "mb-inbox", "name": "Inbox", "role": "inbox"},
            "mb-sent": {"id": "mb-sent", "name": "Sent", "role": "sent"},
            "mb-archive": {"id": "mb-archive", "name": "Archive", "role": "archive"},
        }
        if with_drafts:
            self.mailboxes["mb-drafts"] = {
                "id": "mb-drafts",
                "name": "Drafts",
                "role": "drafts",
            }
        self.identities: list[dict[str, Any]] = [
            {"id": "id-1", "email": ACCOUNT_EMAIL, "name": "Me"}
        ]
        self.emails: dict[str, dict[str, Any]] = {}
        self.requests: list[dict[str, Any]] = []
        self.session_status = 200
        self.api_failures: list[int] = []
        self.fail_on: dict[str, int] = {}
        self.reject_submission = False
        self._counter = 0

    # Seeding -----------------------------------------------------------------
    def add_email(
        self,
        *,
        subject: str = "Hello",
        sender: str = "alice@example.com",
        sender_name: str | None = "Alice",
        to: str = ACCOUNT_EMAIL,
        mailbox_id: str = "mb-inbox",
        received_at: datetime | None = None,
        seen: bool = False,
        flagged: bool = False,
        text: str = "Body text",
        has_attachment: bool = False,
    ) -> str:
        email_id = self._next_id("M")
        keywords: dict[str, bool] = {}
        if seen:
            keywords["$seen"] = True
        if flagged:
            keywords["$flagged"] = True
        self.emails[email_id] = {
            "id": email_id,
            "blobId": f"blob-{email_id}",
            "threadId": f"T{email_id}",
            "mailboxIds": {mailbox_id: True},
            "keywords": keywords,
            "size": len(text),
            "receivedAt": utc_date(received_at or BASE_TIME),
            "sentAt": utc_date(received_at or BASE_TIME),
            "subject": subject,
            "from": [{"email": sender, "name": sender_name}],
            "to": [{"email": to, "name": None}],
            "cc": [],
            "bcc": [],
            "replyTo": [],
            "preview": text[:256],
            "hasAttachment": has_attachment,
            "textBody": [{"partId": "1", "type": "text/plain"}],
            "htmlBody": [],
            "bodyValues": {"1": {"value": text}},
            "attachments": [],
        }
        return email_id

    def add_many(self, count: int, **kwargs: Any) -> list[str]:
        return [
            self.add_email(
                received_at=BASE_TIME - timedelta(minutes=index), **kwargs
            )
            for index in range(count)
        ]

    # Transport ---------------------------------------------------------------
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.method == "GET" and str(request.url) == SESSION_URL:
            if self.session_status != 200:
                return httpx.Response(self.session_status)
            return httpx.Response(200, json=self.session_document())
        if request.method == "POST" and str(request.url) == API_URL:
            payload = json.loads(request.content)
            self.requests.append(payload)
            if self.api_failures:
                return httpx.Response(self.api_failures.pop(0))
            for name, _, _ in payload["methodCalls"]:
                if name in self.fail_on:
                    return httpx.Response(self.fail_on[name])
            return httpx.Response(200, json=self.process(payload))
        return httpx.Response(404)

    def session_document(self) -> dict[str, Any]:
        return {
            "apiUrl": API_URL,
            "uploadUrl": "https://jmap.test/upload/{accountId}/",
            "downloadUrl": "https://jmap.test/download/{accountId}/{blobId}/{name}",
            "eventSourceUrl": "https://jmap.test/events/",
            "username": ACCOUNT_EMAIL,
            "state": "state-1",
            "capabilities": {CORE: {}, MAIL: {}, SUBMISSION: {}},
            "primaryAccounts": {MAIL: ACCOUNT_ID, SUBMISSION: ACCOUNT_ID},
        }

    def method_names(self) -> list[list[str]]:
        return [
            [call[0] for call in payload["methodCalls"]] for payload in self.requests
        ]

    # Request processing ------------------------------------------------------
    def process(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        responses: list[list[Any]] = []
        results: dict[str, tuple[str, dict[str, Any]]] = {}
        created: dict[str, str] = {}
        for name, arguments, call_id in payload["methodCalls"]:
            handler = self._handlers().get(name)
            if handler is None:
                result_name, result = "error", {"type": "unknownMethod"}
            else:
                resolved = self._resolve_references(arguments, results)
                result_name, result = name, handler(resolved, created)
            responses.append([result_name, result, call_id])
            results[call_id] = (result_name, result)
        return {"methodResponses": responses, "sessionState": "state-1"}

    def _handlers(self) -> dict[str, Any]:
        return {
            "Mailbox/get": self._mailbox_get,
            "Identity/get": self._identity_get,
            "Email/query": self._email_query,
            "Email/get": self._email_get,
            "Email/set": self._email_set,
            "EmailSubmission/set": self._submission_set,
        }

    @staticmethod
    def _resolve_references(
        arguments: Mapping[str, Any], results: Mapping[str, tuple[str, dict[str, Any]]]
    ) -> dict[str, Any]:
        resolved: dict[str, Any] = {}
        for key, value in arguments.items():
            if key.startswith("#"):
                name, result = results[value["resultOf"]]
                assert name == value["name"], "back-reference names the wrong method"
                resolved[key[1:]] = result[value["path"].strip("/")]
            else:
                resolved[key] = value
        return resolved

    def _mailbox_get(
        self, arguments: dict[str, Any], _: dict[str, str]
    ) -> dict[str, Any]:
        boxes = []
        for mailbox in self.mailboxes.values():
            members = [
                email for email in self.emails.values()
                if mailbox["id"] in email["mailboxIds"]
            ]
            boxes.append(
                {
                    **mailbox,
                    "parentId": None,
                    "sortOrder": 0,
                    "totalEmails": len(members),
                    "unreadEmails": sum(
                        1 for email in members if "$seen" not in email["keywords"]
                    ),
                    "myRights": {"mayReadItems": True, "maySubmit": True},
                    "isSubscribed": True,
                }
            )
        return {"accountId": arguments["accountId"], "list": boxes, "notFound": []}

    def _identity_get(
        self, arguments: dict[str, Any], _: dict[str, str]
    ) -> dict[str, Any]:
        return {"accountId": arguments["accountId"], "list": list(self.identities)}

    def _email_query(
        self, arguments: dict[str, Any], _: dict[str, str]
    ) -> dict[str, Any]:
        condition = arguments.get("filter") or {}
        matches = [
            email for email in self.emails.values() if _matches(email, condition)
        ]
        matches.sort(key=lambda email: email["receivedAt"], reverse=True)
        position = arguments.get("position", 0)
        limit = arguments.get("limit") or len(matches)
        window = matches[position : position + limit]
        result: dict[str, Any] = {
            "accountId": arguments["accountId"],
            "ids": [email["id"] for email in window],
            "position": position,
        }
        if arguments.get("calculateTotal"):
            result["total"] = len(matches)
        return result

    def _email_get(
        self, arguments: dict[str, Any], _: dict[str, str]
    ) -> dict[str, Any]:
        found, missing = [], []
        for email_id in arguments.get("ids") or []:
            if email_id in self.emails:
                found.append(copy.deepcopy(self.emails[email_id]))
            else:
                missing.append(email_id)
        return {"accountId": arguments["accountId"], "list": found, "notFound": missing}

    def _email_set(
        self, arguments: dict[str, Any], created: dict[str, str]
    ) -> dict[str, Any]:
        result: dict[str, Any] = {"accountId": arguments["accountId"]}
        for creation_id, spec in (arguments.get("create") or {}).items():
            email_id = self._next_id("M")
            created[creation_id] = email_id
            self.emails[email_id] = {
                "id": email_id,
                "blobId": f"blob-{email_id}",
                "threadId": f"T{email_id}",
                "mailboxIds": dict(spec.get("mailboxIds") or {}),
                "keywords": dict(spec.get("keywords") or {}),
                "size": 0,
                "receivedAt": utc_date(BASE_TIME),
                "sentAt": utc_date(BASE_TIME),
                "subject": spec.get("subject"),
                "from": spec.get("from") or [],
                "to": spec.get("to") or [],
                "cc": spec.get("cc") or [],
                "bcc": spec.get("bcc") or [],
                "replyTo": [],
                "preview": "",
                "hasAttachment": False,
                "textBody": spec.get("textBody") or [],
                "htmlBody": spec.get("htmlBody") or [],
                "bodyValues": dict(spec.get("bodyValues") or {}),
                "attachments": [],
            }
            result.setdefault("created", {})[creation_id] = {"id": email_id}

        for email_id, patch in (arguments.get("update") or {}).items():
            if email_id not in self.emails:
                result.setdefault("notUpdated", {})[email_id] = {"type": "notFound"}
                continue
            _apply_patch(self.emails[email_id], patch)
            result.setdefault("updated", {})[email_id] = None

        for email_id in arguments.get("destroy") or []:
            if self.emails.pop(email_id, None) is None:
                result.setdefault("notDestroyed", {})[email_id] = {"type": "notFound"}
            else:
                result.setdefault("destroyed", []).append(email_id)
        return result

    def _submission_set(
        self, arguments: dict[str, Any], created: dict[str, str]
    ) -> dict[str, Any]:
        result: dict[str, Any] = {"accountId": arguments["accountId"]}
        submitted: dict[str, str] = {}
        for creation_id, spec in (arguments.get("create") or {}).items():
            if self.reject_submission:
                result.setdefault("notCreated", {})[creation_id] = {
                    "type": "forbiddenToSend",
                    "description": "Sending is disabled",
                }
                continue
            email_id = _dereference(spec["emailId"], created)
            submission_id = self._next_id("S")
            submitted[f"#{creation_id}"] = email_id
            result.setdefault("created", {})[creation_id] = {
                "id": submission_id,
                "sendAt": utc_date(BASE_TIME),
            }

        for reference in arguments.get("onSuccessDestroyEmail") or []:
            email_id = submitted.get(reference)
            if email_id and email_id in self.emails:
                email = self.emails[email_id]
                email["mailboxIds"] = {"mb-sent": True}
                email["keywords"] = {"$seen": True}
        return result

    def _next_id(self, prefix: str) -> str:
        self._counter += 1
        return f"{prefix}{self._counter}"


def _dereference(value: str, created: Mapping[str, str]) -> str:
    if value.startswith("#"):
        return created[value[1:]]
    return value


def _apply_patch(email: dict[str, Any], patch: Mapping[str, Any]) -> None:
    for path, value in patch.items():
        if "/" in path:
            head, key = path.split("/", 1)
            target = email.setdefault(head, {})
            if value is None:
                target.pop(key, None)
            else:
                target[key] = value
        else:
            email[path] = value


def _address_matches(addresses: list[dict[str, Any]], needle: str) -> bool:
    needle = needle.lower()
    return any(
        needle in (entry.get("email") or "").lower()
        or needle in (entry.get("name") or "").lower()
        for entry in addresses
    )


def _matches(email: Mapping[str, Any], condition: Mapping[str, Any]) -> bool:
    if condition.get("operator") == "AND":
        return all(_matches(email, item) for item in condition["conditions"])
    checks = {
        "inMailbox": lambda value: value in email["mailboxIds"],
        "hasKeyword": lambda value: value in email["keywords"],
        "notKeyword": lambda value: value not in email["keywords"],
        "hasAttachment": lambda value: email["hasAttachment"] is value,
        "after": lambda value: email["receivedAt"] >= value,
        "before": lambda value: email["receivedAt"] < value,
        "from": lambda value: _address_matches(email["from"], value),
        "to": lambda value: _address_matches(email["to"], value),
        "subject": lambda value: value.lower() in (email["subject"] or "").lower(),
        "text": lambda value: value.lower()
        in " ".join(
            [email["subject"] or "", email["preview"]]
            + [part.get("value", "") for part in email["bodyValues"].values()]
        ).lower(),
    }
    for key, value in condition.items():
        check = checks.get(key)
        if check is None:
            raise AssertionError(f"fake server does not support filter '{key}'")
        if not check(value):
            return False
    return True
