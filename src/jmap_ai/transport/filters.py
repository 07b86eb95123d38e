"""Typed filter, sort and option structures for JMAP queries.

Every model forbids unknown keys so a misspelt filter fails loudly instead
of silently widening a query. Fields accept either their Python name or the
camelCase JMAP spelling.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..core.datetime_utils import to_utc_date
from ..core.models import DRAFT_KEYWORD, FLAGGED_KEYWORD, SEEN_KEYWORD, EmailAddress

DEFAULT_LIMIT = 50


class _StrictModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        frozen=True,
        alias_generator=to_camel,
    )


class MessageFilter(_StrictModel):
    """Simple filter used by list views and free-text search."""

    text: str | None = None
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    subject: str | None = None
    after: datetime | None = None
    before: datetime | None = None
    has_attachment: bool | None = None
    is_unread: bool | None = None

    def to_condition(self) -> dict[str, Any]:
        """Return the JMAP ``FilterCondition`` for this filter."""
        condition: dict[str, Any] = {}
        if self.text:
            condition["text"] = self.text
        if self.from_:
            condition["from"] = self.from_
        if self.to:
            condition["to"] = self.to
        if self.subject:
            condition["subject"] = self.subject
        if self.after is not None:
            condition["after"] = to_utc_date(self.after)
        if self.before is not None:
            condition["before"] = to_utc_date(self.before)
        if self.has_attachment is not None:
            condition["hasAttachment"] = self.has_attachment
        if self.is_unread is True:
            condition["notKeyword"] = SEEN_KEYWORD
        elif self.is_unread is False:
            condition["hasKeyword"] = SEEN_KEYWORD
        return condition


class ListMessagesOptions(_StrictModel):
    """Options accepted by :meth:`JmapClient.list_messages`."""

    mailbox_id: str | None = None
    limit: int = Field(default=DEFAULT_LIMIT, ge=1)
    position: int = Field(default=0, ge=0)
    filter: MessageFilter | None = None

    def to_condition(self) -> dict[str, Any]:
        condition = self.filter.to_condition() if self.filter else {}
        if self.mailbox_id:
            condition["inMailbox"] = self.mailbox_id
        return condition


_CONDITION_FIELDS: dict[str, str] = {
    "in_mailbox": "inMailbox",
    "in_mailbox_other_than": "inMailboxOtherThan",
    "min_size": "minSize",
    "max_size": "maxSize",
    "all_in_thread_have_keyword": "allInThreadHaveKeyword",
    "some_in_thread_have_keyword": "someInThreadHaveKeyword",
    "none_in_thread_have_keyword": "noneInThreadHaveKeyword",
    "has_keyword": "hasKeyword",
    "not_keyword": "notKeyword",
    "has_attachment": "hasAttachment",
    "text": "text",
    "from_": "from",
    "to": "to",
    "cc": "cc",
    "bcc": "bcc",
    "subject": "subject",
    "body": "body",
    "header": "header",
}


# pylint: disable=too-many-instance-attributes
class AdvancedFilter(_StrictModel):
    """Full JMAP ``Email/query`` filter vocabulary plus convenience flags.

    ``unread``, ``flagged`` and ``draft`` desugar into keyword conditions.
    When they collide with an explicit ``has_keyword``/``not_keyword`` the
    conditions are combined with an ``AND`` operator.
    """

    in_mailbox: str | None = None
    in_mailbox_other_than: list[str] | None = None
    before: datetime | None = None
    after: datetime | None = None
    min_size: int | None = Field(default=None, ge=0)
    max_size: int | None = Field(default=None, ge=0)
    all_in_thread_have_keyword: str | None = None
    some_in_thread_have_keyword: str | None = None
    none_in_thread_have_keyword: str | None = None
    has_keyword: str | None = None
    not_keyword: str | None = None
    has_attachment: bool | None = None
    text: str | None = None
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None
    cc: str | None = None
    bcc: str | None = None
    subject: str | None = None
    body: str | None = None
    header: list[str] | None = None
    unread: bool | None = None
    flagged: bool | None = None
    draft: bool | None = None

    @field_validator("header")
    @classmethod
    def _check_header(cls, value: list[str] | None) -> list[str] | None:
        if value is not None and not 1 <= len(value) <= 2:
            raise ValueError("header must be [name] or [name, value]")
        return value

    def to_filter(self) -> dict[str, Any]:
        """Return a JMAP ``FilterCondition`` or ``FilterOperator``."""
        base: dict[str, Any] = {}
        for attribute, wire_name in _CONDITION_FIELDS.items():
            value = getattr(self, attribute)
            if value is not None and value != "":
                base[wire_name] = value
        if self.before is not None:
            base["before"] = to_utc_date(self.before)
        if self.after is not None:
            base["after"] = to_utc_date(self.after)

        extra: list[dict[str, Any]] = []
        for flag, keyword in (
            (self.unread, SEEN_KEYWORD),
            (self.flagged, FLAGGED_KEYWORD),
            (self.draft, DRAFT_KEYWORD),
        ):
            if flag is None:
                continue
            # unread is the inverse of $seen
            present = not flag if keyword == SEEN_KEYWORD else flag
            wire_name = "hasKeyword" if present else "notKeyword"
            if wire_name in base:
                extra.append({wire_name: keyword})
            else:
                base[wire_name] = keyword

        if not extra:
            return base
        return {"operator": "AND", "conditions": [base, *extra]}


SortProperty = Literal[
    "receivedAt",
    "sentAt",
    "size",
    "from",
    "to",
    "subject",
    "hasKeyword",
    "allInThreadHaveKeyword",
    "someInThreadHaveKeyword",
]


class SortSpec(_StrictModel):
    """One sort comparator; descending unless ``ascending`` is set."""

    property: SortProperty = "receivedAt"
    ascending: bool = False
    keyword: str | None = None

    @model_validator(mode="after")
    def _keyword_required(self) -> SortSpec:
        if "Keyword" in self.property and not self.keyword:
            raise ValueError(f"sort property '{self.property}' requires a keyword")
        return self

    def to_comparator(self) -> dict[str, Any]:
        comparator: dict[str, Any] = {
            "property": self.property,
            "isAscending": self.ascending,
        }
        if self.keyword:
            comparator["keyword"] = self.keyword
        return comparator


DEFAULT_SORT = (SortSpec(property="receivedAt", ascending=False),)


class Recipient(_StrictModel):
    """Address supplied by a caller composing a message."""

    email: str = Field(min_length=3)
    name: str | None = None

    def to_address(self) -> EmailAddress:
        return EmailAddress(email=self.email, name=self.name)


class SendMessageOptions(_StrictModel):
    """Options accepted by :meth:`JmapClient.send_message`."""

    from_address: str | None = Field(default=None, alias="from")
    to: list[Recipient] = Field(min_length=1)
    cc: list[Recipient] = Field(default_factory=list)
    bcc: list[Recipient] = Field(default_factory=list)
    subject: str
    text_body: str | None = None
    html_body: str | None = None
    in_reply_to: list[str] | None = None
    references: list[str] | None = None

    @field_validator("in_reply_to", "references", mode="before")
    @classmethod
    def _coerce_id_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @model_validator(mode="after")
    def _require_body(self) -> SendMessageOptions:
        if not self.text_body and not self.html_body:
            raise ValueError("Must provide either text_body or html_body")
        return self

    @property
    def recipients(self) -> list[Recipient]:
        """Envelope recipients: to, then cc, then bcc."""
        return [*self.to, *self.cc, *self.bcc]


__all__ = [
    "AdvancedFilter",
    "DEFAULT_LIMIT",
    "DEFAULT_SORT",
    "ListMessagesOptions",
    "MessageFilter",
    "Recipient",
    "SendMessageOptions",
    "SortSpec",
]
