"""Protocol interfaces for decoupling components."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from .models import Mailbox, MessagePage

if TYPE_CHECKING:
    from jmap_ai.transport.filters import ListMessagesOptions


class MailProvider(Protocol):
    """Read access to a mail account, as consumed by analytics."""

    def list_messages(self, options: ListMessagesOptions) -> MessagePage:
        """Return one page of messages matching ``options``."""
        raise NotImplementedError

    def list_mailboxes(self) -> list[Mailbox]:
        """Return every mailbox in the account."""
        raise NotImplementedError


__all__ = ["MailProvider"]
