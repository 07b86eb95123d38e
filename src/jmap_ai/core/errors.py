"""Error taxonomy shared by the JMAP client, analytics and tool layers."""

from __future__ import annotations

from typing import Any


class JmapError(RuntimeError):
    """Base class for every failure raised by the mail client."""


class ConfigurationError(JmapError):
    """Credentials are missing or the session has no primary mail account."""


class InitializationError(JmapError):
    """The session document could not be retrieved."""


class UninitializedError(JmapError):
    """An operation was invoked before ``initialize()`` succeeded."""

    def __init__(
        self, message: str = "Client not initialized. Call initialize() first."
    ) -> None:
        super().__init__(message)


class TransportError(JmapError):
    """Non-2xx HTTP status or network failure on a round trip."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        retryable: bool = True,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.retryable = retryable


class ProtocolError(JmapError):
    """The server answered but the payload does not have the expected shape."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class MailboxNotFoundError(JmapError):
    """No mailbox carries the role required by the operation."""


class IdentityNotFoundError(JmapError):
    """No sending identity matches the requested address."""


class SendError(JmapError):
    """The draft-and-send sequence did not complete."""

    def __init__(self, message: str, *, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class NotFoundError(JmapError):
    """The referenced message does not exist."""


__all__ = [
    "ConfigurationError",
    "IdentityNotFoundError",
    "InitializationError",
    "JmapError",
    "MailboxNotFoundError",
    "NotFoundError",
    "ProtocolError",
    "SendError",
    "TransportError",
    "UninitializedError",
]
