"""Transport adapters for JMAP mail servers."""

from .filters import (
    AdvancedFilter,
    ListMessagesOptions,
    MessageFilter,
    Recipient,
    SendMessageOptions,
    SortSpec,
)
from .jmap_client import JmapClient
from .requests import JmapRequest, JmapResponse, MethodCall, ResultReference

__all__ = [
    "AdvancedFilter",
    "JmapClient",
    "JmapRequest",
    "JmapResponse",
    "ListMessagesOptions",
    "MessageFilter",
    "MethodCall",
    "Recipient",
    "ResultReference",
    "SendMessageOptions",
    "SortSpec",
]
