"""Intermediate representation for batched JMAP method calls.

A :class:`JmapRequest` is an ordered list of :class:`MethodCall` items.
Arguments may hold :class:`ResultReference` values pointing at an earlier
call in the same request; they are rewritten into the JMAP ``#name``
back-reference form only when the request is encoded for the wire.
:class:`CreationReference` values (``#creationId``) may appear anywhere in
the arguments and must name an object created by this or an earlier call.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..core.errors import ProtocolError

CORE_CAPABILITY = "urn:ietf:params:jmap:core"
MAIL_CAPABILITY = "urn:ietf:params:jmap:mail"
SUBMISSION_CAPABILITY = "urn:ietf:params:jmap:submission"

READ_ONLY_METHODS = frozenset(
    {"Mailbox/get", "Email/query", "Email/get", "Identity/get", "Thread/get"}
)


@dataclass(frozen=True, slots=True)
class ResultReference:
    """Typed pointer to a value produced by an earlier call."""

    call_id: str
    name: str
    path: str

    def to_wire(self) -> dict[str, str]:
        return {"resultOf": self.call_id, "name": self.name, "path": self.path}


@dataclass(frozen=True, slots=True)
class CreationReference:
    """Pointer to an object created earlier in the same request."""

    creation_id: str

    def to_wire(self) -> str:
        return f"#{self.creation_id}"


@dataclass(frozen=True, slots=True)
class MethodCall:
    """One ``[name, arguments, callId]`` invocation."""

    name: str
    arguments: Mapping[str, Any]
    call_id: str

    def references(self) -> Iterable[ResultReference]:
        for value in self.arguments.values():
            if isinstance(value, ResultReference):
                yield value


@dataclass(slots=True)
class JmapRequest:
    """Ordered batch of method calls sent in a single round trip."""

    using: tuple[str, ...] = (CORE_CAPABILITY, MAIL_CAPABILITY)
    calls: list[MethodCall] = field(default_factory=list)

    def add(self, name: str, arguments: Mapping[str, Any], call_id: str) -> MethodCall:
        """Append a call and return it so later calls can reference it."""
        if any(existing.call_id == call_id for existing in self.calls):
            raise ValueError(f"Duplicate call id '{call_id}' in request")
        call = MethodCall(name=name, arguments=dict(arguments), call_id=call_id)
        self.calls.append(call)
        return call

    @property
    def is_read_only(self) -> bool:
        """True when every call is safe to retry."""
        return all(call.name in READ_ONLY_METHODS for call in self.calls)

    def to_wire(self) -> dict[str, Any]:
        """Encode the request, resolving back-references into ``#`` keys."""
        issued: dict[str, str] = {}
        created: set[str] = set()
        method_calls: list[list[Any]] = []
        for call in self.calls:
            for reference in call.references():
                expected = issued.get(reference.call_id)
                if expected is None:
                    raise ValueError(
                        f"Call '{call.call_id}' references unknown or later call "
                        f"'{reference.call_id}'"
                    )
                if expected != reference.name:
                    raise ValueError(
                        f"Call '{call.call_id}' expects '{reference.name}' from "
                        f"'{reference.call_id}' but that call is '{expected}'"
                    )
            # creation ids become visible to later calls and to siblings
            create = call.arguments.get("create")
            if isinstance(create, Mapping):
                created.update(create.keys())
            encoded = {
                (f"#{key}" if isinstance(value, ResultReference) else key): _encode(
                    value, created
                )
                for key, value in call.arguments.items()
            }
            method_calls.append([call.name, encoded, call.call_id])
            issued[call.call_id] = call.name
        return {"using": list(self.using), "methodCalls": method_calls}


def _encode(value: Any, created: set[str]) -> Any:
    if isinstance(value, ResultReference):
        return value.to_wire()
    if isinstance(value, CreationReference):
        if value.creation_id not in created:
            raise ValueError(f"Unknown creation id '{value.creation_id}'")
        return value.to_wire()
    if isinstance(value, Mapping):
        return {key: _encode(item, created) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(item, created) for item in value]
    return value


@dataclass(frozen=True, slots=True)
class JmapResponse:
    """Parsed ``methodResponses`` keyed by call id."""

    responses: tuple[tuple[str, dict[str, Any], str], ...]
    session_state: str | None = None

    @classmethod
    def from_wire(cls, payload: Any) -> JmapResponse:
        """Validate the envelope of a JMAP response body."""
        if not isinstance(payload, dict):
            raise ProtocolError("JMAP response is not an object", payload=payload)
        raw_responses = payload.get("methodResponses")
        if not isinstance(raw_responses, list):
            raise ProtocolError(
                "JMAP response missing 'methodResponses'", payload=payload
            )
        parsed: list[tuple[str, dict[str, Any], str]] = []
        for entry in raw_responses:
            if (
                not isinstance(entry, list)
                or len(entry) != 3
                or not isinstance(entry[0], str)
                or not isinstance(entry[1], dict)
            ):
                raise ProtocolError("Malformed method response entry", payload=entry)
            parsed.append((entry[0], entry[1], str(entry[2])))
        return cls(responses=tuple(parsed), session_state=payload.get("sessionState"))

    def find(self, call_id: str) -> tuple[str, dict[str, Any]] | None:
        """Return ``(name, arguments)`` for ``call_id`` without raising."""
        for name, arguments, response_id in self.responses:
            if response_id == call_id:
                return name, arguments
        return None

    def get(self, call_id: str, expected_name: str | None = None) -> dict[str, Any]:
        """Return the arguments for ``call_id``, raising on JMAP errors."""
        found = self.find(call_id)
        if found is None:
            raise ProtocolError(
                f"No method response for call '{call_id}'",
                payload=[list(item) for item in self.responses],
            )
        name, arguments = found
        if name == "error":
            error_type = arguments.get("type", "unknown")
            description = arguments.get("description")
            message = f"JMAP method error for call '{call_id}': {error_type}"
            if description:
                message = f"{message} ({description})"
            raise ProtocolError(message, payload=arguments)
        if expected_name is not None and name != expected_name:
            raise ProtocolError(
                f"Expected '{expected_name}' response for call '{call_id}', "
                f"got '{name}'",
                payload=arguments,
            )
        return arguments


__all__ = [
    "CORE_CAPABILITY",
    "CreationReference",
    "JmapRequest",
    "JmapResponse",
    "MAIL_CAPABILITY",
    "MethodCall",
    "READ_ONLY_METHODS",
    "ResultReference",
    "SUBMISSION_CAPABILITY",
]
