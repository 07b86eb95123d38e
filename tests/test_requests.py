"""Tests for the batched request representation and its wire encoding."""

from __future__ import annotations

import pytest

from jmap_ai.core.errors import ProtocolError
from jmap_ai.transport.requests import (
    CORE_CAPABILITY,
    MAIL_CAPABILITY,
    CreationReference,
    JmapRequest,
    JmapResponse,
    ResultReference,
)


def test_result_reference_becomes_hash_key() -> None:
    request = JmapRequest()
    request.add("Email/query", {"accountId": "a", "limit": 5}, "q")
    request.add(
        "Email/get",
        {"accountId": "a", "ids": ResultReference("q", "Email/query", "/ids")},
        "g",
    )

    wire = request.to_wire()

    assert wire["using"] == [CORE_CAPABILITY, MAIL_CAPABILITY]
    assert wire["methodCalls"] == [
        ["Email/query", {"accountId": "a", "limit": 5}, "q"],
        [
            "Email/get",
            {
                "accountId": "a",
                "#ids": {"resultOf": "q", "name": "Email/query", "path": "/ids"},
            },
            "g",
        ],
    ]


def test_reference_to_later_call_is_refused() -> None:
    request = JmapRequest()
    request.add(
        "Email/get", {"ids": ResultReference("q", "Email/query", "/ids")}, "g"
    )
    request.add("Email/query", {}, "q")

    with pytest.raises(ValueError, match="unknown or later call"):
        request.to_wire()


def test_reference_with_wrong_method_name_is_refused() -> None:
    request = JmapRequest()
    request.add("Mailbox/get", {}, "m")
    request.add("Email/get", {"ids": ResultReference("m", "Email/query", "/ids")}, "g")

    with pytest.raises(ValueError, match="expects 'Email/query'"):
        request.to_wire()


def test_duplicate_call_ids_are_refused() -> None:
    request = JmapRequest()
    request.add("Mailbox/get", {}, "same")

    with pytest.raises(ValueError, match="Duplicate"):
        request.add("Identity/get", {}, "same")


def test_creation_references_resolve_within_request() -> None:
    request = JmapRequest()
    request.add("Email/set", {"create": {"draft": {"subject": "x"}}}, "d")
    request.add(
        "EmailSubmission/set",
        {
            "onSuccessDestroyEmail": [CreationReference("sendIt")],
            "create": {"sendIt": {"emailId": CreationReference("draft")}},
        },
        "s",
    )

    submission = request.to_wire()["methodCalls"][1][1]

    assert submission["onSuccessDestroyEmail"] == ["#sendIt"]
    assert submission["create"]["sendIt"]["emailId"] == "#draft"


def test_unknown_creation_reference_is_refused() -> None:
    request = JmapRequest()
    request.add(
        "Email/set", {"update": {"x": {"mailboxIds": CreationReference("nope")}}}, "u"
    )

    with pytest.raises(ValueError, match="Unknown creation id"):
        request.to_wire()


def test_read_only_detection() -> None:
    reads = JmapRequest()
    reads.add("Mailbox/get", {}, "m")
    reads.add("Email/query", {}, "q")
    mixed = JmapRequest()
    mixed.add("Email/get", {}, "g")
    mixed.add("Email/set", {}, "s")

    assert reads.is_read_only
    assert not mixed.is_read_only


def test_response_get_raises_on_method_error() -> None:
    response = JmapResponse.from_wire(
        {
            "methodResponses": [
                ["error", {"type": "invalidArguments", "description": "bad"}, "q"]
            ],
            "sessionState": "s1",
        }
    )

    with pytest.raises(ProtocolError, match="invalidArguments") as excinfo:
        response.get("q")
    assert excinfo.value.payload["description"] == "bad"
    assert response.session_state == "s1"


def test_response_get_missing_call_and_name_mismatch() -> None:
    response = JmapResponse.from_wire(
        {"methodResponses": [["Mailbox/get", {"list": []}, "m"]]}
    )

    assert response.get("m", "Mailbox/get") == {"list": []}
    with pytest.raises(ProtocolError, match="No method response"):
        response.get("other")
    with pytest.raises(ProtocolError, match="Expected 'Email/get'"):
        response.get("m", "Email/get")


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"sessionState": "s"},
        {"methodResponses": [["Mailbox/get", {}]]},
        {"methodResponses": [[1, {}, "m"]]},
    ],
)
def test_malformed_envelopes_raise_protocol_error(payload: object) -> None:
    with pytest.raises(ProtocolError):
        JmapResponse.from_wire(payload)
