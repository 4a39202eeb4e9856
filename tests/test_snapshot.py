from __future__ import annotations

import pytest
from fakes import FakeTransport, message_payload, notification_payload

from pysmartcare.exceptions import SmartCareApiError, SmartCareTransportError
from pysmartcare.ingestion.snapshot import (
    load_conversation_page,
    load_messaging_snapshot,
    load_notification_snapshot,
)
from pysmartcare.models.message import Message
from pysmartcare.state.events import TransitionSource


def _messages_newest_first() -> list[dict[str, object]]:
    return [
        message_payload("m3", sender="u2", receiver="u1", conversation="c1", timestamp="2026-03-01T10:03:00Z"),
        message_payload("m9", sender="u1", receiver="u3", conversation="c2", timestamp="2026-03-01T10:02:00Z"),
        message_payload("m2", sender="u1", receiver="u2", conversation="c1", timestamp="2026-03-01T10:01:00Z"),
        message_payload("m1", sender="u2", receiver="u1", conversation="c1", timestamp="2026-03-01T10:00:00Z"),
    ]


@pytest.mark.asyncio
async def test_messaging_snapshot_orders_each_conversation_oldest_first() -> None:
    transport = FakeTransport(
        responses={
            ("GET", "/conversations/user/u1"): [{"id": "c1", "participants": ["u1", "u2"]}, {"id": "c2"}],
            ("GET", "/messages/user/u1"): _messages_newest_first(),
        }
    )

    snapshot = await load_messaging_snapshot(transport, "u1")

    assert snapshot.source == TransitionSource.SNAPSHOT
    assert [c.id for c in snapshot.owners] == ["c1", "c2"]
    by_conversation: dict[str, list[str]] = {}
    for entity in snapshot.entities:
        assert isinstance(entity, Message)
        by_conversation.setdefault(entity.conversation_id, []).append(entity.id)
    assert by_conversation == {"c1": ["m1", "m2", "m3"], "c2": ["m9"]}


@pytest.mark.asyncio
async def test_messaging_snapshot_skips_invalid_records() -> None:
    messages = _messages_newest_first()
    messages[0]["timestamp"] = "garbage"
    transport = FakeTransport(
        responses={
            ("GET", "/conversations/user/u1"): [{"id": "c1"}, {"participants": ["u1"]}],
            ("GET", "/messages/user/u1"): messages,
        }
    )

    snapshot = await load_messaging_snapshot(transport, "u1")

    assert [c.id for c in snapshot.owners] == ["c1"]
    assert "m3" not in {e.id for e in snapshot.entities}
    assert len(snapshot.entities) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "failure",
    [
        SmartCareTransportError("connection refused", endpoint="/messages/user/u1"),
        SmartCareApiError("HTTP 500", status_code=500, endpoint="/messages/user/u1"),
        {"unexpected": "shape"},
    ],
)
async def test_messaging_snapshot_fails_open(failure: object) -> None:
    transport = FakeTransport(
        responses={
            ("GET", "/conversations/user/u1"): [{"id": "c1"}],
            ("GET", "/messages/user/u1"): failure,
        }
    )

    snapshot = await load_messaging_snapshot(transport, "u1")

    assert snapshot.entities == ()
    assert snapshot.owners == ()


@pytest.mark.asyncio
async def test_notification_snapshot() -> None:
    transport = FakeTransport(
        responses={
            ("GET", "/notifications/user/u1"): [
                notification_payload("n1", user="u1"),
                notification_payload("n2", user="u1", read=True),
            ]
        }
    )

    snapshot = await load_notification_snapshot(transport, "u1")

    assert [n.id for n in snapshot.entities] == ["n1", "n2"]


@pytest.mark.asyncio
async def test_notification_snapshot_fails_open() -> None:
    transport = FakeTransport(
        responses={("GET", "/notifications/user/u1"): SmartCareTransportError("timeout")}
    )
    snapshot = await load_notification_snapshot(transport, "u1")
    assert snapshot.entities == ()


@pytest.mark.asyncio
async def test_conversation_page_filters_and_sorts() -> None:
    transport = FakeTransport(responses={("GET", "/messages/user/u1"): _messages_newest_first()})

    page = await load_conversation_page(transport, "u1", "c1")

    assert page is not None
    assert page.owner_key == "c1"
    assert [m.id for m in page.entities] == ["m1", "m2", "m3"]


@pytest.mark.asyncio
async def test_conversation_page_failure_returns_none() -> None:
    transport = FakeTransport(responses={("GET", "/messages/user/u1"): SmartCareTransportError("down")})
    assert await load_conversation_page(transport, "u1", "c1") is None


@pytest.mark.asyncio
async def test_identity_is_quoted_in_paths() -> None:
    transport = FakeTransport()
    await load_notification_snapshot(transport, "a/b c")
    assert transport.calls[0][1] == "/notifications/user/a%2Fb%20c"
