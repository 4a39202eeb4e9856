from __future__ import annotations

# pylint: disable=redefined-outer-name

import asyncio
from typing import Any

import pytest
from fakes import FakeTransport, message_payload, notification_payload, sse_event, wait_for

from pysmartcare import ChannelState, SmartCareClient, SmartCareConfig, SmartCareError
from pysmartcare.exceptions import SmartCareTransportError
from pysmartcare.state.events import AppendNew, Transition, TransitionSource

ME = "u1"
DOCTOR = "u2"


@pytest.fixture
def config() -> SmartCareConfig:
    return SmartCareConfig(base_url="http://smartcare.test/api", reconnect_delay=0.05)


@pytest.fixture
def pushes() -> dict[str, asyncio.Queue[str | None]]:
    return {"messages": asyncio.Queue(), "notifications": asyncio.Queue()}


@pytest.fixture
def backend(pushes: dict[str, asyncio.Queue[str | None]]) -> FakeTransport:
    def created_message(body: dict[str, Any]) -> dict[str, Any]:
        return message_payload(
            "M3",
            sender=body["senderId"],
            receiver=body["receiverId"],
            conversation="C1",
            timestamp="2026-03-01T10:10:00Z",
            content=body["content"],
        )

    return FakeTransport(
        responses={
            ("GET", f"/conversations/user/{ME}"): [
                {
                    "id": "C1",
                    "participants": [ME, DOCTOR],
                    "participantDetails": [{"id": DOCTOR, "name": "Dr. Grey", "role": "Doctor"}],
                    "lastMessage": "How are you feeling?",
                    "lastMessageTime": "2026-03-01T10:00:00Z",
                    "unreadCount": 1,
                }
            ],
            ("GET", f"/messages/user/{ME}"): [
                message_payload(
                    "M1",
                    sender=DOCTOR,
                    receiver=ME,
                    conversation="C1",
                    timestamp="2026-03-01T10:00:00Z",
                    content="How are you feeling?",
                )
            ],
            ("GET", f"/notifications/user/{ME}"): [notification_payload("N1", user=ME)],
            ("POST", "/messages"): created_message,
        },
        streams={
            f"/messages/connect/{ME}": [[pushes["messages"]]],
            f"/notifications/connect/{ME}": [[pushes["notifications"]]],
        },
    )


@pytest.fixture
def client_transport(monkeypatch: pytest.MonkeyPatch, backend: FakeTransport) -> FakeTransport:
    monkeypatch.setattr("pysmartcare.client.HttpTransport", lambda _config, _http: backend)
    return backend


def _push(queue: asyncio.Queue[str | None], payload: dict[str, Any]) -> None:
    for line in sse_event(payload):
        queue.put_nowait(line)


def _streaming(session: Any) -> bool:
    return all(state == ChannelState.STREAMING for state in session.channel_states.values())


# ---------------------------------------------------------------------------
# End-to-end tests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_snapshot_push_read_and_send(
    config: SmartCareConfig,
    client_transport: FakeTransport,
    pushes: dict[str, asyncio.Queue[str | None]],
) -> None:
    async with SmartCareClient(config) as client:
        session = await client.open_session(ME)
        assert session.unread_messages == 1
        assert session.unread_notifications == 1
        await wait_for(lambda: _streaming(session))
        assert set(session.channel_states) == {"messages", "notifications"}

        seen: list[Transition] = []
        session.add_listener(seen.append)

        _push(
            pushes["messages"],
            message_payload(
                "M2", sender=DOCTOR, receiver=ME, conversation="C1", timestamp="2026-03-01T10:05:00Z", content="Any pain?"
            ),
        )
        await wait_for(lambda: session.unread_messages == 2)
        conversation = session.conversation("C1")
        assert conversation is not None
        assert conversation.unread_count == 2
        assert conversation.last_message == "Any pain?"

        assert await session.mark_conversation_read("C1") is True
        assert session.unread_messages == 0

        sent = await session.send_message(DOCTOR, "No, thanks")
        assert sent is not None and sent.id == "M3"
        assert session.unread_messages == 0
        assert [m.id for m in session.messages("C1")] == ["M1", "M2", "M3"]

        # The backend also pushes the sender's own message back.
        _push(pushes["messages"], sent.raw)
        await wait_for(
            lambda: any(
                isinstance(t, AppendNew) and t.source == TransitionSource.STREAM and t.entity.id == "M3" for t in seen
            )
        )
        assert [m.id for m in session.messages("C1")] == ["M1", "M2", "M3"]

        _push(pushes["notifications"], {"id": "N2", "title": "Lab", "message": "Results ready", "type": "success"})
        await wait_for(lambda: session.unread_notifications == 2)
        assert session.notifications()[0].id == "N2"

        assert await session.mark_all_notifications_read() is True
        assert session.unread_notifications == 0

    assert session.closed is True
    assert client_transport.active_streams == 0
    assert client_transport.max_concurrent_streams == 2


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_stream_drop_reconnects_and_keeps_delivering(
    config: SmartCareConfig,
    client_transport: FakeTransport,
    pushes: dict[str, asyncio.Queue[str | None]],
) -> None:
    async with SmartCareClient(config) as client:
        session = await client.open_session(ME)
        await wait_for(lambda: _streaming(session))

        # Server closes the message stream; the next connection stays silent.
        pushes["messages"].put_nowait(None)
        await wait_for(lambda: client_transport.stream_opens[f"/messages/connect/{ME}"] == 2)
        await wait_for(lambda: _streaming(session))

        assert session.unread_messages == 1


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_switching_identity_closes_previous_session(
    config: SmartCareConfig,
    client_transport: FakeTransport,
) -> None:
    async with SmartCareClient(config) as client:
        first = await client.open_session(ME)
        assert await client.open_session(ME) is first

        second = await client.open_session("u9")

        assert first.closed is True
        assert first.conversations() == []
        assert client.active_session is second
        assert second.unread_messages == 0
        await wait_for(lambda: client_transport.stream_opens.get("/messages/connect/u9", 0) == 1)
        await wait_for(lambda: client_transport.active_streams == 2)

        await client.close_session()
        assert client.active_session is None
        assert client_transport.active_streams == 0


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_snapshot_failure_starts_empty_but_streams(
    config: SmartCareConfig,
    client_transport: FakeTransport,
    pushes: dict[str, asyncio.Queue[str | None]],
) -> None:
    client_transport.responses[("GET", f"/messages/user/{ME}")] = SmartCareTransportError("down")

    async with SmartCareClient(config) as client:
        session = await client.open_session(ME)
        assert session.conversations() == []
        assert session.unread_notifications == 1

        await wait_for(lambda: _streaming(session))
        _push(
            pushes["messages"],
            message_payload("M5", sender=DOCTOR, receiver=ME, conversation="C7", timestamp="2026-03-02T08:00:00Z"),
        )
        await wait_for(lambda: session.unread_messages == 1)
        assert [c.id for c in session.conversations()] == ["C7"]


@pytest.mark.asyncio
@pytest.mark.e2e
async def test_e2e_live_updates_can_be_disabled(client_transport: FakeTransport) -> None:
    config = SmartCareConfig(live_updates_enabled=False, notifications_enabled=False)

    async with SmartCareClient(config) as client:
        session = await client.open_session(ME)
        assert session.unread_messages == 1
        assert session.notifications() == []
        assert session.channel_states == {}

    assert client_transport.stream_opens == {}
    assert client_transport.calls_to("GET", f"/notifications/user/{ME}") == 0


@pytest.mark.asyncio
async def test_client_requires_context_manager(config: SmartCareConfig) -> None:
    client = SmartCareClient(config)
    with pytest.raises(SmartCareError):
        await client.open_session(ME)
