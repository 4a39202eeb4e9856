from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from fakes import message_payload, notification_payload

from pysmartcare.exceptions import MalformedPayloadError
from pysmartcare.ingestion.stream import SseDecoder, parse_message_event, parse_notification_event
from pysmartcare.models.notification import NotificationKind


def _feed_all(decoder: SseDecoder, lines: list[str]) -> list[str]:
    events = []
    for line in lines:
        data = decoder.feed(line)
        if data is not None:
            events.append(data)
    return events


def test_decoder_ignores_heartbeats() -> None:
    decoder = SseDecoder()
    lines = [": heartbeat", "", ": heartbeat", "", 'data: {"id": "1"}', "", ": heartbeat", ""]
    assert _feed_all(decoder, lines) == ['{"id": "1"}']


def test_decoder_joins_multiline_data() -> None:
    decoder = SseDecoder()
    assert _feed_all(decoder, ["data: first", "data:second", ""]) == ["first\nsecond"]


def test_decoder_skips_other_fields() -> None:
    decoder = SseDecoder()
    assert _feed_all(decoder, ["id: 42", "event: message", "retry: 1000", "data: x", ""]) == ["x"]


def test_parse_message_event() -> None:
    data = json.dumps(message_payload("m1", sender="u2", receiver="u1", conversation="c1", timestamp="2026-03-01T10:00:00"))
    message = parse_message_event(data)
    assert message.id == "m1"
    assert message.timestamp == datetime(2026, 3, 1, 10, tzinfo=UTC)


@pytest.mark.parametrize("data", ["not json", "[1, 2]", '{"id": "m1"}', '"text"'])
def test_parse_message_event_rejects_malformed(data: str) -> None:
    with pytest.raises(MalformedPayloadError) as excinfo:
        parse_message_event(data)
    assert excinfo.value.payload == data


def test_parse_notification_event_fills_defaults() -> None:
    observed = datetime(2026, 3, 1, 12, tzinfo=UTC)
    payload = {"id": "n1", "title": "Queue", "message": "You are next", "type": "warning"}

    notification = parse_notification_event(json.dumps(payload), identity="u1", observed_at=observed)

    assert notification.user_id == "u1"
    assert notification.created_at == observed
    assert notification.kind == NotificationKind.WARNING
    assert notification.read is False


def test_parse_notification_event_keeps_server_values() -> None:
    data = json.dumps(notification_payload("n1", user="u7", created_at="2026-02-01T08:00:00Z"))
    notification = parse_notification_event(data, identity="u1")
    assert notification.user_id == "u7"
    assert notification.created_at == datetime(2026, 2, 1, 8, tzinfo=UTC)


def test_parse_notification_event_without_id_is_malformed() -> None:
    with pytest.raises(MalformedPayloadError):
        parse_notification_event('{"title": "No id"}', identity="u1")
