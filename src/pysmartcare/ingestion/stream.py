"""Push stream ingestion helpers.

This module turns the text lines of a Server-Sent Events stream into
validated entities. The backend sends ``: heartbeat`` comments every
second and one ``data: {json}`` line per event.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from pysmartcare.exceptions import MalformedPayloadError
from pysmartcare.models.message import Message
from pysmartcare.models.notification import Notification


class SseDecoder:
    """Incremental Server-Sent Events decoder.

    Feed it one line at a time (without the trailing newline); it returns
    the event data once the blank line terminating an event is seen.
    Multiple ``data:`` lines of one event are joined with newlines.
    """

    def __init__(self) -> None:
        self._data: list[str] = []

    def feed(self, line: str) -> str | None:
        if not line:
            if not self._data:
                return None
            data = "\n".join(self._data)
            self._data = []
            return data

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        # "id", "event" and "retry" carry nothing this client uses.
        return None


def _decode(data: str) -> dict[str, Any]:
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as exc:
        raise MalformedPayloadError(f"Event is not JSON: {exc.msg}", payload=data) from exc
    if not isinstance(payload, dict):
        raise MalformedPayloadError(
            f"Event is a JSON {type(payload).__name__}, expected an object",
            payload=data,
        )
    return payload


def parse_message_event(data: str) -> Message:
    """Parse a pushed message event."""
    payload = _decode(data)
    try:
        return Message.model_validate(payload)
    except ValidationError as exc:
        raise MalformedPayloadError(
            f"Invalid message event: {exc.error_count()} error(s)",
            payload=data,
        ) from exc


def parse_notification_event(
    data: str,
    *,
    identity: str,
    observed_at: datetime | None = None,
) -> Notification:
    """Parse a pushed notification event.

    Pushed notifications may omit ``createdAt`` and ``userId``; they
    default to the time the event was observed and to the connected
    identity. An event without an id is malformed.
    """
    payload = _decode(data)
    if payload.get("createdAt") in (None, ""):
        payload["createdAt"] = observed_at or datetime.now(UTC)
    if payload.get("userId") in (None, ""):
        payload["userId"] = identity
    try:
        return Notification.model_validate(payload)
    except ValidationError as exc:
        raise MalformedPayloadError(
            f"Invalid notification event: {exc.error_count()} error(s)",
            payload=data,
        ) from exc
