"""Live update channel over Server-Sent Events.

One asyncio task owns the connection of a channel. Decoded entities are
put on an :class:`asyncio.Queue` that the owning session drains. When the
stream drops, the task waits for the reconnect delay and opens it again
for the same identity until the channel is closed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from enum import StrEnum

from pysmartcare._api._common import path
from pysmartcare._constants import MESSAGES_CONNECT, NOTIFICATIONS_CONNECT
from pysmartcare._redact import describe_payload
from pysmartcare._transport import Transport
from pysmartcare.config import SmartCareConfig
from pysmartcare.exceptions import MalformedPayloadError, SmartCareStreamError
from pysmartcare.ingestion.stream import SseDecoder, parse_message_event, parse_notification_event
from pysmartcare.state.events import Entity

_logger = logging.getLogger(__name__)

EventParser = Callable[[str, str], Entity]
"""Turns one event's data into an entity; receives ``(data, identity)``."""


class ChannelState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    ERRORING = "erroring"


class LiveUpdateChannel:
    """A self-healing push connection for one identity at a time."""

    def __init__(
        self,
        transport: Transport,
        config: SmartCareConfig,
        *,
        name: str,
        endpoint_template: str,
        parser: EventParser,
    ) -> None:
        self._transport = transport
        self._config = config
        self._name = name
        self._endpoint_template = endpoint_template
        self._parser = parser
        self._queue: asyncio.Queue[Entity] = asyncio.Queue()
        self._state = ChannelState.DISCONNECTED
        self._identity: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._failures = 0
        self.connection_attempts = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def queue(self) -> asyncio.Queue[Entity]:
        """Entities decoded from the stream, in arrival order."""
        return self._queue

    @property
    def is_open(self) -> bool:
        return self._task is not None and not self._task.done()

    async def open(self, identity: str) -> None:
        """Start streaming for *identity*.

        A connection held for another identity is closed first; reopening
        for the same identity is a no-op.
        """
        if self.is_open:
            if identity == self._identity:
                return
            await self.close()

        self._identity = identity
        self._failures = 0
        self._task = asyncio.create_task(
            self._run(identity),
            name=f"pysmartcare-{self._name}-{identity}",
        )

    async def close(self) -> None:
        """Stop streaming; a pending reconnect is cancelled with the task."""
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        while not self._queue.empty():
            self._queue.get_nowait()
        if self._identity is not None:
            _logger.info("%s channel for %s closed", self._name, self._identity)
        self._identity = None
        self._set_state(ChannelState.DISCONNECTED)

    def _set_state(self, state: ChannelState) -> None:
        if state != self._state:
            _logger.debug("%s channel: %s -> %s", self._name, self._state, state)
            self._state = state

    def _next_delay(self) -> float:
        exponent = max(self._failures - 1, 0)
        delay = self._config.reconnect_delay * (self._config.reconnect_backoff_factor**exponent)
        return min(delay, self._config.reconnect_max_delay)

    async def _run(self, identity: str) -> None:
        endpoint = path(self._endpoint_template, identity=identity)
        while True:
            self._set_state(ChannelState.CONNECTING)
            self.connection_attempts += 1
            try:
                await self._stream_once(identity, endpoint)
                _logger.info("%s stream for %s ended by the server", self._name, identity)
            except SmartCareStreamError as exc:
                _logger.info("%s stream for %s dropped: %s", self._name, identity, exc)
            except Exception:
                _logger.warning("%s stream for %s failed unexpectedly", self._name, identity, exc_info=True)

            self._failures += 1
            self._set_state(ChannelState.ERRORING)
            delay = self._next_delay()
            _logger.info("Reconnecting %s stream for %s in %.1fs", self._name, identity, delay)
            await asyncio.sleep(delay)

    async def _stream_once(self, identity: str, endpoint: str) -> None:
        decoder = SseDecoder()
        async with self._transport.stream_lines(endpoint) as lines:
            self._set_state(ChannelState.STREAMING)
            self._failures = 0
            _logger.info("%s stream connected for %s", self._name, identity)
            async for line in lines:
                data = decoder.feed(line)
                if data is None:
                    continue
                try:
                    entity = self._parser(data, identity)
                except MalformedPayloadError as exc:
                    _logger.warning(
                        "Dropping malformed %s event: %s %s",
                        self._name,
                        exc,
                        describe_payload(exc.payload),
                    )
                    continue
                self._queue.put_nowait(entity)


def _parse_message(data: str, identity: str) -> Entity:
    return parse_message_event(data)


def _parse_notification(data: str, identity: str) -> Entity:
    return parse_notification_event(data, identity=identity)


def message_channel(transport: Transport, config: SmartCareConfig) -> LiveUpdateChannel:
    return LiveUpdateChannel(
        transport,
        config,
        name="messages",
        endpoint_template=MESSAGES_CONNECT,
        parser=_parse_message,
    )


def notification_channel(transport: Transport, config: SmartCareConfig) -> LiveUpdateChannel:
    return LiveUpdateChannel(
        transport,
        config,
        name="notifications",
        endpoint_template=NOTIFICATIONS_CONNECT,
        parser=_parse_notification,
    )
