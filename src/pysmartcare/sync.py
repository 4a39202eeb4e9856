"""Identity-scoped synchronization session.

A :class:`SyncSession` owns the message and notification stores of one
signed-in user, the live update channels feeding them and the consumer
tasks draining those channels. Everything it holds is discarded on
:meth:`SyncSession.close`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Iterable
from typing import Any

from pysmartcare._channel import ChannelState, LiveUpdateChannel, message_channel, notification_channel
from pysmartcare._client import mutations as _mutations
from pysmartcare._transport import Transport
from pysmartcare.config import SmartCareConfig
from pysmartcare.exceptions import SmartCareError
from pysmartcare.ingestion.snapshot import (
    load_conversation_page,
    load_messaging_snapshot,
    load_notification_snapshot,
)
from pysmartcare.models.message import Conversation, Message
from pysmartcare.models.notification import Notification, NotificationKind
from pysmartcare.state.events import AppendNew, ReplaceAll, Transition, TransitionSource
from pysmartcare.state.store import EntityStore, MessageStore, NotificationStore

_logger = logging.getLogger(__name__)


class SyncSession:
    """Live, read-only view of one user's conversations and notifications.

    Usage::

        async with SyncSession("user-1", transport=transport) as session:
            print(session.unread_messages)
            await session.send_message("user-2", "Hello")

    Reads are synchronous and never touch the network. Intent methods
    perform the remote call and fold the server's answer into the view.
    """

    def __init__(
        self,
        identity: str,
        *,
        transport: Transport,
        config: SmartCareConfig | None = None,
    ) -> None:
        identity = identity.strip()
        if not identity:
            raise ValueError("identity must be non-empty")
        self._identity = identity
        self._transport = transport
        self._config = config or SmartCareConfig()
        self._messages = MessageStore(identity)
        self._notifications = NotificationStore(identity)
        self._channels: list[tuple[LiveUpdateChannel, EntityStore[Any]]] = []
        self._pumps: list[asyncio.Task[None]] = []
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SyncSession:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def channel_states(self) -> dict[str, ChannelState]:
        return {channel.name: channel.state for channel, _ in self._channels}

    async def start(self) -> None:
        """Load the snapshot, then open the live update channels."""
        if self._started:
            return
        if self._closed:
            raise SmartCareError("Session is closed")
        self._started = True

        loads: list[tuple[EntityStore[Any], Any]] = []
        if self._config.messages_enabled:
            loads.append((self._messages, load_messaging_snapshot(self._transport, self._identity)))
        if self._config.notifications_enabled:
            loads.append((self._notifications, load_notification_snapshot(self._transport, self._identity)))

        snapshots = await asyncio.gather(*(load for _, load in loads))
        if self._closed:
            return
        for (store, _), snapshot in zip(loads, snapshots, strict=True):
            store.apply(snapshot)
        _logger.info(
            "Session for %s loaded: %d conversations, %d notifications",
            self._identity,
            len(self._messages.conversations()),
            len(self._notifications.notifications()),
        )

        if not self._config.live_updates_enabled:
            return
        if self._config.messages_enabled:
            self._channels.append((message_channel(self._transport, self._config), self._messages))
        if self._config.notifications_enabled:
            self._channels.append((notification_channel(self._transport, self._config), self._notifications))
        for channel, store in self._channels:
            await channel.open(self._identity)
            self._pumps.append(
                asyncio.create_task(
                    self._pump(channel, store),
                    name=f"pysmartcare-{channel.name}-consumer",
                )
            )

    async def close(self) -> None:
        """Tear down channels and consumers and clear all state."""
        if self._closed:
            return
        self._closed = True

        for channel, _ in self._channels:
            await channel.close()
        for task in self._pumps:
            task.cancel()
        for task in self._pumps:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._pumps.clear()
        self._channels.clear()

        self._messages.apply(ReplaceAll(source=TransitionSource.LOCAL))
        self._notifications.apply(ReplaceAll(source=TransitionSource.LOCAL))
        _logger.info("Session for %s closed", self._identity)

    async def _pump(self, channel: LiveUpdateChannel, store: EntityStore[Any]) -> None:
        queue = channel.queue
        while True:
            entity = await queue.get()
            try:
                store.apply(AppendNew(entity=entity, source=TransitionSource.STREAM))
            except Exception:
                _logger.warning("Applying %s event %s failed", channel.name, entity.id, exc_info=True)

    def _require_transport(self) -> Transport:
        if self._closed:
            raise SmartCareError("Session is closed")
        return self._transport

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def conversations(self) -> list[Conversation]:
        """All conversations, most recent activity first."""
        return self._messages.conversations()

    def conversation(self, conversation_id: str) -> Conversation | None:
        return self._messages.conversation(conversation_id)

    def messages(self, conversation_id: str) -> list[Message]:
        """Messages of one conversation, oldest first."""
        return self._messages.messages(conversation_id)

    def notifications(self) -> list[Notification]:
        """All notifications, newest first."""
        return self._notifications.notifications()

    @property
    def unread_messages(self) -> int:
        return self._messages.unread_count

    @property
    def unread_notifications(self) -> int:
        return self._notifications.unread_count

    def add_listener(self, listener: Callable[[Transition], None]) -> Callable[[], None]:
        """Call *listener* after every applied transition.

        Returns a callable that unregisters it.
        """
        removers = [self._messages.add_listener(listener), self._notifications.add_listener(listener)]

        def _remove() -> None:
            for remover in removers:
                remover()

        return _remove

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------

    async def send_message(self, receiver_id: str, content: str) -> Message | None:
        """Send a message; returns the server's record or ``None`` on failure.

        Raises ``ValueError`` for empty content without calling the backend.
        """
        return await _mutations.send_message(self, receiver_id, content)

    async def mark_conversation_read(self, conversation_id: str, message_id: str | None = None) -> bool:
        return await _mutations.mark_conversation_read(self, conversation_id, message_id)

    async def create_notification(
        self,
        title: str,
        message: str,
        kind: NotificationKind = NotificationKind.INFO,
        related_id: str | None = None,
    ) -> Notification | None:
        return await _mutations.create_notification(self, title, message, kind, related_id)

    async def mark_notification_read(self, notification_id: str) -> bool:
        return await _mutations.mark_notification_read(self, notification_id)

    async def mark_all_notifications_read(self) -> bool:
        return await _mutations.mark_all_read(self)

    async def remove_notification(self, notification_id: str) -> bool:
        return await _mutations.remove_notification(self, notification_id)

    def start_conversation(self, participant_ids: Iterable[str]) -> str:
        """Create an empty local conversation; returns its generated id."""
        return _mutations.start_conversation(self, participant_ids)

    async def refresh_conversation(self, conversation_id: str) -> bool:
        """Reload one conversation's messages from the backend."""
        page = await load_conversation_page(self._require_transport(), self._identity, conversation_id)
        if page is None or self._closed:
            return False
        self._messages.apply(page)
        return True
