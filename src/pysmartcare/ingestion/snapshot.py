"""Snapshot loaders.

Fetch the full server-side state for one identity and convert it into
``ReplaceAll`` / ``MergePage`` transitions. Loaders fail open: any fetch
or parse error is logged and yields an empty transition.
"""

from __future__ import annotations

import asyncio
import logging

from pysmartcare._api.messages import fetch_conversations, fetch_messages
from pysmartcare._api.notifications import fetch_notifications
from pysmartcare._transport import Transport
from pysmartcare.exceptions import SmartCareError
from pysmartcare.ingestion.normalize import group_by_owner
from pysmartcare.models.message import Message
from pysmartcare.state.events import MergePage, ReplaceAll, TransitionSource

_logger = logging.getLogger(__name__)


def _oldest_first(messages: list[Message]) -> list[Message]:
    # The backend lists newest first; the store keeps conversations oldest first.
    grouped = group_by_owner(messages, lambda m: m.conversation_id)
    ordered: list[Message] = []
    for group in grouped.values():
        ordered.extend(sorted(group, key=lambda m: m.timestamp))
    return ordered


async def load_messaging_snapshot(transport: Transport, identity: str) -> ReplaceAll:
    """Load conversations and messages for *identity*."""
    try:
        conversations, messages = await asyncio.gather(
            fetch_conversations(transport, identity),
            fetch_messages(transport, identity),
        )
    except SmartCareError as exc:
        _logger.warning("Messaging snapshot for %s failed, starting empty: %s", identity, exc)
        return ReplaceAll(source=TransitionSource.SNAPSHOT)

    _logger.debug(
        "Messaging snapshot for %s: %d conversations, %d messages",
        identity,
        len(conversations),
        len(messages),
    )
    return ReplaceAll(
        entities=tuple(_oldest_first(messages)),
        owners=tuple(conversations),
        source=TransitionSource.SNAPSHOT,
    )


async def load_notification_snapshot(transport: Transport, identity: str) -> ReplaceAll:
    """Load notifications for *identity*."""
    try:
        notifications = await fetch_notifications(transport, identity)
    except SmartCareError as exc:
        _logger.warning("Notification snapshot for %s failed, starting empty: %s", identity, exc)
        return ReplaceAll(source=TransitionSource.SNAPSHOT)

    _logger.debug("Notification snapshot for %s: %d notifications", identity, len(notifications))
    return ReplaceAll(entities=tuple(notifications), source=TransitionSource.SNAPSHOT)


async def load_conversation_page(transport: Transport, identity: str, conversation_id: str) -> MergePage | None:
    """Reload the messages of a single conversation.

    Returns ``None`` when the fetch fails so the messages already held for
    the conversation are kept.
    """
    try:
        messages = await fetch_messages(transport, identity)
    except SmartCareError as exc:
        _logger.warning("Reloading conversation %s failed: %s", conversation_id, exc)
        return None

    page = [m for m in messages if m.conversation_id == conversation_id]
    return MergePage(
        owner_key=conversation_id,
        entities=tuple(sorted(page, key=lambda m: m.timestamp)),
        source=TransitionSource.SNAPSHOT,
    )
