"""Mutation gateway for :class:`pysmartcare.sync.SyncSession`.

Every operation performs the remote call first and folds the server's
answer into the stores only when it succeeds. Failures are logged and
leave local state untouched; none of them is raised to the caller.
Invalid arguments are the exception: empty message content raises
``ValueError``, and a notification title or body that is empty or too
long raises pydantic's ``ValidationError``. Both happen before any request.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import TYPE_CHECKING

from pysmartcare._api.messages import create_message, mark_messages_read
from pysmartcare._api.notifications import (
    create_notification as create_notification_api,
)
from pysmartcare._api.notifications import (
    delete_notification,
    mark_all_notifications_read,
)
from pysmartcare._api.notifications import (
    mark_notification_read as mark_notification_read_api,
)
from pysmartcare.exceptions import SmartCareError
from pysmartcare.models.message import Conversation, CreateMessageRequest, Message
from pysmartcare.models.notification import CreateNotificationRequest, Notification, NotificationKind
from pysmartcare.state.events import AddOwner, AppendNew, MarkRead, Remove, TransitionSource

if TYPE_CHECKING:
    from pysmartcare.sync import SyncSession

_logger = logging.getLogger(__name__)


async def send_message(session: SyncSession, receiver_id: str, content: str) -> Message | None:
    text = content.strip()
    if not text:
        raise ValueError("Message content must not be empty")
    request = CreateMessageRequest(sender_id=session.identity, receiver_id=receiver_id, content=text)

    transport = session._require_transport()
    try:
        message = await create_message(transport, request)
    except SmartCareError as exc:
        _logger.warning("Sending message to %s failed: %s", receiver_id, exc)
        return None

    if session.closed:
        _logger.debug("Session closed while sending message %s; not folding it", message.id)
        return message
    session._messages.apply(AppendNew(entity=message, source=TransitionSource.MUTATION))
    return message


async def mark_conversation_read(
    session: SyncSession,
    conversation_id: str,
    message_id: str | None = None,
) -> bool:
    transport = session._require_transport()
    try:
        await mark_messages_read(transport, conversation_id, message_id)
    except SmartCareError as exc:
        _logger.warning("Marking conversation %s read failed: %s", conversation_id, exc)
        return False

    if not session.closed:
        session._messages.apply(
            MarkRead(owner_key=conversation_id, entity_id=message_id, source=TransitionSource.MUTATION)
        )
    return True


async def create_notification(
    session: SyncSession,
    title: str,
    message: str,
    kind: NotificationKind = NotificationKind.INFO,
    related_id: str | None = None,
) -> Notification | None:
    request = CreateNotificationRequest(
        title=title,
        message=message,
        kind=kind,
        user_id=session.identity,
        related_id=related_id,
    )

    transport = session._require_transport()
    try:
        notification = await create_notification_api(transport, request)
    except SmartCareError as exc:
        _logger.warning("Creating notification failed: %s", exc)
        return None

    if not session.closed:
        session._notifications.apply(AppendNew(entity=notification, source=TransitionSource.MUTATION))
    return notification


async def mark_notification_read(session: SyncSession, notification_id: str) -> bool:
    transport = session._require_transport()
    try:
        await mark_notification_read_api(transport, notification_id)
    except SmartCareError as exc:
        _logger.warning("Marking notification %s read failed: %s", notification_id, exc)
        return False

    if not session.closed:
        session._notifications.apply(
            MarkRead(owner_key=session.identity, entity_id=notification_id, source=TransitionSource.MUTATION)
        )
    return True


async def mark_all_read(session: SyncSession) -> bool:
    transport = session._require_transport()
    try:
        await mark_all_notifications_read(transport)
    except SmartCareError as exc:
        _logger.warning("Marking all notifications read failed: %s", exc)
        return False

    if not session.closed:
        session._notifications.apply(MarkRead(owner_key=session.identity, source=TransitionSource.MUTATION))
    return True


async def remove_notification(session: SyncSession, notification_id: str) -> bool:
    transport = session._require_transport()
    try:
        await delete_notification(transport, notification_id)
    except SmartCareError as exc:
        _logger.warning("Removing notification %s failed: %s", notification_id, exc)
        return False

    if not session.closed:
        session._notifications.apply(
            Remove(owner_key=session.identity, entity_id=notification_id, source=TransitionSource.MUTATION)
        )
    return True


def start_conversation(session: SyncSession, participant_ids: Iterable[str]) -> str:
    """Register a new, empty conversation locally and return its id.

    The backend creates conversations implicitly with the first message,
    so this id only lives in the local store.
    """
    participants = [session.identity]
    for participant in participant_ids:
        participant = participant.strip()
        if participant and participant not in participants:
            participants.append(participant)

    conversation_id = f"conv-{uuid.uuid4().hex}"
    conversation = Conversation(id=conversation_id, participants=participants, raw={})
    session._messages.apply(AddOwner(owner=conversation, source=TransitionSource.LOCAL))
    return conversation_id
