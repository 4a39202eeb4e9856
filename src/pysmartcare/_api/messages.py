"""Conversation and message endpoints.

Endpoints:
  - GET  /conversations/user/{identity}
  - GET  /messages/user/{identity}
  - POST /messages
  - PUT  /messages/{conversationId}/read[/{messageId}]
"""

from __future__ import annotations

import logging

from pysmartcare._api._common import parse_record, parse_records, path
from pysmartcare._constants import (
    CONVERSATIONS_BY_USER,
    MESSAGE_READ,
    MESSAGES,
    MESSAGES_BY_USER,
    MESSAGES_READ,
)
from pysmartcare._transport import Transport
from pysmartcare.models.message import Conversation, CreateMessageRequest, Message

_logger = logging.getLogger(__name__)


async def fetch_conversations(transport: Transport, identity: str) -> list[Conversation]:
    """Fetch every conversation the user takes part in."""
    endpoint = path(CONVERSATIONS_BY_USER, identity=identity)
    payload = await transport.request_json("GET", endpoint)
    return parse_records(Conversation, payload, endpoint=endpoint)


async def fetch_messages(transport: Transport, identity: str) -> list[Message]:
    """Fetch the user's messages as one flat list (newest first on the wire)."""
    endpoint = path(MESSAGES_BY_USER, identity=identity)
    payload = await transport.request_json("GET", endpoint)
    return parse_records(Message, payload, endpoint=endpoint)


async def create_message(transport: Transport, request: CreateMessageRequest) -> Message:
    """Send a message; the backend mints id, conversation and timestamp."""
    payload = await transport.request_json("POST", MESSAGES, body=request.to_payload())
    message = parse_record(Message, payload, endpoint=MESSAGES)
    _logger.debug("Message %s created in conversation %s", message.id, message.conversation_id)
    return message


async def mark_messages_read(
    transport: Transport,
    conversation_id: str,
    message_id: str | None = None,
) -> None:
    """Mark one message, or every message of a conversation, as read."""
    if message_id:
        endpoint = path(MESSAGE_READ, conversation_id=conversation_id, message_id=message_id)
    else:
        endpoint = path(MESSAGES_READ, conversation_id=conversation_id)
    await transport.request_json("PUT", endpoint)
