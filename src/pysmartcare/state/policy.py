"""Deterministic merge policy.

This module contains *no* payload parsing. The ingestion/Pydantic boundary
is responsible for producing validated entities with aware timestamps.
"""

from __future__ import annotations

from datetime import datetime
from typing import TypeVar

from pysmartcare.models.message import Message
from pysmartcare.models.notification import Notification

E = TypeVar("E", Message, Notification)


def message_is_unread_for(message: Message, identity: str) -> bool:
    """Whether *message* counts towards *identity*'s unread badge.

    Messages the user sent to themselves never count.
    """
    return not message.read and message.receiver_id == identity and not message.is_self_addressed


def notification_is_unread_for(notification: Notification, identity: str) -> bool:
    return not notification.read and notification.user_id == identity


def keep_read_flag(existing: E | None, incoming: E) -> E:
    """Return *incoming*, but never move a known read flag back to unread."""
    if existing is not None and existing.read and not incoming.read:
        return incoming.model_copy(update={"read": True})
    return incoming


def is_not_older(candidate: datetime, current: datetime | None) -> bool:
    """Whether *candidate* may replace a preview stamped *current*."""
    if current is None:
        return True
    return candidate >= current
