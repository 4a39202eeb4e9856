"""Data models for SmartCare API records."""

from pysmartcare.models._base import ApiTimestamp, EntityId, OptionalApiTimestamp, SmartCareModel
from pysmartcare.models.message import (
    UNKNOWN_NAME,
    Conversation,
    CreateMessageRequest,
    Message,
    ParticipantDetail,
    newest_first,
)
from pysmartcare.models.notification import CreateNotificationRequest, Notification, NotificationKind

__all__ = [
    "ApiTimestamp",
    "Conversation",
    "CreateMessageRequest",
    "CreateNotificationRequest",
    "EntityId",
    "Message",
    "Notification",
    "NotificationKind",
    "OptionalApiTimestamp",
    "ParticipantDetail",
    "SmartCareModel",
    "UNKNOWN_NAME",
    "newest_first",
]
