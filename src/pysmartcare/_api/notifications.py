"""Notification endpoints.

Endpoints:
  - GET    /notifications/user/{identity}
  - POST   /notifications
  - PUT    /notifications/{id}/read
  - PUT    /notifications/mark-all-read
  - DELETE /notifications/{id}
"""

from __future__ import annotations

from pysmartcare._api._common import parse_record, parse_records, path
from pysmartcare._constants import (
    NOTIFICATION,
    NOTIFICATION_READ,
    NOTIFICATIONS,
    NOTIFICATIONS_BY_USER,
    NOTIFICATIONS_READ_ALL,
)
from pysmartcare._transport import Transport
from pysmartcare.models.notification import CreateNotificationRequest, Notification


async def fetch_notifications(transport: Transport, identity: str) -> list[Notification]:
    endpoint = path(NOTIFICATIONS_BY_USER, identity=identity)
    payload = await transport.request_json("GET", endpoint)
    return parse_records(Notification, payload, endpoint=endpoint)


async def create_notification(transport: Transport, request: CreateNotificationRequest) -> Notification:
    payload = await transport.request_json("POST", NOTIFICATIONS, body=request.to_payload())
    return parse_record(Notification, payload, endpoint=NOTIFICATIONS)


async def mark_notification_read(transport: Transport, notification_id: str) -> None:
    await transport.request_json("PUT", path(NOTIFICATION_READ, notification_id=notification_id))


async def mark_all_notifications_read(transport: Transport) -> None:
    await transport.request_json("PUT", NOTIFICATIONS_READ_ALL)


async def delete_notification(transport: Transport, notification_id: str) -> None:
    await transport.request_json("DELETE", path(NOTIFICATION, notification_id=notification_id))
