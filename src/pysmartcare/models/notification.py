"""Notification models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pysmartcare.ingestion.normalize import safe_str
from pysmartcare.models._base import ApiTimestamp, EntityId, SmartCareModel


class NotificationKind(StrEnum):
    """Severity tag of a notification.

    Values without a mapped member resolve to ``UNKNOWN`` instead of
    raising ``ValueError``.
    """

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> NotificationKind:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return cls.UNKNOWN


class Notification(SmartCareModel):
    """A notification addressed to one user.

    ``message`` is the notification body and ``kind`` its severity tag
    (``type`` on the wire).
    """

    id: EntityId
    title: str = ""
    message: str = ""
    kind: NotificationKind = Field(default=NotificationKind.INFO, alias="type")
    created_at: ApiTimestamp
    read: bool = False
    user_id: EntityId
    related_id: str | None = None

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value: Any) -> Any:
        if isinstance(value, str):
            return NotificationKind(value)
        return value

    @field_validator("related_id", mode="before")
    @classmethod
    def _normalize_related_id(cls, value: Any) -> str | None:
        return safe_str(value)


class CreateNotificationRequest(BaseModel):
    """Body of ``POST /notifications``."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=1000)
    kind: NotificationKind = Field(default=NotificationKind.INFO, alias="type")
    user_id: str = Field(min_length=1)
    related_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(by_alias=True, mode="json")
        if payload.get("relatedId") is None:
            payload.pop("relatedId", None)
        return payload
