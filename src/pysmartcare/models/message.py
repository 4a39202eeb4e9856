"""Conversation and message models."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from pysmartcare.ingestion.normalize import non_negative_or_zero, safe_str
from pysmartcare.models._base import ApiTimestamp, EntityId, OptionalApiTimestamp, SmartCareModel

#: Display placeholder the backend uses for users it cannot resolve.
UNKNOWN_NAME = "Unknown"


class ParticipantDetail(SmartCareModel):
    """Denormalized display metadata for one conversation participant."""

    id: EntityId
    name: str = UNKNOWN_NAME
    role: str = UNKNOWN_NAME


class Message(SmartCareModel):
    """A single chat message.

    The ``id``, ``conversation_id`` and ``timestamp`` are minted by the
    backend; the client never generates them.
    """

    id: EntityId
    sender_id: EntityId
    sender_name: str = UNKNOWN_NAME
    sender_role: str = UNKNOWN_NAME
    receiver_id: EntityId
    receiver_name: str = UNKNOWN_NAME
    receiver_role: str = UNKNOWN_NAME
    content: str = Field(min_length=1)
    timestamp: ApiTimestamp
    read: bool = False
    conversation_id: EntityId

    @field_validator("content")
    @classmethod
    def _content_non_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must be non-empty")
        return value

    @property
    def is_self_addressed(self) -> bool:
        """Whether the sender wrote to themselves."""
        return self.sender_id == self.receiver_id


class Conversation(SmartCareModel):
    """A conversation and its derived aggregates.

    ``unread_count`` is a cache; the state store keeps it equal to the
    number of unread messages addressed to the local identity.
    """

    id: EntityId
    participants: list[str] = Field(default_factory=list)
    participant_details: list[ParticipantDetail] = Field(default_factory=list)
    last_message: str = ""
    last_message_time: OptionalApiTimestamp = None
    unread_count: int = 0

    @field_validator("participants", mode="before")
    @classmethod
    def _dedupe_participants(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple, set)):
            return value
        seen: list[str] = []
        for item in value:
            text = safe_str(item)
            if text is not None and text not in seen:
                seen.append(text)
        return seen

    @field_validator("unread_count", mode="before")
    @classmethod
    def _non_negative(cls, value: Any) -> int:
        return non_negative_or_zero(value)

    def display_name_for(self, user_id: str) -> str:
        """Return the display name of a participant, if known."""
        for detail in self.participant_details:
            if detail.id == user_id:
                return detail.name
        return UNKNOWN_NAME

    def other_participants(self, identity: str) -> list[str]:
        return [p for p in self.participants if p != identity]

    @classmethod
    def from_message(cls, message: Message) -> Conversation:
        """Derive a conversation record from its first known message."""
        details = [ParticipantDetail(id=message.sender_id, name=message.sender_name, role=message.sender_role)]
        if not message.is_self_addressed:
            details.append(
                ParticipantDetail(id=message.receiver_id, name=message.receiver_name, role=message.receiver_role)
            )
        return cls(
            id=message.conversation_id,
            participants=[message.sender_id, message.receiver_id],
            participant_details=details,
            last_message=message.content,
            last_message_time=message.timestamp,
            unread_count=0,
            raw={},
        )


class CreateMessageRequest(BaseModel):
    """Body of ``POST /messages``."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    sender_id: str = Field(min_length=1)
    receiver_id: str = Field(min_length=1)
    content: str = Field(min_length=1, max_length=2000)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


def newest_first(conversations: list[Conversation]) -> list[Conversation]:
    """Order conversations by last activity, newest first; idle ones last."""
    active = [c for c in conversations if c.last_message_time is not None]
    idle = [c for c in conversations if c.last_message_time is None]
    active.sort(key=lambda c: c.last_message_time or datetime.min, reverse=True)
    return active + idle
