"""Normalized state transitions.

Snapshot loads, pushed events and mutation results are all converted into
these transitions. Only the state/store layer is allowed to apply them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from pysmartcare.models.message import Conversation, Message
from pysmartcare.models.notification import Notification

Entity = Message | Notification


def _non_empty_key(value: str) -> str:
    key = value.strip()
    if not key:
        raise ValueError("owner_key must be non-empty")
    return key


OwnerKey = Annotated[str, AfterValidator(_non_empty_key)]


class TransitionSource(StrEnum):
    SNAPSHOT = "snapshot"
    STREAM = "stream"
    MUTATION = "mutation"
    LOCAL = "local"


class _BaseTransition(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: TransitionSource = TransitionSource.LOCAL
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ReplaceAll(_BaseTransition):
    """Authoritative snapshot; discards everything known before.

    For messaging ``owners`` carries the conversation records and
    ``entities`` the flat message list.
    """

    kind: Literal["replace_all"] = "replace_all"
    entities: tuple[Entity, ...] = ()
    owners: tuple[Conversation, ...] = ()


class MergePage(_BaseTransition):
    """Replace the sequence of a single owner, leaving the others alone."""

    kind: Literal["merge_page"] = "merge_page"
    owner_key: OwnerKey
    entities: tuple[Entity, ...] = ()


class AppendNew(_BaseTransition):
    """Add one entity, or update it in place when its id is already known."""

    kind: Literal["append_new"] = "append_new"
    entity: Entity


class MarkRead(_BaseTransition):
    """Flip one entity, or every entity of the owner when ``entity_id`` is None."""

    kind: Literal["mark_read"] = "mark_read"
    owner_key: OwnerKey
    entity_id: str | None = None


class Remove(_BaseTransition):
    kind: Literal["remove"] = "remove"
    owner_key: OwnerKey
    entity_id: str


class AddOwner(_BaseTransition):
    """Register a conversation record that has no messages yet."""

    kind: Literal["add_owner"] = "add_owner"
    owner: Conversation


Transition = Annotated[
    ReplaceAll | MergePage | AppendNew | MarkRead | Remove | AddOwner,
    Field(discriminator="kind"),
]

