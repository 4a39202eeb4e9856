"""Deterministic in-memory state stores.

These are the only components allowed to apply transitions. Given the same
sequence of transitions a store always ends up with the same contents, and
after every transition its unread counters equal the number of unread
entities it holds.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import ClassVar, Generic, TypeVar, assert_never

from pysmartcare.models.message import Conversation, Message, newest_first
from pysmartcare.models.notification import Notification
from pysmartcare.state.events import (
    AddOwner,
    AppendNew,
    Entity,
    MarkRead,
    MergePage,
    Remove,
    ReplaceAll,
    Transition,
)
from pysmartcare.state.policy import (
    is_not_older,
    keep_read_flag,
    message_is_unread_for,
    notification_is_unread_for,
)

_logger = logging.getLogger(__name__)

E = TypeVar("E", Message, Notification)

StoreListener = Callable[[Transition], None]


class EntityStore(Generic[E]):
    """Per-owner, id-deduplicated sequences of one entity type.

    Each owner maps entity ids to entities in arrival order, so a repeated
    id replaces the existing entry without moving it.
    """

    entity_type: ClassVar[type]

    def __init__(self, identity: str) -> None:
        self._identity = identity
        self._entities: dict[str, dict[str, E]] = {}
        self._unread = 0
        self._listeners: list[StoreListener] = []

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def unread_count(self) -> int:
        return self._unread

    def add_listener(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def apply(self, transition: Transition) -> None:
        """Apply one transition and notify listeners."""
        if isinstance(transition, ReplaceAll):
            self._replace_all(transition)
        elif isinstance(transition, MergePage):
            self._merge_page(transition)
        elif isinstance(transition, AppendNew):
            self._append_new(transition)
        elif isinstance(transition, MarkRead):
            self._mark_read(transition)
        elif isinstance(transition, Remove):
            self._remove(transition)
        elif isinstance(transition, AddOwner):
            self._add_owner(transition)
        else:
            assert_never(transition)

        self._unread = sum(1 for bucket in self._entities.values() for e in bucket.values() if self._is_unread(e))
        _logger.debug(
            "Applied %s (%s) for %s, unread=%d",
            transition.kind,
            transition.source,
            self._identity,
            self._unread,
        )
        for listener in list(self._listeners):
            try:
                listener(transition)
            except Exception:
                _logger.debug("State listener failed", exc_info=True)

    def entities(self, owner_key: str) -> list[E]:
        return list(self._entities.get(owner_key, {}).values())

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _owner_of(self, entity: E) -> str:
        raise NotImplementedError

    def _is_unread(self, entity: E) -> bool:
        raise NotImplementedError

    def _owners_changed(self, owner_keys: set[str]) -> None:
        """Recompute derived per-owner aggregates."""

    def _accepts(self, entity: Entity) -> bool:
        if isinstance(entity, self.entity_type):
            return True
        _logger.warning(
            "%s ignored a %s entity",
            type(self).__name__,
            type(entity).__name__,
        )
        return False

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _replace_all(self, transition: ReplaceAll) -> None:
        self._entities = {}
        for entity in transition.entities:
            if self._accepts(entity):
                bucket = self._entities.setdefault(self._owner_of(entity), {})
                bucket[entity.id] = keep_read_flag(bucket.get(entity.id), entity)
        self._owners_changed(set(self._entities))

    def _merge_page(self, transition: MergePage) -> None:
        previous = self._entities.get(transition.owner_key, {})
        page: dict[str, E] = {}
        for entity in transition.entities:
            if not self._accepts(entity):
                continue
            owner = self._owner_of(entity)
            if owner != transition.owner_key:
                _logger.warning(
                    "Dropping %s %s from page of %s: it belongs to %s",
                    type(entity).__name__,
                    entity.id,
                    transition.owner_key,
                    owner,
                )
                continue
            prior = page.get(entity.id) or previous.get(entity.id)
            page[entity.id] = keep_read_flag(prior, entity)
        self._entities[transition.owner_key] = page
        self._owners_changed({transition.owner_key})

    def _append_new(self, transition: AppendNew) -> None:
        entity = transition.entity
        if not self._accepts(entity):
            return
        owner = self._owner_of(entity)
        bucket = self._entities.setdefault(owner, {})
        bucket[entity.id] = keep_read_flag(bucket.get(entity.id), entity)
        self._owners_changed({owner})

    def _mark_read(self, transition: MarkRead) -> None:
        bucket = self._entities.get(transition.owner_key)
        if bucket is None:
            return
        ids = [transition.entity_id] if transition.entity_id is not None else list(bucket)
        for entity_id in ids:
            entity = bucket.get(entity_id)
            if entity is not None and not entity.read:
                bucket[entity_id] = entity.model_copy(update={"read": True})
        self._owners_changed({transition.owner_key})

    def _remove(self, transition: Remove) -> None:
        bucket = self._entities.get(transition.owner_key)
        if bucket is None or bucket.pop(transition.entity_id, None) is None:
            return
        self._owners_changed({transition.owner_key})

    def _add_owner(self, transition: AddOwner) -> None:
        raise ValueError(f"{type(self).__name__} has no owner records")


class MessageStore(EntityStore[Message]):
    """Conversations and their messages for one identity.

    Each conversation's ``unread_count`` and last-message preview are
    derived from the messages held for it.
    """

    entity_type = Message

    def __init__(self, identity: str) -> None:
        super().__init__(identity)
        self._conversations: dict[str, Conversation] = {}

    def conversations(self) -> list[Conversation]:
        """All conversations, most recent activity first."""
        return newest_first(list(self._conversations.values()))

    def conversation(self, conversation_id: str) -> Conversation | None:
        return self._conversations.get(conversation_id)

    def messages(self, conversation_id: str) -> list[Message]:
        return self.entities(conversation_id)

    def _owner_of(self, entity: Message) -> str:
        return entity.conversation_id

    def _is_unread(self, entity: Message) -> bool:
        return message_is_unread_for(entity, self._identity)

    def _replace_all(self, transition: ReplaceAll) -> None:
        self._conversations = {owner.id: owner for owner in transition.owners}
        super()._replace_all(transition)
        for conversation in transition.owners:
            derived = self._conversations[conversation.id].unread_count
            if conversation.unread_count != derived:
                _logger.debug(
                    "Conversation %s: server unread=%d, derived=%d",
                    conversation.id,
                    conversation.unread_count,
                    derived,
                )
        # Conversations without any message keep the server preview, but
        # nothing is unread in them.
        for conversation_id, conversation in list(self._conversations.items()):
            if conversation_id not in self._entities and conversation.unread_count:
                self._conversations[conversation_id] = conversation.model_copy(update={"unread_count": 0})

    def _add_owner(self, transition: AddOwner) -> None:
        owner = transition.owner
        if owner.id in self._conversations:
            _logger.debug("Conversation %s already known", owner.id)
            return
        self._conversations[owner.id] = owner

    def _owners_changed(self, owner_keys: set[str]) -> None:
        for owner_key in owner_keys:
            bucket = self._entities.get(owner_key)
            if not bucket:
                known = self._conversations.get(owner_key)
                if known is not None and known.unread_count:
                    self._conversations[owner_key] = known.model_copy(update={"unread_count": 0})
                continue
            latest = max(bucket.values(), key=lambda m: m.timestamp)
            conversation = self._conversations.get(owner_key)
            if conversation is None:
                _logger.debug("Creating conversation %s from message %s", owner_key, latest.id)
                conversation = Conversation.from_message(latest)

            update: dict[str, int | str | datetime] = {
                "unread_count": sum(1 for m in bucket.values() if self._is_unread(m)),
            }
            if is_not_older(latest.timestamp, conversation.last_message_time):
                update["last_message"] = latest.content
                update["last_message_time"] = latest.timestamp
            self._conversations[owner_key] = conversation.model_copy(update=update)


class NotificationStore(EntityStore[Notification]):
    """Notifications for one identity, kept under a single owner key."""

    entity_type = Notification

    def notifications(self) -> list[Notification]:
        """All notifications, newest first."""
        return sorted(self.entities(self._identity), key=lambda n: n.created_at, reverse=True)

    def _owner_of(self, entity: Notification) -> str:
        return self._identity

    def _is_unread(self, entity: Notification) -> bool:
        return notification_is_unread_for(entity, self._identity)

    def _merge_page(self, transition: MergePage) -> None:
        if transition.owner_key != self._identity:
            _logger.warning(
                "Ignoring notification page for %s in the store of %s",
                transition.owner_key,
                self._identity,
            )
            return
        super()._merge_page(transition)
