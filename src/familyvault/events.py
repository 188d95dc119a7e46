"""Vault events: what changed, by whom, and which blobs it freed.

The facade and the bulk coordinator emit a ``VaultEvent`` after each
committed folder or file mutation.  Deletes carry the storage keys the
subscriber is expected to purge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    VaultEventHandler = Callable[["VaultEvent"], Awaitable[None]]

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of committed folder/file mutations."""

    FOLDER_CREATED = "folder_created"
    FOLDER_RENAMED = "folder_renamed"
    FOLDER_MOVED = "folder_moved"
    FOLDER_DELETED = "folder_deleted"
    FOLDER_ASSIGNED = "folder_assigned"
    FOLDER_SHARED = "folder_shared"
    FILE_CREATED = "file_created"
    FILE_RENAMED = "file_renamed"
    FILE_MOVED = "file_moved"
    FILE_DELETED = "file_deleted"
    FILE_ASSIGNED = "file_assigned"
    FILE_SHARED = "file_shared"
    FILE_TAGGED = "file_tagged"


@dataclass(frozen=True, slots=True)
class VaultEvent:
    """Immutable record of a committed mutation.

    Attributes:
        event_type: The kind of mutation that occurred.
        item_id: Id of the affected folder or file.
        family_id: Family the item belongs to.
        actor_id: User id of the caller.
        storage_keys: Object-store handles freed by a delete, empty otherwise.
    """

    event_type: EventType
    item_id: str
    family_id: str | None = None
    actor_id: str | None = None
    storage_keys: tuple[str, ...] = ()


class EventBus:
    """Fan-out of committed folder/file mutations to vault subscribers.

    Typical subscribers purge freed ``storage_keys`` from object storage
    or refresh a client's cached folder view.  Handlers for one event
    type run one after another in subscription order.  The facade emits
    only after its session commits, so a handler that raises is logged
    with the item and actor and the mutation stays in place.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[VaultEventHandler]] = {et: [] for et in EventType}

    def register(self, event_type: EventType, handler: VaultEventHandler) -> None:
        """Subscribe *handler* to mutations of *event_type*."""
        self._handlers[event_type].append(handler)

    def register_all(self, handler: VaultEventHandler) -> None:
        """Subscribe *handler* to every folder and file mutation."""
        for event_type in EventType:
            self.register(event_type, handler)

    def unregister(self, event_type: EventType, handler: VaultEventHandler) -> bool:
        """Drop the first subscription of *handler*; ``False`` if it had none."""
        subscribers = self._handlers[event_type]
        if handler not in subscribers:
            return False
        subscribers.remove(handler)
        return True

    async def emit(self, event: VaultEvent) -> None:
        """Deliver *event* to the subscribers of its type."""
        for handler in list(self._handlers[event.event_type]):
            try:
                await handler(event)
            except Exception:
                logger.warning(
                    "Handler %r failed for %s on %s (family %s, actor %s)",
                    handler,
                    event.event_type.value,
                    event.item_id,
                    event.family_id,
                    event.actor_id,
                    exc_info=True,
                )

    @property
    def handler_count(self) -> int:
        """Number of subscriptions across all event types."""
        return sum(len(h) for h in self._handlers.values())

    def clear(self) -> None:
        """Drop every subscription, as the vault does on close."""
        for subscribers in self._handlers.values():
            subscribers.clear()
