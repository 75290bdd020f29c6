"""
Event broadcaster port
======================

The engine notifies listeners of every committed mutation through an
``EventBroadcaster`` passed into each service call. Delivery (WebSocket
fan-out, message bus, ...) belongs to the implementation; the engine owns no
delivery guarantee.

Notifications are fire-and-forget: the service layer queues them with
``after_commit`` so they only run once the data is committed, and a failing
broadcaster is logged without affecting the mutation.

Implementations
---------------
- NullBroadcaster     drops every event (default)
- LoggingBroadcaster  writes one log line per event
"""

import logging
from typing import Protocol, runtime_checkable

from retroboard.api.models import (
    CardCreatedEvent,
    CardDeletedEvent,
    CardLinkEvent,
    CardMovedEvent,
    CardUpdatedEvent,
    ReactionEvent,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class EventBroadcaster(Protocol):
    """One method per domain event."""

    def card_created(self, event: CardCreatedEvent) -> None: ...

    def card_updated(self, event: CardUpdatedEvent) -> None: ...

    def card_deleted(self, event: CardDeletedEvent) -> None: ...

    def card_moved(self, event: CardMovedEvent) -> None: ...

    def card_linked(self, event: CardLinkEvent) -> None: ...

    def card_unlinked(self, event: CardLinkEvent) -> None: ...

    def reaction_added(self, event: ReactionEvent) -> None: ...

    def reaction_removed(self, event: ReactionEvent) -> None: ...


class NullBroadcaster:
    """Broadcaster that ignores every event."""

    def card_created(self, event):
        pass

    def card_updated(self, event):
        pass

    def card_deleted(self, event):
        pass

    def card_moved(self, event):
        pass

    def card_linked(self, event):
        pass

    def card_unlinked(self, event):
        pass

    def reaction_added(self, event):
        pass

    def reaction_removed(self, event):
        pass


class LoggingBroadcaster:
    """Broadcaster that logs each event at INFO, for local runs and debugging."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def _emit(self, name: str, event) -> None:
        self.log.info("event %s board=%s payload=%s", name, event.board_id, event.model_dump_json())

    def card_created(self, event):
        self._emit("card:created", event)

    def card_updated(self, event):
        self._emit("card:updated", event)

    def card_deleted(self, event):
        self._emit("card:deleted", event)

    def card_moved(self, event):
        self._emit("card:moved", event)

    def card_linked(self, event):
        self._emit("card:linked", event)

    def card_unlinked(self, event):
        self._emit("card:unlinked", event)

    def reaction_added(self, event):
        self._emit("reaction:added", event)

    def reaction_removed(self, event):
        self._emit("reaction:removed", event)
