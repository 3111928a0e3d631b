"""Entity lifecycle events and an explicit-subscription event bus.

The repository publishes an ``EntityEvent`` after every committed write:
``CREATED`` or ``UPDATED`` followed by ``SAVED``, or ``DELETED``. Consumers
subscribe at process start; there is no implicit global dispatch.

A failing handler is logged and skipped. It never fails the write that
produced the event, and it never prevents later handlers from running.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class EntityKind(Enum):
    """Entity families that emit lifecycle events."""

    ENGINE_VERSION = "engine_version"
    MOD = "mod"
    ADDON = "addon"
    ARTIFACT = "artifact"
    DEPENDENCY = "dependency"


class Action(Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    SAVED = "saved"


@dataclass(frozen=True)
class EntityEvent:
    """A committed change to one entity.

    Attributes:
        entity: Which entity family changed.
        action: What happened.
        subject: The entity after the write (before it, for deletes).
        previous: The entity before an update, else None.
        changed_fields: Field names that differ between ``previous`` and
            ``subject`` on updates. Empty for creates and deletes.
    """

    entity: EntityKind
    action: Action
    subject: Any
    previous: Any = None
    changed_fields: frozenset[str] = field(default_factory=frozenset)

    def changed(self, *names: str) -> bool:
        """True if any of *names* changed in this update."""
        return any(name in self.changed_fields for name in names)


Handler = Callable[[EntityEvent], None]


class EventBus:
    """Synchronous publish/subscribe dispatcher for ``EntityEvent``.

    Handlers run in subscription order on the publishing thread.
    """

    def __init__(self) -> None:
        self._handlers: dict[EntityKind, list[tuple[frozenset[Action] | None, Handler]]] = (
            defaultdict(list)
        )

    def subscribe(
        self,
        entity: EntityKind,
        handler: Handler,
        actions: set[Action] | frozenset[Action] | None = None,
    ) -> Callable[[], None]:
        """Register *handler* for events on *entity*.

        Args:
            entity: The entity family to listen to.
            handler: Callable receiving each matching event.
            actions: Restrict delivery to these actions. None means all.

        Returns:
            A callable that removes the subscription.
        """
        entry = (frozenset(actions) if actions is not None else None, handler)
        self._handlers[entity].append(entry)

        def _unsubscribe() -> None:
            if entry in self._handlers[entity]:
                self._handlers[entity].remove(entry)

        return _unsubscribe

    def publish(self, event: EntityEvent) -> None:
        """Deliver *event* to every matching handler."""
        for actions, handler in list(self._handlers.get(event.entity, ())):
            if actions is not None and event.action not in actions:
                continue
            try:
                handler(event)
            except Exception:
                logger.warning(
                    "Event handler %r failed for %s %s",
                    handler,
                    event.entity.value,
                    event.action.value,
                    exc_info=True,
                )

    def handler_count(self, entity: EntityKind) -> int:
        return len(self._handlers.get(entity, ()))
