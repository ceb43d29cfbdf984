"""In-process notification channel.

The storage core never emits anything itself; the Workbench broadcasts an
event after an operation succeeds. Subscribers are plain callables taking
(event_name, payload).
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)

VAULT_CREATED = "vault:created"
VAULT_OPENED = "vault:opened"
VAULT_UPDATED = "vault:updated"
CANVAS_CREATED = "canvas:created"
CANVAS_OPENED = "canvas:opened"
CANVAS_UPDATED = "canvas:updated"
CANVAS_DELETED = "canvas:deleted"
STATE_CHANGED = "state:changed"
HISTORY_CHANGED = "history:changed"

WORKSPACE_LOADED = "workspace:loaded"
WORKSPACE_SAVED = "workspace:saved"
WORKSPACE_CHANGED = "workspace:changed"
NODE_ADDED = "workspace:node_added"
NODE_UPDATED = "workspace:node_updated"
NODE_DELETED = "workspace:node_deleted"
EDGE_ADDED = "workspace:edge_added"
EDGE_UPDATED = "workspace:edge_updated"
EDGE_DELETED = "workspace:edge_deleted"

ALL_EVENTS = "*"


class WorkspaceChange(str, Enum):
    """`change_type` carried by workspace events."""

    LOADED = "loaded"
    SAVED = "saved"
    NODES_ADDED = "nodes_added"
    NODES_UPDATED = "nodes_updated"
    NODES_DELETED = "nodes_deleted"
    EDGES_ADDED = "edges_added"
    EDGES_UPDATED = "edges_updated"
    EDGES_DELETED = "edges_deleted"
    BATCH_UPDATE = "batch_update"


Listener = Callable[[str, dict[str, Any]], None]


class EventBus:
    """Fan-out of named events to subscribed listeners."""

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register listener for event ("*" for everything).

        Returns:
            A callable that removes the subscription.
        """
        self._listeners[event].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

        return unsubscribe

    def emit(self, event: str, payload: dict[str, Any] | None = None) -> None:
        """Deliver event to its listeners, then to wildcard listeners.

        A listener that raises is logged and skipped.
        """
        payload = payload or {}
        for listener in [*self._listeners[event], *self._listeners[ALL_EVENTS]]:
            try:
                listener(event, payload)
            except Exception as e:
                logger.error(f"Listener for {event} failed: {e}")
