"""Workbench: the single entry point used by front ends (GUI bridge, CLI).

Orchestrates the entity and workspace stores and keeps the cross-cutting
records in step:
- Tracks opened/created vaults and canvases in the history index
- Updates the last-opened pointer for session restore
- Broadcasts an event on the EventBus after each successful operation

The stores stay ignorant of history and events; all of that lives here.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from . import events
from .appstate import AppStateStore, ConfigStore
from .canvases import CanvasStore
from .events import EventBus, WorkspaceChange
from .history import HistoryStore
from .migrations import MigrationEngine, vault_needs_migration
from .models import (
    CanvasHistoryEntry,
    CanvasInfo,
    CanvasUIState,
    VaultHistoryEntry,
    VaultInfo,
    WorkspaceDocument,
    WorkspaceEdge,
    WorkspaceNode,
)
from .paths import VaultPaths
from .vaults import VaultStore
from .workspace import WorkspaceStore

logger = logging.getLogger(__name__)


def _vault_payload(vault: VaultInfo) -> dict:
    return {"vault_id": vault.id, "vault_path": vault.path, "vault_name": vault.name}


def _canvas_payload(canvas: CanvasInfo) -> dict:
    return {
        "canvas_id": canvas.id,
        "canvas_path": canvas.path,
        "canvas_name": canvas.name,
        "vault_id": canvas.vault_id,
    }


def _workspace_payload(
    path: Path,
    change: WorkspaceChange,
    node_ids: list[str] | None = None,
    edge_ids: list[str] | None = None,
) -> dict:
    return {
        "canvas_path": str(path),
        "change_type": change.value,
        "node_ids": node_ids,
        "edge_ids": edge_ids,
    }


class Workbench:
    """Vault/canvas operations with history, app state and notifications."""

    def __init__(
        self,
        app_dir: Path,
        max_history: int | None = None,
        bus: EventBus | None = None,
    ):
        """
        Args:
            app_dir: Application config directory (holds data/ and config.json)
            max_history: Cap for the history index; None keeps the stored cap
            bus: Event bus to publish on; a private one is created if omitted
        """
        self.app_dir = Path(app_dir)
        self.bus = bus or EventBus()

        self.migrations = MigrationEngine()
        self.canvases = CanvasStore(self.migrations)
        self.vaults = VaultStore(self.canvases)
        self.workspace = WorkspaceStore()
        self.history = HistoryStore(self.app_dir, max_items=max_history)
        self.state = AppStateStore(self.app_dir)
        self.config = ConfigStore(self.app_dir)

    # ─────────────────────────────────────────────────────────────────────────
    # Side-effect helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _track_vault(self, vault: VaultInfo) -> None:
        self.history.track_vault(vault.id, vault.name, vault.path)
        self._history_changed()

    def _track_canvas(self, canvas: CanvasInfo) -> None:
        self.history.track_canvas(canvas.id, canvas.vault_id, canvas.name, canvas.path)
        self._history_changed()

    def _history_changed(self) -> None:
        history = self.history.load()
        self.bus.emit(
            events.HISTORY_CHANGED,
            {"vault_count": len(history.vaults), "canvas_count": len(history.canvases)},
        )

    def _set_last_opened(self, vault_id: str | None = None, canvas_id: str | None = None) -> None:
        self.state.update_last_opened(vault_id=vault_id, canvas_id=canvas_id)
        self.bus.emit(
            events.STATE_CHANGED, {"last_vault_id": vault_id, "last_canvas_id": canvas_id}
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Vaults
    # ─────────────────────────────────────────────────────────────────────────

    def create_vault(self, path: Path, name: str, description: str | None = None) -> VaultInfo:
        vault = self.vaults.create(path, name, description)
        self._track_vault(vault)
        self._set_last_opened(vault_id=vault.id)
        self.config.remember_vault(vault.name, vault.path)
        self.bus.emit(events.VAULT_CREATED, _vault_payload(vault))
        return vault

    def open_vault(self, path: Path) -> VaultInfo:
        """Open a vault, upgrading a legacy vault.json first."""
        if vault_needs_migration(Path(path)):
            logger.info(f"Vault at {path} uses an older schema; migrating")
            self.migrations.migrate_vault(path)

        vault = self.vaults.open(path)
        self._track_vault(vault)
        self._set_last_opened(vault_id=vault.id)
        self.config.remember_vault(vault.name, vault.path)
        self.bus.emit(events.VAULT_OPENED, _vault_payload(vault))
        return vault

    def migrate_vault(self, path: Path) -> VaultInfo:
        vault = self.migrations.migrate_vault(path)
        self.bus.emit(events.VAULT_UPDATED, _vault_payload(vault))
        return vault

    def rename_vault(self, path: Path, new_name: str) -> VaultInfo:
        vault = self.vaults.rename(path, new_name)
        self._track_vault(vault)
        self.bus.emit(events.VAULT_UPDATED, _vault_payload(vault))
        return vault

    def update_vault_description(self, path: Path, description: str) -> VaultInfo:
        vault = self.vaults.update_description(path, description)
        self.bus.emit(events.VAULT_UPDATED, _vault_payload(vault))
        return vault

    def get_vault_info(self, path: Path) -> VaultInfo | None:
        return self.vaults.get_info(path)

    def list_canvases(self, vault_path: Path) -> list[CanvasInfo]:
        return self.vaults.list_canvases(vault_path)

    def restore_session(self) -> tuple[VaultHistoryEntry | None, CanvasHistoryEntry | None]:
        """Resolve the last-opened ids to their history entries.

        Either side is None when no id is stored or history no longer has it.
        """
        state = self.state.load()
        history = self.history.load()
        vault = history.find_vault(state.last_vault_id) if state.last_vault_id else None
        canvas = history.find_canvas(state.last_canvas_id) if state.last_canvas_id else None
        return vault, canvas

    # ─────────────────────────────────────────────────────────────────────────
    # Canvases
    # ─────────────────────────────────────────────────────────────────────────

    def create_canvas(
        self,
        vault_path: Path,
        vault_id: str,
        name: str,
        description: str | None = None,
    ) -> CanvasInfo:
        canvases_dir = VaultPaths.from_root(vault_path).canvases
        canvas = self.canvases.create(canvases_dir, vault_id, name, description)
        self._track_canvas(canvas)
        self._set_last_opened(canvas_id=canvas.id)
        self.bus.emit(events.CANVAS_CREATED, _canvas_payload(canvas))
        return canvas

    def open_canvas(self, path: Path) -> CanvasInfo:
        canvas = self.canvases.open(path)
        self._track_canvas(canvas)
        self._set_last_opened(canvas_id=canvas.id)
        self.config.set_current_canvas(canvas.path)
        self.bus.emit(events.CANVAS_OPENED, _canvas_payload(canvas))
        return canvas

    def migrate_canvas(self, path: Path) -> CanvasInfo:
        canvas = self.migrations.migrate_canvas(path)
        self.bus.emit(events.CANVAS_UPDATED, _canvas_payload(canvas))
        return canvas

    def rename_canvas(self, path: Path, new_name: str) -> CanvasInfo:
        canvas = self.canvases.rename(path, new_name)
        self._track_canvas(canvas)
        self.bus.emit(events.CANVAS_UPDATED, _canvas_payload(canvas))
        return canvas

    def delete_canvas(self, path: Path) -> str | None:
        """Delete a canvas and drop it from history when its id is known."""
        meta = self.canvases.remove(path)
        if meta is None:
            return None

        self.history.remove_canvas(meta.id)
        self._history_changed()
        self.bus.emit(
            events.CANVAS_DELETED,
            _canvas_payload(CanvasInfo.from_meta(meta, str(path))),
        )
        return meta.id

    def update_canvas_tags(self, path: Path, tags: list[str]) -> CanvasInfo:
        canvas = self.canvases.update_tags(path, tags)
        self.bus.emit(events.CANVAS_UPDATED, _canvas_payload(canvas))
        return canvas

    def add_canvas_tag(self, path: Path, tag: str) -> CanvasInfo:
        canvas = self.canvases.add_tag(path, tag)
        self.bus.emit(events.CANVAS_UPDATED, _canvas_payload(canvas))
        return canvas

    def remove_canvas_tag(self, path: Path, tag: str) -> CanvasInfo:
        canvas = self.canvases.remove_tag(path, tag)
        self.bus.emit(events.CANVAS_UPDATED, _canvas_payload(canvas))
        return canvas

    def update_canvas_description(self, path: Path, description: str) -> CanvasInfo:
        canvas = self.canvases.update_description(path, description)
        self.bus.emit(events.CANVAS_UPDATED, _canvas_payload(canvas))
        return canvas

    def load_canvas_state(self, path: Path) -> CanvasUIState:
        return self.canvases.load_state(path)

    def save_canvas_state(self, path: Path, state: CanvasUIState) -> CanvasUIState:
        return self.canvases.save_state(path, state)

    # ─────────────────────────────────────────────────────────────────────────
    # Workspaces
    # ─────────────────────────────────────────────────────────────────────────

    def _workspace_changed(
        self,
        event: str,
        path: Path,
        change: WorkspaceChange,
        node_ids: list[str] | None = None,
        edge_ids: list[str] | None = None,
    ) -> None:
        """Emit the specific event, then the catch-all workspace:changed."""
        payload = _workspace_payload(path, change, node_ids, edge_ids)
        self.bus.emit(event, payload)
        self.bus.emit(events.WORKSPACE_CHANGED, payload)

    def load_workspace(self, path: Path) -> WorkspaceDocument:
        doc = self.workspace.load(path)
        self.bus.emit(events.WORKSPACE_LOADED, _workspace_payload(path, WorkspaceChange.LOADED))
        return doc

    def save_workspace(self, path: Path, doc: WorkspaceDocument) -> WorkspaceDocument:
        saved = self.workspace.save(path, doc)
        self.bus.emit(events.WORKSPACE_SAVED, _workspace_payload(path, WorkspaceChange.SAVED))
        return saved

    def update_workspace_nodes(self, path: Path, nodes: list[WorkspaceNode]) -> WorkspaceDocument:
        doc = self.workspace.update_nodes(path, nodes)
        self._workspace_changed(
            events.NODE_UPDATED, path, WorkspaceChange.NODES_UPDATED,
            node_ids=[n.id for n in nodes],
        )
        return doc

    def update_workspace_edges(self, path: Path, edges: list[WorkspaceEdge]) -> WorkspaceDocument:
        doc = self.workspace.update_edges(path, edges)
        self._workspace_changed(
            events.EDGE_UPDATED, path, WorkspaceChange.EDGES_UPDATED,
            edge_ids=[e.id for e in edges],
        )
        return doc

    def add_workspace_node(self, path: Path, node: WorkspaceNode) -> WorkspaceDocument:
        doc = self.workspace.add_node(path, node)
        self._workspace_changed(
            events.NODE_ADDED, path, WorkspaceChange.NODES_ADDED, node_ids=[node.id]
        )
        return doc

    def remove_workspace_node(self, path: Path, node_id: str) -> WorkspaceDocument:
        doc = self.workspace.remove_node(path, node_id)
        self._workspace_changed(
            events.NODE_DELETED, path, WorkspaceChange.NODES_DELETED, node_ids=[node_id]
        )
        return doc

    def add_workspace_edge(self, path: Path, edge: WorkspaceEdge) -> WorkspaceDocument:
        doc = self.workspace.add_edge(path, edge)
        self._workspace_changed(
            events.EDGE_ADDED, path, WorkspaceChange.EDGES_ADDED, edge_ids=[edge.id]
        )
        return doc

    def remove_workspace_edge(self, path: Path, edge_id: str) -> WorkspaceDocument:
        doc = self.workspace.remove_edge(path, edge_id)
        self._workspace_changed(
            events.EDGE_DELETED, path, WorkspaceChange.EDGES_DELETED, edge_ids=[edge_id]
        )
        return doc

    def batch_update_workspace(
        self,
        path: Path,
        nodes_to_add: Iterable[WorkspaceNode] = (),
        nodes_to_remove: Iterable[str] = (),
        edges_to_add: Iterable[WorkspaceEdge] = (),
        edges_to_remove: Iterable[str] = (),
    ) -> WorkspaceDocument:
        """Apply a batch in one save; one workspace:changed lists every touched id."""
        nodes_to_add, nodes_to_remove = list(nodes_to_add), list(nodes_to_remove)
        edges_to_add, edges_to_remove = list(edges_to_add), list(edges_to_remove)
        doc = self.workspace.batch_update(
            path,
            nodes_to_add=nodes_to_add,
            nodes_to_remove=nodes_to_remove,
            edges_to_add=edges_to_add,
            edges_to_remove=edges_to_remove,
        )
        node_ids = [*nodes_to_remove, *(n.id for n in nodes_to_add)]
        edge_ids = [*edges_to_remove, *(e.id for e in edges_to_add)]
        if node_ids or edge_ids:
            self.bus.emit(
                events.WORKSPACE_CHANGED,
                _workspace_payload(
                    path, WorkspaceChange.BATCH_UPDATE, node_ids or None, edge_ids or None
                ),
            )
        return doc

    # ─────────────────────────────────────────────────────────────────────────
    # History
    # ─────────────────────────────────────────────────────────────────────────

    def remove_vault_from_history(self, vault_id: str) -> None:
        self.history.remove_vault(vault_id)
        self._history_changed()

    def remove_canvas_from_history(self, canvas_id: str) -> None:
        self.history.remove_canvas(canvas_id)
        self._history_changed()
