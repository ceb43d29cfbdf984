"""Core data models for the storage core.

Uses Pydantic v2 for validation. Every persisted record is snake_case on the
wire; timestamps are ISO 8601 strings (see timeutil) so they round-trip
byte-for-byte and sort lexicographically.
"""

import uuid
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator, model_serializer

from .constants import (
    APP_STATE_VERSION,
    CURRENT_SCHEMA_VERSION,
    DEFAULT_AUTO_SAVE_INTERVAL,
    DEFAULT_CANVAS_MODE,
    DEFAULT_EDGE_COLOR,
    DEFAULT_EDGE_TYPE,
    DEFAULT_GRID_SIZE,
    DEFAULT_MAX_HISTORY,
    DEFAULT_NODE_COLOR,
    DEFAULT_THEME,
    DEFAULT_Z_INDEX,
)
from .timeutil import now_iso


def generate_id() -> str:
    """Generate a UUID v4 string."""
    return str(uuid.uuid4())


def generate_short_id() -> str:
    """First 8 characters of a fresh UUID."""
    return generate_id()[:8]


def generate_prefixed_id(prefix: str) -> str:
    """Generate an id like "vault_1a2b3c4d"."""
    return f"{prefix}_{generate_short_id()}"


# ─────────────────────────────────────────────────────────────────────────────
# Vault
# ─────────────────────────────────────────────────────────────────────────────


class VaultMeta(BaseModel):
    """Vault metadata stored in vault.json."""

    id: str
    name: str
    description: str = ""
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)
    version: str = CURRENT_SCHEMA_VERSION

    def touch(self) -> None:
        self.updated_at = now_iso()


class VaultInfo(BaseModel):
    """Vault description returned to callers."""

    id: str
    path: str
    name: str
    description: str
    created_at: str
    updated_at: str
    canvas_count: int = 0

    @classmethod
    def from_meta(cls, meta: VaultMeta, path: str, canvas_count: int) -> "VaultInfo":
        return cls(
            id=meta.id,
            path=path,
            name=meta.name,
            description=meta.description,
            created_at=meta.created_at,
            updated_at=meta.updated_at,
            canvas_count=canvas_count,
        )

    def to_ref(self) -> "VaultRef":
        return VaultRef(id=self.id, name=self.name, path=self.path)


class VaultRef(BaseModel):
    """Lightweight vault reference for lists."""

    id: str
    name: str
    path: str


# ─────────────────────────────────────────────────────────────────────────────
# Canvas
# ─────────────────────────────────────────────────────────────────────────────


def _dedupe(tags: list[str]) -> list[str]:
    """Drop repeated tags, keeping first-seen order."""
    return list(dict.fromkeys(tags))


class CanvasMeta(BaseModel):
    """Canvas metadata stored in .mosaic/meta.json."""

    id: str
    vault_id: str
    name: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=now_iso)
    updated_at: str = Field(default_factory=now_iso)
    version: str = CURRENT_SCHEMA_VERSION

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: list[str]) -> list[str]:
        return _dedupe(value)

    def touch(self) -> None:
        self.updated_at = now_iso()

    def add_tag(self, tag: str) -> bool:
        """Add a tag; returns True if the tag was new."""
        if tag in self.tags:
            return False
        self.tags.append(tag)
        self.touch()
        return True

    def remove_tag(self, tag: str) -> bool:
        """Remove a tag; returns True if it was present."""
        if tag not in self.tags:
            return False
        self.tags.remove(tag)
        self.touch()
        return True


class CanvasInfo(BaseModel):
    """Canvas description returned to callers."""

    id: str
    vault_id: str
    name: str
    description: str
    path: str
    created_at: str
    updated_at: str
    tags: list[str] = Field(default_factory=list)

    @classmethod
    def from_meta(cls, meta: CanvasMeta, path: str) -> "CanvasInfo":
        return cls(
            id=meta.id,
            vault_id=meta.vault_id,
            name=meta.name,
            description=meta.description,
            path=path,
            created_at=meta.created_at,
            updated_at=meta.updated_at,
            tags=list(meta.tags),
        )

    def to_ref(self) -> "CanvasRef":
        return CanvasRef(id=self.id, vault_id=self.vault_id, name=self.name, path=self.path)


class CanvasRef(BaseModel):
    """Lightweight canvas reference for lists."""

    id: str
    vault_id: str
    name: str
    path: str


class ViewportState(BaseModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = Field(default=1.0, gt=0.0)


class CanvasUIState(BaseModel):
    """Per-canvas UI state stored in .mosaic/state.json.

    Not versioned. Always safe to default; saving overwrites it wholesale.
    """

    viewport: ViewportState = Field(default_factory=ViewportState)
    selected_nodes: list[str] = Field(default_factory=list)
    selected_edges: list[str] = Field(default_factory=list)
    canvas_mode: str = DEFAULT_CANVAS_MODE
    updated_at: str = ""

    def touch(self) -> None:
        self.updated_at = now_iso()


# ─────────────────────────────────────────────────────────────────────────────
# Workspace (node/edge graph)
# ─────────────────────────────────────────────────────────────────────────────


class _OmitUnsetOptionals(BaseModel):
    """Drops listed keys from the dump when their value is None.

    Only top-level optional fields are dropped; None values inside the
    open-ended `data` bag are kept so it round-trips untouched.
    """

    OMIT_WHEN_NONE: ClassVar[tuple[str, ...]] = ()

    @model_serializer(mode="wrap")
    def _drop_none_optionals(self, handler):
        data = handler(self)
        for key in self.OMIT_WHEN_NONE:
            if data.get(key) is None:
                data.pop(key, None)
        return data


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class WorkspaceNode(_OmitUnsetOptionals):
    """A node on the canvas. `data` is opaque to the storage core."""

    OMIT_WHEN_NONE: ClassVar[tuple[str, ...]] = ("width", "height", "parent_id")

    id: str
    type: str
    position: Position = Field(default_factory=Position)
    width: float | None = None
    height: float | None = None
    z_index: int = DEFAULT_Z_INDEX
    parent_id: str | None = None  # grouping, acyclicity not enforced
    data: dict[str, Any] = Field(default_factory=dict)


class WorkspaceEdge(_OmitUnsetOptionals):
    """A connection between two nodes."""

    OMIT_WHEN_NONE: ClassVar[tuple[str, ...]] = ("source_handle", "target_handle", "label")

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    edge_type: str = DEFAULT_EDGE_TYPE  # default, straight, step, smoothstep, bezier
    label: str | None = None
    animated: bool = False
    data: dict[str, Any] = Field(default_factory=dict)

    def touches(self, node_id: str) -> bool:
        """True if either endpoint is node_id."""
        return self.source == node_id or self.target == node_id


class WorkspaceSettings(BaseModel):
    grid_size: int = Field(default=DEFAULT_GRID_SIZE, gt=0)
    snap_to_grid: bool = True
    show_minimap: bool = True
    auto_save: bool = True
    auto_save_interval: int = Field(default=DEFAULT_AUTO_SAVE_INTERVAL, gt=0)
    theme: str = DEFAULT_THEME
    default_node_color: str = DEFAULT_NODE_COLOR
    default_edge_color: str = DEFAULT_EDGE_COLOR


class WorkspaceDocument(BaseModel):
    """The node/edge graph of a canvas, stored in workspace.json.

    Node and edge ids are caller-supplied and not checked for uniqueness.
    """

    version: str = CURRENT_SCHEMA_VERSION
    nodes: list[WorkspaceNode] = Field(default_factory=list)
    edges: list[WorkspaceEdge] = Field(default_factory=list)
    settings: WorkspaceSettings = Field(default_factory=WorkspaceSettings)

    def add_node(self, node: WorkspaceNode) -> None:
        self.nodes.append(node)

    def add_edge(self, edge: WorkspaceEdge) -> None:
        self.edges.append(edge)

    def remove_node(self, node_id: str) -> None:
        """Remove a node and every edge that has it as an endpoint."""
        self.nodes = [n for n in self.nodes if n.id != node_id]
        self.edges = [e for e in self.edges if not e.touches(node_id)]

    def remove_edge(self, edge_id: str) -> None:
        self.edges = [e for e in self.edges if e.id != edge_id]

    def find_node(self, node_id: str) -> WorkspaceNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def find_edge(self, edge_id: str) -> WorkspaceEdge | None:
        return next((e for e in self.edges if e.id == edge_id), None)


# ─────────────────────────────────────────────────────────────────────────────
# History
# ─────────────────────────────────────────────────────────────────────────────


class VaultHistoryEntry(BaseModel):
    id: str
    name: str
    path: str  # last known; may go stale
    last_opened: str
    open_count: int = 1
    added_at: str


class CanvasHistoryEntry(BaseModel):
    id: str
    vault_id: str
    name: str
    path: str
    last_opened: str
    open_count: int = 1
    added_at: str


class AppHistory(BaseModel):
    """Most-recently-opened ledger stored in data/history.json.

    At most one entry per id in each list; both lists are kept sorted by
    last_opened descending and capped at max_items.
    """

    vaults: list[VaultHistoryEntry] = Field(default_factory=list)
    canvases: list[CanvasHistoryEntry] = Field(default_factory=list)
    max_items: int = Field(default=DEFAULT_MAX_HISTORY, gt=0)

    def track_vault(self, id: str, name: str, path: str) -> VaultHistoryEntry:
        """Upsert a vault entry and bump its open count."""
        now = now_iso()
        entry = self.find_vault(id)
        if entry is not None:
            entry.name = name
            entry.path = path
            entry.last_opened = now
            entry.open_count += 1
        else:
            entry = VaultHistoryEntry(
                id=id, name=name, path=path, last_opened=now, open_count=1, added_at=now
            )
            self.vaults.append(entry)

        self.vaults.sort(key=lambda v: v.last_opened, reverse=True)
        del self.vaults[self.max_items:]
        return entry

    def track_canvas(self, id: str, vault_id: str, name: str, path: str) -> CanvasHistoryEntry:
        """Upsert a canvas entry and bump its open count."""
        now = now_iso()
        entry = self.find_canvas(id)
        if entry is not None:
            entry.vault_id = vault_id
            entry.name = name
            entry.path = path
            entry.last_opened = now
            entry.open_count += 1
        else:
            entry = CanvasHistoryEntry(
                id=id,
                vault_id=vault_id,
                name=name,
                path=path,
                last_opened=now,
                open_count=1,
                added_at=now,
            )
            self.canvases.append(entry)

        self.canvases.sort(key=lambda c: c.last_opened, reverse=True)
        del self.canvases[self.max_items:]
        return entry

    def remove_vault(self, vault_id: str) -> None:
        """Remove a vault and every canvas entry that belongs to it."""
        self.vaults = [v for v in self.vaults if v.id != vault_id]
        self.canvases = [c for c in self.canvases if c.vault_id != vault_id]

    def remove_canvas(self, canvas_id: str) -> None:
        self.canvases = [c for c in self.canvases if c.id != canvas_id]

    def recent_vaults(self, limit: int) -> list[VaultHistoryEntry]:
        return self.vaults[:limit]

    def recent_canvases(
        self, vault_id: str | None = None, limit: int = DEFAULT_MAX_HISTORY
    ) -> list[CanvasHistoryEntry]:
        matching = [c for c in self.canvases if vault_id is None or c.vault_id == vault_id]
        return matching[:limit]

    def find_vault(self, vault_id: str) -> VaultHistoryEntry | None:
        return next((v for v in self.vaults if v.id == vault_id), None)

    def find_canvas(self, canvas_id: str) -> CanvasHistoryEntry | None:
        return next((c for c in self.canvases if c.id == canvas_id), None)


# ─────────────────────────────────────────────────────────────────────────────
# App state and config
# ─────────────────────────────────────────────────────────────────────────────


class AppState(BaseModel):
    """Last-opened pointer stored in data/data.json."""

    last_vault_id: str | None = None
    last_canvas_id: str | None = None
    updated_at: str = Field(default_factory=now_iso)
    version: str = APP_STATE_VERSION

    def touch(self) -> None:
        self.updated_at = now_iso()

    def set_last_opened(self, vault_id: str | None = None, canvas_id: str | None = None) -> None:
        """Overwrite only the ids that are supplied."""
        if vault_id is not None:
            self.last_vault_id = vault_id
        if canvas_id is not None:
            self.last_canvas_id = canvas_id
        self.touch()


class RecentVault(BaseModel):
    name: str
    path: str
    last_opened: str


class AppConfig(BaseModel):
    """Path-based app configuration stored in config.json."""

    current_vault_path: str | None = None
    current_canvas_path: str | None = None
    recent_vaults: list[RecentVault] = Field(default_factory=list)
