"""Path resolution for vaults, canvases and app data.

Maps a root directory to the fixed set of paths an entity uses. Nothing here
reads or writes files; `create_all` only creates directories.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .constants import (
    APP_CONFIG_FILE,
    APP_DATA_DIR,
    APP_HISTORY_FILE,
    APP_STATE_FILE,
    CANVAS_ATTACHMENTS_DIR,
    CANVAS_EDGES_DIR,
    CANVAS_IMAGES_DIR,
    CANVAS_LEGACY_FILE,
    CANVAS_META_DIR,
    CANVAS_META_FILE,
    CANVAS_NODES_DIR,
    CANVAS_STATE_FILE,
    CANVAS_WORKSPACE_FILE,
    DEFAULT_CANVAS_NAME,
    VAULT_ASSETS_DIR,
    VAULT_ATTACHMENTS_DIR,
    VAULT_CANVASES_DIR,
    VAULT_CONFIG_DIR,
    VAULT_META_FILE,
)
from .errors import MosaicError
from .fsutil import ensure_dir, list_subdirs


def sanitize_name(name: str) -> str:
    """Make a display name safe to use as a folder name.

    Anything other than letters, digits, '-', '_' and spaces becomes '_'.
    """
    cleaned = "".join(
        c if c.isalnum() or c in "-_ " else "_"
        for c in name
    ).strip()
    return cleaned or DEFAULT_CANVAS_NAME


@dataclass(frozen=True)
class VaultPaths:
    """Standard paths within a vault."""

    root: Path
    vault_json: Path
    canvases: Path
    assets: Path
    attachments: Path
    config: Path

    @classmethod
    def from_root(cls, root: Path | str) -> VaultPaths:
        root = Path(root)
        return cls(
            root=root,
            vault_json=root / VAULT_META_FILE,
            canvases=root / VAULT_CANVASES_DIR,
            assets=root / VAULT_ASSETS_DIR,
            attachments=root / VAULT_ATTACHMENTS_DIR,
            config=root / VAULT_CONFIG_DIR,
        )

    def is_valid(self) -> bool:
        """A directory is a vault iff vault.json exists."""
        return self.vault_json.exists()

    def create_all(self) -> None:
        for directory in (self.root, self.canvases, self.assets, self.attachments, self.config):
            ensure_dir(directory)

    def canvas_count(self) -> int:
        """Number of immediate subdirectories of canvases/.

        Cheap count: folders are not checked for being real canvases.
        """
        try:
            return len(list_subdirs(self.canvases))
        except MosaicError:
            return 0


@dataclass(frozen=True)
class CanvasPaths:
    """Standard paths within a canvas.

    nodes/, edges/, images/ and attachments/ are reserved for binary assets
    and are created but not yet written to.
    """

    root: Path
    mosaic: Path
    meta_json: Path
    state_json: Path
    workspace_json: Path
    legacy_json: Path
    nodes: Path
    edges: Path
    images: Path
    attachments: Path

    @classmethod
    def from_root(cls, root: Path | str) -> CanvasPaths:
        root = Path(root)
        mosaic = root / CANVAS_META_DIR
        return cls(
            root=root,
            mosaic=mosaic,
            meta_json=mosaic / CANVAS_META_FILE,
            state_json=mosaic / CANVAS_STATE_FILE,
            workspace_json=root / CANVAS_WORKSPACE_FILE,
            legacy_json=root / CANVAS_LEGACY_FILE,
            nodes=root / CANVAS_NODES_DIR,
            edges=root / CANVAS_EDGES_DIR,
            images=root / CANVAS_IMAGES_DIR,
            attachments=root / CANVAS_ATTACHMENTS_DIR,
        )

    def is_valid(self) -> bool:
        """Current-schema metadata present."""
        return self.meta_json.exists()

    def is_legacy(self) -> bool:
        """Flat v1 canvas.json present."""
        return self.legacy_json.exists()

    def create_all(self) -> None:
        for directory in (
            self.root,
            self.mosaic,
            self.nodes,
            self.edges,
            self.images,
            self.attachments,
        ):
            ensure_dir(directory)


@dataclass(frozen=True)
class AppPaths:
    """Files under the application config directory."""

    root: Path
    data: Path
    state_json: Path
    history_json: Path
    config_json: Path

    @classmethod
    def from_root(cls, root: Path | str) -> AppPaths:
        root = Path(root)
        data = root / APP_DATA_DIR
        return cls(
            root=root,
            data=data,
            state_json=data / APP_STATE_FILE,
            history_json=data / APP_HISTORY_FILE,
            config_json=root / APP_CONFIG_FILE,
        )
