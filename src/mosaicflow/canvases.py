"""Canvas entity store.

A canvas lives at <vault>/canvases/<folder>/. Identity is the id in
.mosaic/meta.json, never the folder name: folders may carry a numeric suffix
after a name collision and are renamed on a best-effort basis.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .constants import MAX_FOLDER_SUFFIX
from .errors import AlreadyExistsError, CanvasNotFoundError, MosaicError
from .fsutil import list_subdirs, read_model, remove_tree, rename, write_model
from .migrations import MigrationEngine
from .models import CanvasInfo, CanvasMeta, CanvasUIState, WorkspaceDocument, generate_id
from .paths import CanvasPaths, sanitize_name

logger = logging.getLogger(__name__)


def _free_folder(canvases_dir: Path, folder_name: str) -> Path:
    """First free path among <name>, <name>_1, <name>_2, ..."""
    candidate = canvases_dir / folder_name
    if not candidate.exists():
        return candidate

    for counter in range(1, MAX_FOLDER_SUFFIX + 1):
        candidate = canvases_dir / f"{folder_name}_{counter}"
        if not candidate.exists():
            return candidate

    raise AlreadyExistsError(
        f"No free folder name for '{folder_name}' after {MAX_FOLDER_SUFFIX} attempts",
        context=str(canvases_dir),
    )


class CanvasStore:
    """Create, open, list, rename, delete and describe canvases."""

    def __init__(self, migrations: MigrationEngine | None = None):
        self.migrations = migrations or MigrationEngine()

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def create(
        self,
        canvases_dir: Path,
        vault_id: str,
        name: str,
        description: str | None = None,
    ) -> CanvasInfo:
        """Create a canvas folder with metadata, default UI state and an empty workspace."""
        canvases_dir = Path(canvases_dir)
        root = _free_folder(canvases_dir, sanitize_name(name))
        paths = CanvasPaths.from_root(root)
        paths.create_all()

        meta = CanvasMeta(
            id=generate_id(),
            vault_id=vault_id,
            name=name,
            description=description or "",
        )
        write_model(paths.meta_json, meta)
        write_model(paths.state_json, CanvasUIState())
        write_model(paths.workspace_json, WorkspaceDocument())

        logger.info(f"Created canvas '{name}' ({meta.id}) at {root}")
        return CanvasInfo.from_meta(meta, str(root))

    def open(self, root: Path) -> CanvasInfo:
        """Read canvas metadata, migrating a legacy canvas.json first.

        Raises:
            CanvasNotFoundError: neither meta.json nor canvas.json exists
        """
        root = Path(root)
        paths = CanvasPaths.from_root(root)

        if paths.is_valid():
            meta = read_model(paths.meta_json, CanvasMeta)
            return CanvasInfo.from_meta(meta, str(root))

        if paths.is_legacy():
            return self.migrations.migrate_canvas(root)

        raise CanvasNotFoundError(root)

    def list(self, canvases_dir: Path) -> list[CanvasInfo]:
        """All canvases in a folder, most recently updated first.

        A canvas that fails to open is skipped so one corrupt folder cannot
        hide the rest.
        """
        canvases = []
        for folder in list_subdirs(Path(canvases_dir)):
            try:
                canvases.append(self.open(folder))
            except MosaicError as e:
                logger.warning(f"Skipping canvas folder {folder.name}: {e}")
                continue

        canvases.sort(key=lambda c: c.updated_at, reverse=True)
        return canvases

    def rename(self, root: Path, new_name: str) -> CanvasInfo:
        """Rename a canvas and, when possible, its folder.

        The folder follows the sanitized name only if that differs from the
        current folder and is not taken; otherwise it stays put.
        """
        root = Path(root)
        self.open(root)  # migrates legacy canvases

        paths = CanvasPaths.from_root(root)
        meta = read_model(paths.meta_json, CanvasMeta)
        meta.name = new_name
        meta.touch()
        write_model(paths.meta_json, meta)

        final_root = root
        target = root.parent / sanitize_name(new_name)
        if target != root and not target.exists():
            rename(root, target)
            final_root = target
            logger.info(f"Moved canvas folder {root.name} -> {target.name}")

        return CanvasInfo.from_meta(meta, str(final_root))

    def delete(self, root: Path) -> str | None:
        """Remove the canvas directory.

        Returns:
            The canvas id if it could be read beforehand, for history cleanup.
        """
        meta = self.remove(root)
        return meta.id if meta else None

    def remove(self, root: Path) -> CanvasMeta | None:
        """Remove the canvas directory, returning the metadata read beforehand."""
        root = Path(root)
        meta = self.read_meta(root)
        if meta is None:
            logger.warning(f"Deleting canvas at {root} without a readable id")

        remove_tree(root)
        logger.info(f"Deleted canvas {meta.id if meta else '?'} at {root}")
        return meta

    def read_meta(self, root: Path) -> CanvasMeta | None:
        """meta.json as a model, or None if it is absent or unreadable."""
        paths = CanvasPaths.from_root(root)
        if not paths.is_valid():
            return None
        try:
            return read_model(paths.meta_json, CanvasMeta)
        except MosaicError as e:
            logger.debug(f"Unreadable canvas metadata at {root}: {e}")
            return None

    def get_canvas_id(self, root: Path) -> str | None:
        """The id from meta.json, or None if it cannot be read."""
        meta = self.read_meta(root)
        return meta.id if meta else None

    # ─────────────────────────────────────────────────────────────────────────
    # Metadata updates (no implicit migration)
    # ─────────────────────────────────────────────────────────────────────────

    def _load_current(self, root: Path) -> tuple[CanvasPaths, CanvasMeta]:
        paths = CanvasPaths.from_root(root)
        if not paths.is_valid():
            raise CanvasNotFoundError(root)
        return paths, read_model(paths.meta_json, CanvasMeta)

    def update_tags(self, root: Path, tags: list[str]) -> CanvasInfo:
        root = Path(root)
        paths, meta = self._load_current(root)
        meta.tags = list(dict.fromkeys(tags))
        meta.touch()
        write_model(paths.meta_json, meta)
        return CanvasInfo.from_meta(meta, str(root))

    def add_tag(self, root: Path, tag: str) -> CanvasInfo:
        root = Path(root)
        paths, meta = self._load_current(root)
        if meta.add_tag(tag):
            write_model(paths.meta_json, meta)
        return CanvasInfo.from_meta(meta, str(root))

    def remove_tag(self, root: Path, tag: str) -> CanvasInfo:
        root = Path(root)
        paths, meta = self._load_current(root)
        if meta.remove_tag(tag):
            write_model(paths.meta_json, meta)
        return CanvasInfo.from_meta(meta, str(root))

    def update_description(self, root: Path, description: str) -> CanvasInfo:
        root = Path(root)
        paths, meta = self._load_current(root)
        meta.description = description
        meta.touch()
        write_model(paths.meta_json, meta)
        return CanvasInfo.from_meta(meta, str(root))

    # ─────────────────────────────────────────────────────────────────────────
    # UI state
    # ─────────────────────────────────────────────────────────────────────────

    def load_state(self, root: Path) -> CanvasUIState:
        """UI state for the canvas; defaults if state.json is absent."""
        paths = CanvasPaths.from_root(root)
        if not paths.state_json.exists():
            return CanvasUIState()
        return read_model(paths.state_json, CanvasUIState)

    def save_state(self, root: Path, state: CanvasUIState) -> CanvasUIState:
        """Overwrite state.json; the saved copy is stamped with updated_at."""
        paths = CanvasPaths.from_root(root)
        state = state.model_copy(deep=True)
        state.touch()
        write_model(paths.state_json, state)  # creates .mosaic/ if missing
        return state
