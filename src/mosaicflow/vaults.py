"""Vault entity store.

A vault is a directory holding vault.json plus canvases/, assets/,
attachments/ and .mosaicflow/. A directory is a vault iff vault.json exists.
Vault deletion is left to callers; this store never removes a vault.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .constants import CURRENT_SCHEMA_VERSION, DEFAULT_CANVAS_NAME
from .errors import InvalidFormatError, InvalidVaultError, VaultAlreadyExistsError, VaultNotFoundError
from .canvases import CanvasStore
from .fsutil import read_json, read_model, write_model
from .models import CanvasInfo, VaultInfo, VaultMeta, generate_id
from .paths import VaultPaths

logger = logging.getLogger(__name__)


class VaultStore:
    """Create, open and describe vaults."""

    def __init__(self, canvases: CanvasStore | None = None):
        self.canvases = canvases or CanvasStore()

    def _read_meta(self, paths: VaultPaths) -> VaultMeta:
        """Read vault.json; a pre-2.0 document is reported as needing migration."""
        try:
            return read_model(paths.vault_json, VaultMeta)
        except InvalidFormatError as e:
            doc = read_json(paths.vault_json)
            if isinstance(doc, dict) and (
                "id" not in doc or doc.get("version") != CURRENT_SCHEMA_VERSION
            ):
                raise InvalidVaultError(
                    f"vault.json at {paths.root} predates schema {CURRENT_SCHEMA_VERSION}; "
                    "migrate the vault first",
                    context=str(paths.root),
                ) from e
            raise

    def _info(self, paths: VaultPaths, meta: VaultMeta) -> VaultInfo:
        return VaultInfo.from_meta(meta, str(paths.root), paths.canvas_count())

    def create(self, root: Path, name: str, description: str | None = None) -> VaultInfo:
        """Create a vault with one default "Untitled" canvas.

        Raises:
            VaultAlreadyExistsError: vault.json already exists at root
        """
        paths = VaultPaths.from_root(root)
        if paths.is_valid():
            raise VaultAlreadyExistsError("Vault already exists", context=str(paths.root))

        paths.create_all()
        meta = VaultMeta(id=generate_id(), name=name, description=description or "")
        write_model(paths.vault_json, meta)
        logger.info(f"Created vault '{name}' ({meta.id}) at {paths.root}")

        self.canvases.create(paths.canvases, meta.id, DEFAULT_CANVAS_NAME)
        return VaultInfo.from_meta(meta, str(paths.root), 1)

    def open(self, root: Path) -> VaultInfo:
        """Read an existing vault. Never migrates.

        Raises:
            VaultNotFoundError: no vault.json at root
            InvalidVaultError: vault.json predates the current schema
        """
        paths = VaultPaths.from_root(root)
        if not paths.is_valid():
            raise VaultNotFoundError(paths.root)
        return self._info(paths, self._read_meta(paths))

    def rename(self, root: Path, new_name: str) -> VaultInfo:
        """Change the display name. The directory is not renamed."""
        paths = VaultPaths.from_root(root)
        if not paths.is_valid():
            raise VaultNotFoundError(paths.root)

        meta = self._read_meta(paths)
        meta.name = new_name
        meta.touch()
        write_model(paths.vault_json, meta)
        return self._info(paths, meta)

    def update_description(self, root: Path, description: str) -> VaultInfo:
        paths = VaultPaths.from_root(root)
        if not paths.is_valid():
            raise VaultNotFoundError(paths.root)

        meta = self._read_meta(paths)
        meta.description = description
        meta.touch()
        write_model(paths.vault_json, meta)
        return self._info(paths, meta)

    def is_valid(self, root: Path) -> bool:
        return VaultPaths.from_root(root).is_valid()

    def get_info(self, root: Path) -> VaultInfo | None:
        """Like open(), but None when root is not a vault."""
        paths = VaultPaths.from_root(root)
        if not paths.is_valid():
            return None
        return self._info(paths, self._read_meta(paths))

    def get_vault_id(self, root: Path) -> str | None:
        info = self.get_info(root)
        return info.id if info else None

    def list_canvases(self, root: Path) -> list[CanvasInfo]:
        return self.canvases.list(VaultPaths.from_root(root).canvases)
