"""Schema migrations for vaults and canvases.

Every persisted entity carries a schema version. Migrations form an ordered
chain per entity kind (v1 -> v2, v2 -> v3, ...); `MigrationEngine.migrate`
detects the on-disk version and applies steps until the current version is
reached. Adding a schema bump means registering one more step.

Migrations are additive: legacy files are rewritten in place (vault.json) or
left untouched next to the new layout (canvas.json).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Literal

from .constants import CURRENT_SCHEMA_VERSION, DEFAULT_CANVAS_NAME, SCHEMA_V1, SCHEMA_V2
from .errors import (
    CanvasNotFoundError,
    InvalidCanvasError,
    InvalidVaultError,
    MigrationFailedError,
    MosaicError,
    VaultNotFoundError,
)
from .fsutil import ensure_dir, read_json, read_model, write_json, write_model
from .models import CanvasInfo, CanvasMeta, CanvasUIState, VaultInfo, VaultMeta, generate_id
from .paths import CanvasPaths, VaultPaths
from .timeutil import now_iso

logger = logging.getLogger(__name__)

EntityKind = Literal["vault", "canvas"]


class SchemaVersion(str, Enum):
    V1 = SCHEMA_V1  # no id, flat canvas.json
    V2 = SCHEMA_V2  # UUID-bearing, .mosaic/meta.json

    @classmethod
    def current(cls) -> "SchemaVersion":
        return cls(CURRENT_SCHEMA_VERSION)


@dataclass(frozen=True)
class Migration:
    """One step in a migration chain."""

    kind: EntityKind
    source: str
    target: str
    apply: Callable[[Path], None]
    description: str = ""


# ─────────────────────────────────────────────────────────────────────────────
# Version detection
# ─────────────────────────────────────────────────────────────────────────────


def _is_known_version(version: object) -> bool:
    if not isinstance(version, str):
        return False
    return version == CURRENT_SCHEMA_VERSION or version in {v.value for v in SchemaVersion}


def detect_vault_version(root: Path) -> str | None:
    """Schema version of the vault at root, None if there is no vault.json.

    A document without an id is v1 regardless of what its version says, and so
    is any version string that is not a known schema (e.g. "1.0").
    """
    paths = VaultPaths.from_root(root)
    if not paths.is_valid():
        return None

    doc = read_json(paths.vault_json)
    if not isinstance(doc, dict):
        raise InvalidVaultError(
            f"{paths.vault_json.name} must contain a JSON object", context=str(root)
        )
    version = doc.get("version")
    if "id" not in doc or not _is_known_version(version):
        return SchemaVersion.V1.value
    return version


def detect_canvas_version(root: Path) -> str | None:
    """Schema version of the canvas at root, None if it is not a canvas."""
    paths = CanvasPaths.from_root(root)
    if paths.is_valid():
        doc = read_json(paths.meta_json)
        if isinstance(doc, dict) and isinstance(doc.get("version"), str):
            return doc["version"]
        return CURRENT_SCHEMA_VERSION
    if paths.is_legacy():
        return SchemaVersion.V1.value
    return None


def vault_needs_migration(root: Path) -> bool:
    """True if root holds a vault.json older than the current schema."""
    try:
        version = detect_vault_version(root)
    except MosaicError:
        return False
    return version is not None and version != CURRENT_SCHEMA_VERSION


def canvas_needs_migration(root: Path) -> bool:
    """True if root has only the legacy canvas.json."""
    paths = CanvasPaths.from_root(root)
    return not paths.is_valid() and paths.is_legacy()


def recover_vault_id(canvas_root: Path) -> str | None:
    """Read the owning vault's id from <canvas>/../../vault.json.

    Any failure yields None; callers decide on a fallback.
    """
    vault_json = VaultPaths.from_root(canvas_root.parent.parent).vault_json
    if not vault_json.exists():
        return None
    try:
        doc = read_json(vault_json)
    except MosaicError as e:
        logger.debug(f"Could not read {vault_json}: {e}")
        return None
    if not isinstance(doc, dict):
        return None
    vault_id = doc.get("id")
    return vault_id if isinstance(vault_id, str) and vault_id else None


# ─────────────────────────────────────────────────────────────────────────────
# Steps
# ─────────────────────────────────────────────────────────────────────────────


def _vault_v1_to_v2(root: Path) -> None:
    """Add identity and version fields to vault.json in place.

    Unknown fields are preserved; the file path does not change.
    """
    paths = VaultPaths.from_root(root)
    doc = read_json(paths.vault_json)
    if not isinstance(doc, dict):
        raise InvalidVaultError(
            f"{paths.vault_json.name} must contain a JSON object", context=str(root)
        )

    now = now_iso()
    doc.setdefault("id", generate_id())
    doc.setdefault("name", root.name)
    doc.setdefault("description", "")
    doc.setdefault("created_at", now)
    doc["version"] = SchemaVersion.V2.value
    doc["updated_at"] = now

    write_json(paths.vault_json, doc)


def _canvas_v1_to_v2(root: Path) -> None:
    """Build .mosaic/meta.json from a flat canvas.json.

    canvas.json is left in place. An existing state.json is not overwritten.
    """
    paths = CanvasPaths.from_root(root)
    ensure_dir(paths.mosaic)

    legacy = read_json(paths.legacy_json)
    if not isinstance(legacy, dict):
        raise InvalidCanvasError(
            f"{paths.legacy_json.name} must contain a JSON object", context=str(root)
        )

    vault_id = recover_vault_id(root)
    if vault_id is None:
        vault_id = generate_id()
        logger.warning(
            f"Could not resolve owning vault for canvas {root}; "
            f"assigned placeholder vault_id {vault_id}"
        )

    now = now_iso()
    legacy_tags = legacy.get("tags")
    meta = CanvasMeta(
        id=_str_field(legacy, "id") or generate_id(),
        vault_id=vault_id,
        name=_str_field(legacy, "name") or DEFAULT_CANVAS_NAME,
        description=_str_field(legacy, "description") or "",
        tags=[t for t in legacy_tags if isinstance(t, str)] if isinstance(legacy_tags, list) else [],
        created_at=_str_field(legacy, "created_at") or now,
        updated_at=now,
        version=SchemaVersion.V2.value,
    )
    write_model(paths.meta_json, meta)

    if not paths.state_json.exists():
        write_model(paths.state_json, CanvasUIState())


def _str_field(doc: dict, key: str) -> str | None:
    value = doc.get(key)
    return value if isinstance(value, str) and value else None


DEFAULT_MIGRATIONS: tuple[Migration, ...] = (
    Migration(
        kind="vault",
        source=SchemaVersion.V1.value,
        target=SchemaVersion.V2.value,
        apply=_vault_v1_to_v2,
        description="add id/description/version to vault.json",
    ),
    Migration(
        kind="canvas",
        source=SchemaVersion.V1.value,
        target=SchemaVersion.V2.value,
        apply=_canvas_v1_to_v2,
        description="move canvas.json metadata to .mosaic/meta.json",
    ),
)


# ─────────────────────────────────────────────────────────────────────────────
# Engine
# ─────────────────────────────────────────────────────────────────────────────


class MigrationEngine:
    """Applies registered migration chains to vaults and canvases."""

    _detectors: dict[str, Callable[[Path], str | None]] = {
        "vault": detect_vault_version,
        "canvas": detect_canvas_version,
    }

    def __init__(self, migrations: Iterable[Migration] | None = None):
        self._steps: dict[tuple[str, str], Migration] = {}
        for migration in DEFAULT_MIGRATIONS if migrations is None else migrations:
            self.register(migration)

    def register(self, migration: Migration) -> None:
        """Add a step. A later step for the same (kind, source) replaces it."""
        self._steps[(migration.kind, migration.source)] = migration

    def steps(self, kind: EntityKind) -> list[Migration]:
        return [m for (k, _), m in self._steps.items() if k == kind]

    def detect_version(self, kind: EntityKind, root: Path) -> str | None:
        return self._detectors[kind](Path(root))

    def migrate(self, kind: EntityKind, root: Path) -> list[Migration]:
        """Bring the entity at root up to the current schema.

        Returns:
            The steps that were applied (empty if already current).

        Raises:
            VaultNotFoundError / CanvasNotFoundError: nothing to migrate
            MigrationFailedError: no step for a detected version, or a
                step that did not advance the version
        """
        root = Path(root)
        version = self.detect_version(kind, root)
        if version is None:
            raise VaultNotFoundError(root) if kind == "vault" else CanvasNotFoundError(root)

        applied: list[Migration] = []
        while version != CURRENT_SCHEMA_VERSION:
            step = self._steps.get((kind, version))
            if step is None:
                raise MigrationFailedError(
                    f"No {kind} migration from schema {version}", context=str(root)
                )

            logger.info(f"Migrating {kind} {root} from {step.source} to {step.target}")
            step.apply(root)
            applied.append(step)

            new_version = self.detect_version(kind, root)
            if new_version == version:
                raise MigrationFailedError(
                    f"{kind} migration {step.source} -> {step.target} did not advance",
                    context=str(root),
                )
            version = new_version

        return applied

    def migrate_vault(self, root: Path) -> VaultInfo:
        """Upgrade vault.json in place and return the resulting info."""
        root = Path(root)
        self.migrate("vault", root)
        paths = VaultPaths.from_root(root)
        meta = read_model(paths.vault_json, VaultMeta)
        return VaultInfo.from_meta(meta, str(root), paths.canvas_count())

    def migrate_canvas(self, root: Path) -> CanvasInfo:
        """Create the current-schema layout for a legacy canvas."""
        root = Path(root)
        self.migrate("canvas", root)
        meta = read_model(CanvasPaths.from_root(root).meta_json, CanvasMeta)
        return CanvasInfo.from_meta(meta, str(root))
