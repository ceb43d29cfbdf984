"""Tests for schema detection and the migration chain."""

import logging
from pathlib import Path

import pytest

from mosaicflow.errors import CanvasNotFoundError, MigrationFailedError, VaultNotFoundError
from mosaicflow.migrations import (
    Migration,
    MigrationEngine,
    SchemaVersion,
    canvas_needs_migration,
    detect_canvas_version,
    detect_vault_version,
    recover_vault_id,
    vault_needs_migration,
)

from conftest import make_legacy_canvas, make_legacy_vault, read_json, write_json


def vault_path_canvases(vault):
    return Path(vault.path) / "canvases"


class TestDetection:
    def test_no_vault(self, temp_dir):
        assert detect_vault_version(temp_dir) is None
        assert vault_needs_migration(temp_dir) is False

    def test_legacy_vault_without_id(self, temp_dir):
        make_legacy_vault(temp_dir)
        assert detect_vault_version(temp_dir) == "1.0.0"
        assert vault_needs_migration(temp_dir) is True

    def test_id_without_version_is_v1(self, temp_dir):
        write_json(temp_dir / "vault.json", {"id": "abc", "name": "x"})
        assert detect_vault_version(temp_dir) == SchemaVersion.V1.value

    def test_unknown_version_string_is_v1(self, temp_dir):
        write_json(temp_dir / "vault.json", {"id": "abc", "name": "V", "version": "1.0"})
        assert detect_vault_version(temp_dir) == SchemaVersion.V1.value
        assert vault_needs_migration(temp_dir) is True

    def test_current_vault(self, vault):
        assert detect_vault_version(vault.path) == "2.0.0"
        assert vault_needs_migration(vault.path) is False

    def test_corrupt_vault_does_not_need_migration(self, temp_dir):
        (temp_dir / "vault.json").write_text("{{{", encoding="utf-8")
        assert vault_needs_migration(temp_dir) is False

    def test_canvas_versions(self, temp_dir, canvas_path):
        assert detect_canvas_version(temp_dir / "nothing") is None
        assert detect_canvas_version(canvas_path) == "2.0.0"

        legacy = make_legacy_canvas(temp_dir / "Old")
        assert detect_canvas_version(legacy) == "1.0.0"
        assert canvas_needs_migration(legacy) is True
        assert canvas_needs_migration(canvas_path) is False


class TestVaultMigration:
    def test_assigns_id_and_version(self, temp_dir):
        root = make_legacy_vault(temp_dir / "Legacy", description="old")
        info = MigrationEngine().migrate_vault(root)

        doc = read_json(root / "vault.json")
        assert doc["version"] == "2.0.0"
        assert doc["id"] == info.id
        assert doc["description"] == "old"
        assert info.name == "Legacy"

    def test_idempotent_id(self, temp_dir):
        root = make_legacy_vault(temp_dir / "Legacy")
        engine = MigrationEngine()

        first = engine.migrate_vault(root)
        second = engine.migrate_vault(root)

        assert first.id == second.id
        assert read_json(root / "vault.json")["version"] == "2.0.0"

    def test_already_current_applies_nothing(self, vault):
        assert MigrationEngine().migrate("vault", vault.path) == []

    def test_unknown_version_overwritten(self, temp_dir):
        write_json(temp_dir / "vault.json", {"id": "abc", "name": "V", "version": "1.0"})
        info = MigrationEngine().migrate_vault(temp_dir)
        assert info.id == "abc"
        assert read_json(temp_dir / "vault.json")["version"] == "2.0.0"

    def test_existing_id_kept(self, temp_dir):
        write_json(temp_dir / "vault.json", {"id": "keep-me", "name": "Kept"})
        info = MigrationEngine().migrate_vault(temp_dir)
        assert info.id == "keep-me"

    def test_unknown_fields_preserved(self, temp_dir):
        root = make_legacy_vault(temp_dir / "Legacy", color="teal")
        MigrationEngine().migrate_vault(root)
        assert read_json(root / "vault.json")["color"] == "teal"

    def test_missing_vault(self, temp_dir):
        with pytest.raises(VaultNotFoundError):
            MigrationEngine().migrate_vault(temp_dir)


class TestCanvasMigration:
    def test_creates_meta_and_keeps_legacy_file(self, vault, canvas_store):
        root = make_legacy_canvas(
            vault_path_canvases(vault) / "Old",
            id="legacy-id",
            description="from before",
            tags=["a", "b", 3],
        )

        info = MigrationEngine().migrate_canvas(root)

        assert info.id == "legacy-id"
        assert info.vault_id == vault.id
        assert info.description == "from before"
        assert info.tags == ["a", "b"]
        assert (root / ".mosaic" / "meta.json").exists()
        assert (root / ".mosaic" / "state.json").exists()
        assert (root / "canvas.json").exists()

    def test_existing_state_not_overwritten(self, vault):
        root = make_legacy_canvas(vault_path_canvases(vault) / "Old")
        write_json(root / ".mosaic" / "state.json", {"canvas_mode": "pan"})

        MigrationEngine().migrate_canvas(root)

        assert read_json(root / ".mosaic" / "state.json") == {"canvas_mode": "pan"}

    def test_orphan_canvas_gets_placeholder_vault_id(self, temp_dir, caplog):
        root = make_legacy_canvas(temp_dir / "lonely" / "canvases" / "Orphan")

        with caplog.at_level(logging.WARNING, logger="mosaicflow.migrations"):
            info = MigrationEngine().migrate_canvas(root)

        assert len(info.vault_id) == 36
        assert "placeholder" in caplog.text

    def test_undecodable_vault_json_gets_placeholder(self, temp_dir):
        vault_root = temp_dir / "garbled"
        vault_root.mkdir()
        (vault_root / "vault.json").write_bytes(b"\xff\xff")
        root = make_legacy_canvas(vault_root / "canvases" / "Old")

        info = MigrationEngine().migrate_canvas(root)

        assert len(info.vault_id) == 36

    def test_name_falls_back_to_untitled(self, vault):
        root = vault_path_canvases(vault) / "Nameless"
        write_json(root / "canvas.json", {})
        assert MigrationEngine().migrate_canvas(root).name == "Untitled"

    def test_nothing_to_migrate(self, temp_dir):
        (temp_dir / "empty").mkdir()
        with pytest.raises(CanvasNotFoundError):
            MigrationEngine().migrate_canvas(temp_dir / "empty")

    def test_recover_vault_id(self, vault, canvas_path, temp_dir):
        assert recover_vault_id(canvas_path) == vault.id
        assert recover_vault_id(temp_dir / "x" / "y" / "z") is None


class TestEngine:
    def test_missing_step_fails(self, temp_dir):
        make_legacy_vault(temp_dir)
        with pytest.raises(MigrationFailedError):
            MigrationEngine(migrations=[]).migrate("vault", temp_dir)

    def test_step_that_does_not_advance_fails(self, temp_dir):
        make_legacy_vault(temp_dir)
        noop = Migration(kind="vault", source="1.0.0", target="2.0.0", apply=lambda root: None)
        with pytest.raises(MigrationFailedError, match="did not advance"):
            MigrationEngine(migrations=[noop]).migrate("vault", temp_dir)

    def test_chain_applies_steps_in_order(self, temp_dir, monkeypatch):
        monkeypatch.setattr("mosaicflow.migrations.CURRENT_SCHEMA_VERSION", "3.0.0")

        def v2_to_v3(root):
            doc = read_json(root / "vault.json")
            doc["version"] = "3.0.0"
            doc["layout"] = "grid"
            write_json(root / "vault.json", doc)

        engine = MigrationEngine()
        engine.register(Migration(kind="vault", source="2.0.0", target="3.0.0", apply=v2_to_v3))
        make_legacy_vault(temp_dir)

        applied = engine.migrate("vault", temp_dir)

        assert [(m.source, m.target) for m in applied] == [("1.0.0", "2.0.0"), ("2.0.0", "3.0.0")]
        doc = read_json(temp_dir / "vault.json")
        assert doc["version"] == "3.0.0"
        assert doc["layout"] == "grid"

    def test_steps_by_kind(self):
        engine = MigrationEngine()
        assert [m.kind for m in engine.steps("vault")] == ["vault"]
        assert [m.kind for m in engine.steps("canvas")] == ["canvas"]
