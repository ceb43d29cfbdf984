"""Tests for VaultStore."""

from pathlib import Path

import pytest

from mosaicflow.errors import InvalidVaultError, VaultAlreadyExistsError, VaultNotFoundError

from conftest import make_legacy_vault, read_json


def test_create_lays_out_vault(temp_dir, vault_store):
    info = vault_store.create(temp_dir / "Demo", "Demo", "A demo")

    root = temp_dir / "Demo"
    for name in ("canvases", "assets", "attachments", ".mosaicflow"):
        assert (root / name).is_dir()

    doc = read_json(root / "vault.json")
    assert doc["id"] == info.id
    assert doc["name"] == "Demo"
    assert doc["description"] == "A demo"
    assert doc["version"] == "2.0.0"
    assert info.canvas_count == 1


def test_create_adds_untitled_canvas(vault, vault_store):
    canvases = vault_store.list_canvases(vault.path)
    assert [c.name for c in canvases] == ["Untitled"]
    assert canvases[0].vault_id == vault.id


def test_create_twice_fails(vault, vault_store):
    with pytest.raises(VaultAlreadyExistsError):
        vault_store.create(vault.path, "Again")


def test_create_then_open_roundtrip(vault, vault_store):
    opened = vault_store.open(vault.path)
    assert (opened.id, opened.name, opened.description) == (vault.id, vault.name, vault.description)
    assert opened.canvas_count == 1


def test_open_missing(temp_dir, vault_store):
    with pytest.raises(VaultNotFoundError):
        vault_store.open(temp_dir / "nope")


def test_open_legacy_does_not_migrate(temp_dir, vault_store):
    root = make_legacy_vault(temp_dir / "Old")
    with pytest.raises(InvalidVaultError):
        vault_store.open(root)
    assert "id" not in read_json(root / "vault.json")


def test_rename_keeps_folder(vault, vault_store):
    renamed = vault_store.rename(vault.path, "Renamed")
    assert renamed.name == "Renamed"
    assert renamed.id == vault.id
    assert renamed.path == vault.path
    assert renamed.updated_at >= vault.updated_at
    assert Path(vault.path).is_dir()


def test_update_description(vault, vault_store):
    updated = vault_store.update_description(vault.path, "new words")
    assert updated.description == "new words"
    assert vault_store.open(vault.path).description == "new words"


def test_rename_missing(temp_dir, vault_store):
    with pytest.raises(VaultNotFoundError):
        vault_store.rename(temp_dir, "x")


def test_is_valid_and_get_info(temp_dir, vault, vault_store):
    assert vault_store.is_valid(vault.path)
    assert not vault_store.is_valid(temp_dir / "nope")
    assert vault_store.get_info(temp_dir / "nope") is None
    assert vault_store.get_info(vault.path).id == vault.id
    assert vault_store.get_vault_id(vault.path) == vault.id


def test_canvas_count_counts_folders(vault, vault_store):
    (Path(vault.path) / "canvases" / "stray").mkdir()
    assert vault_store.open(vault.path).canvas_count == 2
