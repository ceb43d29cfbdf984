"""Shared test fixtures and helpers for mosaicflow tests."""

import json
import tempfile
from pathlib import Path

import pytest

from mosaicflow.canvases import CanvasStore
from mosaicflow.vaults import VaultStore
from mosaicflow.workbench import Workbench


# --- Fixtures ---


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that's cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def app_dir(temp_dir):
    """Application config directory (history, app state)."""
    return temp_dir / "app"


@pytest.fixture
def vault_store():
    return VaultStore()


@pytest.fixture
def canvas_store():
    return CanvasStore()


@pytest.fixture
def vault(temp_dir, vault_store):
    """A freshly created vault named "Demo"."""
    return vault_store.create(temp_dir / "Demo", "Demo", "demo vault")


@pytest.fixture
def canvas_path(vault):
    """Path of the default "Untitled" canvas inside the demo vault."""
    return Path(vault.path) / "canvases" / "Untitled"


@pytest.fixture
def workbench(app_dir):
    return Workbench(app_dir)


# --- Helper Functions (not fixtures) ---


def write_json(path: Path, data) -> None:
    """Write a JSON file, creating parents."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def read_json(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def make_legacy_vault(root: Path, **fields) -> Path:
    """Create a pre-2.0 vault: vault.json without id/version, plus canvases/."""
    doc = {"name": root.name}
    doc.update(fields)
    write_json(root / "vault.json", doc)
    (root / "canvases").mkdir(parents=True, exist_ok=True)
    return root


def make_legacy_canvas(root: Path, **fields) -> Path:
    """Create a pre-2.0 canvas folder holding only canvas.json."""
    doc = {"name": root.name}
    doc.update(fields)
    write_json(root / "canvas.json", doc)
    return root
