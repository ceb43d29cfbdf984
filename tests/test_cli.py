"""Tests for CLI commands."""

import json
from pathlib import Path

from click.testing import CliRunner

from mosaicflow.cli import cli

from conftest import make_legacy_vault, read_json


runner = CliRunner()


def invoke(app_dir, *args):
    return runner.invoke(cli, ["--app-dir", str(app_dir), *args])


def create_vault(app_dir, path, name="Demo"):
    result = invoke(app_dir, "vault", "create", str(path), "--name", name, "--json")
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


def test_vault_create_json(app_dir, temp_dir):
    vault = create_vault(app_dir, temp_dir / "Demo")

    assert vault["name"] == "Demo"
    assert vault["canvas_count"] == 1
    assert read_json(temp_dir / "Demo" / "vault.json")["id"] == vault["id"]


def test_vault_create_default_name(app_dir, temp_dir):
    result = invoke(app_dir, "vault", "create", str(temp_dir / "Notes"), "--json")
    assert result.exit_code == 0
    assert json.loads(result.output)["name"] == "Notes"


def test_vault_create_existing_fails(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")
    result = invoke(app_dir, "vault", "create", str(temp_dir / "Demo"))
    assert result.exit_code == 1
    assert "Error" in result.output


def test_vault_open_missing(app_dir, temp_dir):
    result = invoke(app_dir, "vault", "open", str(temp_dir / "missing"))
    assert result.exit_code == 1
    assert "Error" in result.output
    assert "vault_not_found" in result.output


def test_vault_open_legacy(app_dir, temp_dir):
    root = make_legacy_vault(temp_dir / "Old")
    result = invoke(app_dir, "vault", "open", str(root), "--json")
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["id"] == read_json(root / "vault.json")["id"]


def test_vault_info_not_a_vault(app_dir, temp_dir):
    result = invoke(app_dir, "vault", "info", str(temp_dir))
    assert result.exit_code == 1


def test_vault_rename_and_describe(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")

    assert invoke(app_dir, "vault", "rename", str(temp_dir / "Demo"), "Better").exit_code == 0
    assert invoke(app_dir, "vault", "describe", str(temp_dir / "Demo"), "words").exit_code == 0

    doc = read_json(temp_dir / "Demo" / "vault.json")
    assert doc["name"] == "Better"
    assert doc["description"] == "words"


def test_vault_migrate(app_dir, temp_dir):
    root = make_legacy_vault(temp_dir / "Old")
    result = invoke(app_dir, "vault", "migrate", str(root))
    assert result.exit_code == 0
    assert read_json(root / "vault.json")["version"] == "2.0.0"


def test_vault_canvases(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")
    result = invoke(app_dir, "vault", "canvases", str(temp_dir / "Demo"), "--json")
    assert result.exit_code == 0
    assert [c["name"] for c in json.loads(result.output)] == ["Untitled"]


def test_canvas_lifecycle(app_dir, temp_dir):
    vault = create_vault(app_dir, temp_dir / "Demo")

    result = invoke(app_dir, "canvas", "create", vault["path"], "Plan", "--json")
    assert result.exit_code == 0, result.output
    canvas = json.loads(result.output)
    assert canvas["vault_id"] == vault["id"]

    result = invoke(app_dir, "canvas", "tag", canvas["path"], "--add", "ui", "--add", "draft")
    assert result.exit_code == 0
    assert read_json(Path(canvas["path"]) / ".mosaic" / "meta.json")["tags"] == ["ui", "draft"]

    result = invoke(app_dir, "canvas", "describe", canvas["path"], "plans")
    assert result.exit_code == 0

    result = invoke(app_dir, "canvas", "open", canvas["path"], "--json")
    assert json.loads(result.output)["description"] == "plans"

    result = invoke(app_dir, "canvas", "delete", canvas["path"], "--yes")
    assert result.exit_code == 0
    assert not Path(canvas["path"]).exists()


def test_canvas_tag_set_conflict(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")
    path = str(temp_dir / "Demo" / "canvases" / "Untitled")
    result = invoke(app_dir, "canvas", "tag", path, "--set", "a", "--add", "b")
    assert result.exit_code == 1


def test_canvas_delete_aborted(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")
    path = temp_dir / "Demo" / "canvases" / "Untitled"
    result = runner.invoke(cli, ["--app-dir", str(app_dir), "canvas", "delete", str(path)], input="n\n")
    assert result.exit_code == 0
    assert path.exists()


def test_canvas_rename(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")
    path = temp_dir / "Demo" / "canvases" / "Untitled"
    result = invoke(app_dir, "canvas", "rename", str(path), "Roadmap")
    assert result.exit_code == 0
    assert (temp_dir / "Demo" / "canvases" / "Roadmap").is_dir()


def test_canvas_state(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")
    path = str(temp_dir / "Demo" / "canvases" / "Untitled")

    result = invoke(app_dir, "canvas", "state", path, "--zoom", "2", "--mode", "pan", "--json")
    assert result.exit_code == 0, result.output
    state = json.loads(result.output)
    assert state["viewport"] == {"x": 0.0, "y": 0.0, "zoom": 2.0}
    assert state["canvas_mode"] == "pan"

    result = invoke(app_dir, "canvas", "state", path)
    assert "zoom=2" in result.output


def test_workspace_commands(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")
    path = str(temp_dir / "Demo" / "canvases" / "Untitled")

    assert invoke(app_dir, "workspace", "add-node", path, "a", "--data", '{"text": "hi"}').exit_code == 0
    assert invoke(app_dir, "workspace", "add-node", path, "b", "--x", "100").exit_code == 0
    assert invoke(app_dir, "workspace", "add-edge", path, "ab", "a", "b", "--label", "next").exit_code == 0

    result = invoke(app_dir, "workspace", "show", path, "--json")
    doc = json.loads(result.output)
    assert [n["id"] for n in doc["nodes"]] == ["a", "b"]
    assert doc["nodes"][0]["data"] == {"text": "hi"}
    assert doc["edges"][0]["label"] == "next"

    assert invoke(app_dir, "workspace", "remove-node", path, "a").exit_code == 0
    doc = json.loads(invoke(app_dir, "workspace", "show", path, "--json").output)
    assert [n["id"] for n in doc["nodes"]] == ["b"]
    assert doc["edges"] == []


def test_workspace_bad_data(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")
    path = str(temp_dir / "Demo" / "canvases" / "Untitled")
    result = invoke(app_dir, "workspace", "add-node", path, "a", "--data", "[1, 2]")
    assert result.exit_code != 0


def test_history_and_state(app_dir, temp_dir):
    vault = create_vault(app_dir, temp_dir / "Demo")
    canvas_path = str(temp_dir / "Demo" / "canvases" / "Untitled")
    invoke(app_dir, "canvas", "open", canvas_path)

    vaults = json.loads(invoke(app_dir, "history", "vaults", "--json").output)
    assert [v["id"] for v in vaults] == [vault["id"]]

    canvases = json.loads(
        invoke(app_dir, "history", "canvases", "--vault-id", vault["id"], "--json").output
    )
    assert len(canvases) == 1

    state = json.loads(invoke(app_dir, "state", "show", "--json").output)
    assert state["vault"]["id"] == vault["id"]
    assert state["canvas"]["id"] == canvases[0]["id"]

    assert invoke(app_dir, "history", "forget-vault", vault["id"]).exit_code == 0
    assert json.loads(invoke(app_dir, "history", "canvases", "--json").output) == []


def test_history_since_filter(app_dir, temp_dir):
    create_vault(app_dir, temp_dir / "Demo")

    recent = json.loads(invoke(app_dir, "history", "vaults", "--since", "1 hour ago", "--json").output)
    assert len(recent) == 1

    result = invoke(app_dir, "history", "vaults", "--since", "whenever")
    assert result.exit_code == 1


def test_app_dir_from_env(temp_dir):
    app_dir = temp_dir / "env-app"
    result = runner.invoke(
        cli,
        ["vault", "create", str(temp_dir / "Demo")],
        env={"MOSAIC_HOME": str(app_dir)},
    )
    assert result.exit_code == 0
    assert (app_dir / "data" / "history.json").exists()


def test_max_history_option(app_dir, temp_dir):
    for name in ("a", "b", "c"):
        result = runner.invoke(
            cli,
            ["--app-dir", str(app_dir), "--max-history", "2", "vault", "create", str(temp_dir / name)],
        )
        assert result.exit_code == 0

    vaults = json.loads(invoke(app_dir, "history", "vaults", "--json").output)
    assert len(vaults) == 2
