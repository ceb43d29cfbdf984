"""mosaic: command line access to vaults, canvases and workspaces.

Every command goes through the Workbench, so history, app state and
notifications behave exactly as they do for the GUI.
"""

import json
import logging
import os
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .constants import DEFAULT_RECENT_LIMIT
from .errors import MosaicError
from .models import CanvasUIState, Position, ViewportState, WorkspaceEdge, WorkspaceNode
from .timeutil import format_relative_time, parse_iso, parse_time_reference
from .workbench import Workbench

console = Console()


def get_app_dir() -> Path:
    """Find the app config directory from MOSAIC_HOME or the user config dir."""
    if env_path := os.environ.get("MOSAIC_HOME"):
        return Path(env_path)
    return Path.home() / ".config" / "mosaicflow"


def _fail(err: Exception) -> None:
    console.print(f"[red]Error:[/red] {escape(str(err))}")
    sys.exit(1)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _print_vault(vault, title: str) -> None:
    console.print(f"[green]✓[/green] {title} [bold]{escape(vault.name)}[/bold]")
    console.print(f"  ID:          [yellow]{vault.id}[/yellow]")
    console.print(f"  Path:        {escape(vault.path)}")
    if vault.description:
        console.print(f"  Description: {escape(vault.description)}")
    console.print(f"  Canvases:    {vault.canvas_count}")
    console.print(f"  Updated:     {format_relative_time(vault.updated_at)}")


def _print_canvas(canvas, title: str) -> None:
    console.print(f"[green]✓[/green] {title} [bold]{escape(canvas.name)}[/bold]")
    console.print(f"  ID:    [yellow]{canvas.id}[/yellow]")
    console.print(f"  Vault: {canvas.vault_id}")
    console.print(f"  Path:  {escape(canvas.path)}")
    if canvas.description:
        console.print(f"  Description: {escape(canvas.description)}")
    if canvas.tags:
        console.print(f"  Tags:  {escape(', '.join(canvas.tags))}")


@click.group()
@click.option(
    "--app-dir",
    envvar="MOSAIC_HOME",
    type=click.Path(path_type=Path),
    help="Application data directory (history, last-opened state)",
)
@click.option(
    "--max-history",
    envvar="MOSAIC_MAX_HISTORY",
    type=click.IntRange(min=1),
    help="Maximum number of history entries to keep",
)
@click.option("-v", "--verbose", is_flag=True, help="Log storage operations")
@click.pass_context
def cli(ctx, app_dir, max_history, verbose):
    """Mosaic - vault and canvas storage."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    ctx.ensure_object(dict)
    ctx.obj["app_dir"] = app_dir or get_app_dir()
    ctx.obj["workbench"] = Workbench(ctx.obj["app_dir"], max_history=max_history)


# --- Vault Commands ---


@cli.group()
def vault():
    """Create, open and describe vaults."""
    pass


@vault.command("create")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("-n", "--name", help="Display name (default: folder name)")
@click.option("-d", "--description", help="Vault description")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vault_create(ctx, path, name, description, as_json):
    """Create a new vault with one empty canvas."""
    try:
        info = ctx.obj["workbench"].create_vault(path, name or path.name, description)
    except MosaicError as e:
        _fail(e)

    if as_json:
        _echo_json(info.model_dump())
    else:
        _print_vault(info, "Created vault")


@vault.command("open")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vault_open(ctx, path, as_json):
    """Open a vault, migrating it if it uses an older layout."""
    try:
        info = ctx.obj["workbench"].open_vault(path)
    except MosaicError as e:
        _fail(e)

    if as_json:
        _echo_json(info.model_dump())
    else:
        _print_vault(info, "Opened vault")


@vault.command("info")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vault_info(ctx, path, as_json):
    """Show vault metadata without recording it in history."""
    try:
        info = ctx.obj["workbench"].get_vault_info(path)
    except MosaicError as e:
        _fail(e)

    if info is None:
        console.print(f"[yellow]![/yellow] Not a vault: {escape(str(path))}")
        sys.exit(1)

    if as_json:
        _echo_json(info.model_dump())
    else:
        _print_vault(info, "Vault")


@vault.command("rename")
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("new_name")
@click.pass_context
def vault_rename(ctx, path, new_name):
    """Change a vault's display name. The folder is not renamed."""
    try:
        info = ctx.obj["workbench"].rename_vault(path, new_name)
    except MosaicError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Renamed vault to [bold]{escape(info.name)}[/bold]")


@vault.command("describe")
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("description")
@click.pass_context
def vault_describe(ctx, path, description):
    """Set a vault's description."""
    try:
        ctx.obj["workbench"].update_vault_description(path, description)
    except MosaicError as e:
        _fail(e)
    console.print("[green]✓[/green] Updated vault description")


@vault.command("migrate")
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_context
def vault_migrate(ctx, path):
    """Upgrade vault.json to the current schema."""
    try:
        info = ctx.obj["workbench"].migrate_vault(path)
    except MosaicError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Vault [bold]{escape(info.name)}[/bold] is at the current schema")
    console.print(f"  ID: [yellow]{info.id}[/yellow]")


@vault.command("canvases")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def vault_canvases(ctx, path, as_json):
    """List the canvases in a vault, most recently updated first."""
    try:
        canvases = ctx.obj["workbench"].list_canvases(path)
    except MosaicError as e:
        _fail(e)

    if as_json:
        _echo_json([c.model_dump() for c in canvases])
        return

    if not canvases:
        console.print("[dim]No canvases[/dim]")
        return

    table = Table(title="Canvases")
    table.add_column("Name", style="cyan")
    table.add_column("Tags", style="green")
    table.add_column("Updated", style="dim")
    table.add_column("Folder")

    for canvas in canvases:
        table.add_row(
            escape(canvas.name),
            escape(", ".join(canvas.tags)),
            format_relative_time(canvas.updated_at),
            escape(Path(canvas.path).name),
        )

    console.print(table)


# --- Canvas Commands ---


@cli.group()
def canvas():
    """Create, open and organise canvases."""
    pass


@canvas.command("create")
@click.argument("vault_path", type=click.Path(path_type=Path))
@click.argument("name")
@click.option("-d", "--description", help="Canvas description")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def canvas_create(ctx, vault_path, name, description, as_json):
    """Create a canvas in a vault."""
    workbench = ctx.obj["workbench"]
    try:
        vault_info = workbench.vaults.open(vault_path)
        info = workbench.create_canvas(vault_path, vault_info.id, name, description)
    except MosaicError as e:
        _fail(e)

    if as_json:
        _echo_json(info.model_dump())
    else:
        _print_canvas(info, "Created canvas")


@canvas.command("open")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def canvas_open(ctx, path, as_json):
    """Open a canvas, migrating a legacy canvas.json if needed."""
    try:
        info = ctx.obj["workbench"].open_canvas(path)
    except MosaicError as e:
        _fail(e)

    if as_json:
        _echo_json(info.model_dump())
    else:
        _print_canvas(info, "Opened canvas")


@canvas.command("rename")
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("new_name")
@click.pass_context
def canvas_rename(ctx, path, new_name):
    """Rename a canvas and, if the name is free, its folder."""
    try:
        info = ctx.obj["workbench"].rename_canvas(path, new_name)
    except MosaicError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Renamed canvas to [bold]{escape(info.name)}[/bold]")
    console.print(f"  Path: {escape(info.path)}")


@canvas.command("delete")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def canvas_delete(ctx, path, yes):
    """Delete a canvas folder and everything in it."""
    if not yes and not click.confirm(f"Delete canvas at {path}?"):
        console.print("[yellow]Aborted[/yellow]")
        return

    try:
        canvas_id = ctx.obj["workbench"].delete_canvas(path)
    except MosaicError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Deleted canvas {canvas_id or escape(str(path))}")


@canvas.command("tag")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("-a", "--add", "to_add", multiple=True, help="Tag to add (repeatable)")
@click.option("-r", "--remove", "to_remove", multiple=True, help="Tag to remove (repeatable)")
@click.option("--set", "to_set", multiple=True, help="Replace all tags (repeatable)")
@click.pass_context
def canvas_tag(ctx, path, to_add, to_remove, to_set):
    """Show or change a canvas's tags.

    Examples:
        mosaic canvas tag ./vault/canvases/Ideas --add draft --add ui
        mosaic canvas tag ./vault/canvases/Ideas --set final
    """
    workbench = ctx.obj["workbench"]
    if to_set and (to_add or to_remove):
        _fail(click.UsageError("--set cannot be combined with --add/--remove"))

    try:
        if to_set:
            info = workbench.update_canvas_tags(path, list(to_set))
        elif to_add or to_remove:
            for tag in to_add:
                info = workbench.add_canvas_tag(path, tag)
            for tag in to_remove:
                info = workbench.remove_canvas_tag(path, tag)
        else:
            info = workbench.canvases.open(path)
    except MosaicError as e:
        _fail(e)

    if info.tags:
        console.print(f"Tags: [green]{escape(', '.join(info.tags))}[/green]")
    else:
        console.print("[dim]No tags[/dim]")


@canvas.command("describe")
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("description")
@click.pass_context
def canvas_describe(ctx, path, description):
    """Set a canvas's description."""
    try:
        ctx.obj["workbench"].update_canvas_description(path, description)
    except MosaicError as e:
        _fail(e)
    console.print("[green]✓[/green] Updated canvas description")


@canvas.command("migrate")
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_context
def canvas_migrate(ctx, path):
    """Create .mosaic/meta.json for a canvas that only has canvas.json."""
    try:
        info = ctx.obj["workbench"].migrate_canvas(path)
    except MosaicError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Canvas [bold]{escape(info.name)}[/bold] is at the current schema")
    console.print(f"  ID: [yellow]{info.id}[/yellow]")


@canvas.command("state")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--x", "x", type=float, help="Viewport x offset")
@click.option("--y", "y", type=float, help="Viewport y offset")
@click.option("--zoom", type=click.FloatRange(min=0, min_open=True), help="Viewport zoom")
@click.option("--mode", help="Canvas interaction mode")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def canvas_state(ctx, path, x, y, zoom, mode, as_json):
    """Show the saved UI state of a canvas, optionally updating it."""
    workbench = ctx.obj["workbench"]
    try:
        state = workbench.load_canvas_state(path)
        if any(v is not None for v in (x, y, zoom, mode)):
            viewport = ViewportState(
                x=state.viewport.x if x is None else x,
                y=state.viewport.y if y is None else y,
                zoom=state.viewport.zoom if zoom is None else zoom,
            )
            state = workbench.save_canvas_state(
                path,
                CanvasUIState(
                    viewport=viewport,
                    selected_nodes=state.selected_nodes,
                    selected_edges=state.selected_edges,
                    canvas_mode=mode or state.canvas_mode,
                ),
            )
    except MosaicError as e:
        _fail(e)

    if as_json:
        _echo_json(state.model_dump())
        return

    vp = state.viewport
    console.print(f"Viewport: x={vp.x:g} y={vp.y:g} zoom={vp.zoom:g}")
    console.print(f"Mode:     [cyan]{escape(state.canvas_mode)}[/cyan]")
    console.print(f"Selected: {len(state.selected_nodes)} nodes, {len(state.selected_edges)} edges")
    if state.updated_at:
        console.print(f"Saved:    {format_relative_time(state.updated_at)}")


# --- Workspace Commands ---


@cli.group()
def workspace():
    """Inspect and edit a canvas's node/edge graph."""
    pass


@workspace.command("show")
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def workspace_show(ctx, path, as_json):
    """Show the nodes and edges of a canvas."""
    try:
        doc = ctx.obj["workbench"].load_workspace(path)
    except MosaicError as e:
        _fail(e)

    if as_json:
        _echo_json(doc.model_dump(mode="json"))
        return

    console.print(f"Nodes: [bold]{len(doc.nodes)}[/bold], Edges: [bold]{len(doc.edges)}[/bold]")

    if doc.nodes:
        table = Table(title="Nodes")
        table.add_column("ID", style="cyan")
        table.add_column("Type", style="green")
        table.add_column("Position", justify="right")
        table.add_column("Parent", style="dim")
        for node in doc.nodes:
            table.add_row(
                escape(node.id),
                escape(node.type),
                f"{node.position.x:g}, {node.position.y:g}",
                escape(node.parent_id or ""),
            )
        console.print(table)

    if doc.edges:
        table = Table(title="Edges")
        table.add_column("ID", style="cyan")
        table.add_column("From")
        table.add_column("To")
        table.add_column("Label", style="dim")
        for edge in doc.edges:
            table.add_row(escape(edge.id), escape(edge.source), escape(edge.target), escape(edge.label or ""))
        console.print(table)


def _parse_data(value: str | None) -> dict:
    if not value:
        return {}
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise click.BadParameter("must be a JSON object")
    return data


@workspace.command("add-node")
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("node_id")
@click.option("-t", "--type", "node_type", default="text", show_default=True, help="Node type")
@click.option("--x", "x", type=float, default=0.0, help="X position")
@click.option("--y", "y", type=float, default=0.0, help="Y position")
@click.option("--parent", "parent_id", help="Parent (group) node id")
@click.option("--data", help="Node data as a JSON object")
@click.pass_context
def workspace_add_node(ctx, path, node_id, node_type, x, y, parent_id, data):
    """Add a node to a canvas."""
    node = WorkspaceNode(
        id=node_id,
        type=node_type,
        position=Position(x=x, y=y),
        parent_id=parent_id,
        data=_parse_data(data),
    )
    try:
        doc = ctx.obj["workbench"].add_workspace_node(path, node)
    except MosaicError as e:
        _fail(e)
    console.print(f"[green]+[/green] node {escape(node_id)} ({len(doc.nodes)} nodes)")


@workspace.command("remove-node")
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("node_id")
@click.pass_context
def workspace_remove_node(ctx, path, node_id):
    """Remove a node and the edges attached to it."""
    try:
        doc = ctx.obj["workbench"].remove_workspace_node(path, node_id)
    except MosaicError as e:
        _fail(e)
    console.print(
        f"[red]-[/red] node {escape(node_id)} ({len(doc.nodes)} nodes, {len(doc.edges)} edges left)"
    )


@workspace.command("add-edge")
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("edge_id")
@click.argument("source")
@click.argument("target")
@click.option("-t", "--type", "edge_type", default="default", show_default=True, help="Edge type")
@click.option("-l", "--label", help="Edge label")
@click.option("--animated", is_flag=True, help="Animate the edge")
@click.pass_context
def workspace_add_edge(ctx, path, edge_id, source, target, edge_type, label, animated):
    """Connect two nodes."""
    edge = WorkspaceEdge(
        id=edge_id,
        source=source,
        target=target,
        edge_type=edge_type,
        label=label,
        animated=animated,
    )
    try:
        doc = ctx.obj["workbench"].add_workspace_edge(path, edge)
    except MosaicError as e:
        _fail(e)
    console.print(f"[green]+[/green] edge {escape(edge_id)}: {escape(source)} -> {escape(target)} ({len(doc.edges)} edges)")


@workspace.command("remove-edge")
@click.argument("path", type=click.Path(path_type=Path))
@click.argument("edge_id")
@click.pass_context
def workspace_remove_edge(ctx, path, edge_id):
    """Remove an edge."""
    try:
        doc = ctx.obj["workbench"].remove_workspace_edge(path, edge_id)
    except MosaicError as e:
        _fail(e)
    console.print(f"[red]-[/red] edge {escape(edge_id)} ({len(doc.edges)} edges left)")


# --- History Commands ---


@cli.group()
def history():
    """Recently opened vaults and canvases."""
    pass


def _since_filter(entries, since: str | None):
    if not since:
        return entries
    try:
        cutoff = parse_time_reference(since)
    except ValueError as e:
        _fail(e)
    return [e for e in entries if (parse_iso(e.last_opened) or cutoff) >= cutoff]


@history.command("vaults")
@click.option("-n", "--limit", default=DEFAULT_RECENT_LIMIT, show_default=True, help="Number of entries")
@click.option("--since", help='Only entries opened since, e.g. "yesterday", "3 days ago"')
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def history_vaults(ctx, limit, since, as_json):
    """List recently opened vaults."""
    try:
        entries = ctx.obj["workbench"].history.recent_vaults(limit)
    except MosaicError as e:
        _fail(e)
    entries = _since_filter(entries, since)

    if as_json:
        _echo_json([e.model_dump() for e in entries])
        return

    if not entries:
        console.print("[dim]No recent vaults[/dim]")
        return

    table = Table(title="Recent Vaults")
    table.add_column("Name", style="cyan")
    table.add_column("Opened", style="dim")
    table.add_column("Count", justify="right")
    table.add_column("ID", style="yellow")
    for entry in entries:
        table.add_row(
            escape(entry.name),
            format_relative_time(entry.last_opened),
            str(entry.open_count),
            entry.id[:8],
        )
    console.print(table)


@history.command("canvases")
@click.option("--vault-id", help="Only canvases of this vault")
@click.option("-n", "--limit", default=DEFAULT_RECENT_LIMIT, show_default=True, help="Number of entries")
@click.option("--since", help='Only entries opened since, e.g. "yesterday", "3 days ago"')
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def history_canvases(ctx, vault_id, limit, since, as_json):
    """List recently opened canvases."""
    try:
        entries = ctx.obj["workbench"].history.recent_canvases(vault_id, limit)
    except MosaicError as e:
        _fail(e)
    entries = _since_filter(entries, since)

    if as_json:
        _echo_json([e.model_dump() for e in entries])
        return

    if not entries:
        console.print("[dim]No recent canvases[/dim]")
        return

    table = Table(title="Recent Canvases")
    table.add_column("Name", style="cyan")
    table.add_column("Opened", style="dim")
    table.add_column("Count", justify="right")
    table.add_column("Vault", style="yellow")
    for entry in entries:
        table.add_row(
            escape(entry.name),
            format_relative_time(entry.last_opened),
            str(entry.open_count),
            entry.vault_id[:8],
        )
    console.print(table)


@history.command("forget-vault")
@click.argument("vault_id")
@click.pass_context
def history_forget_vault(ctx, vault_id):
    """Remove a vault (and its canvases) from history."""
    try:
        ctx.obj["workbench"].remove_vault_from_history(vault_id)
    except MosaicError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Forgot vault {escape(vault_id)}")


@history.command("forget-canvas")
@click.argument("canvas_id")
@click.pass_context
def history_forget_canvas(ctx, canvas_id):
    """Remove a canvas from history."""
    try:
        ctx.obj["workbench"].remove_canvas_from_history(canvas_id)
    except MosaicError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Forgot canvas {escape(canvas_id)}")


# --- App State Commands ---


@cli.group()
def state():
    """Last-opened session state."""
    pass


@state.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def state_show(ctx, as_json):
    """Show which vault and canvas would be restored on startup."""
    workbench = ctx.obj["workbench"]
    try:
        app_state = workbench.state.load()
        vault_entry, canvas_entry = workbench.restore_session()
    except MosaicError as e:
        _fail(e)

    if as_json:
        _echo_json({
            "state": app_state.model_dump(),
            "vault": vault_entry.model_dump() if vault_entry else None,
            "canvas": canvas_entry.model_dump() if canvas_entry else None,
        })
        return

    console.print(f"App dir: {escape(str(ctx.obj['app_dir']))}")
    if vault_entry:
        console.print(f"Vault:   [cyan]{escape(vault_entry.name)}[/cyan] {escape(vault_entry.path)}")
    else:
        console.print(f"Vault:   [dim]{app_state.last_vault_id or 'none'}[/dim]")
    if canvas_entry:
        console.print(f"Canvas:  [cyan]{escape(canvas_entry.name)}[/cyan] {escape(canvas_entry.path)}")
    else:
        console.print(f"Canvas:  [dim]{app_state.last_canvas_id or 'none'}[/dim]")


if __name__ == "__main__":
    cli()
