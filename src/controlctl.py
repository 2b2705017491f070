#!/usr/bin/env python3
"""
CLI tool for controlsync
Provides a terraform-like interface for managing one standards control
"""

import asyncio
import json

import click
import yaml
from tabulate import tabulate

from config import get_config
from errors import ControlSyncError, InvalidDesiredState
from models import ControlState
from reconciler import ControlReconciler
from state import StateFile, StateFileError
from stores.base import ControlStore
from stores.registry import get_registry, register_builtin_stores
from validation import parse_document


async def open_store(name: str) -> ControlStore:
    """Initialize the named control store with its configured overrides."""
    register_builtin_stores()
    overrides = get_config().store.get_store_config(name)
    return await get_registry().get_store(name, overrides)


def load_document(filename: str):
    """Read a control document from a YAML or JSON file"""
    with open(filename, "r") as f:
        try:
            if filename.endswith(".yaml") or filename.endswith(".yml"):
                return yaml.safe_load(f)
            return json.load(f)
        except (yaml.YAMLError, ValueError) as e:
            raise InvalidDesiredState(f"Cannot parse {filename}: {e}") from e


def run_operation(ctx, operation, save=True):
    """
    Load state, run ``operation(reconciler)`` against the configured store,
    and persist the resulting state.

    State is saved even when the operation fails, since a failed call
    leaves the in-memory state exactly as the store last confirmed it.
    """
    state_file = StateFile(ctx.obj["state_path"])

    try:
        state = state_file.load()
    except StateFileError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    async def _run():
        store = await open_store(ctx.obj["store_name"])
        try:
            return await operation(ControlReconciler(store, state))
        finally:
            await store.close()

    try:
        return asyncio.run(_run())
    except (ControlSyncError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)
    finally:
        if save:
            state_file.save(state)


def render_state(state: ControlState, output: str = "table") -> str:
    """Format a control state for display"""
    data = state.to_dict()
    if output == "json":
        return json.dumps(data, indent=2)
    if output == "yaml":
        return yaml.dump(data, default_flow_style=False)

    if not state.is_tracked:
        return "No standards control is tracked"

    rows = [
        ["Control", state.id],
        ["Standard", state.standard_arn],
        ["Enabled", "✓" if state.enabled else "✗"],
        ["Disabled Reason", state.disabled_reason or ""],
    ]
    return tabulate(rows, tablefmt="grid")


@click.group()
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="State file (default: $CONTROLSYNC_STATE_FILE)",
)
@click.option(
    "--store",
    "store_name",
    default=None,
    help="Control store backend (default: $CONTROL_STORE)",
)
@click.pass_context
def cli(ctx, state_path, store_name):
    """controlctl - keep a compliance standards control in its declared state"""
    config = get_config()
    config.logging.configure()

    ctx.ensure_object(dict)
    ctx.obj["state_path"] = state_path or config.state.path
    ctx.obj["store_name"] = store_name or config.store.backend


@cli.command()
@click.argument("filename", type=click.Path(exists=True))
@click.pass_context
def plan(ctx, filename):
    """Show what apply would change"""
    try:
        identity, desired = parse_document(load_document(filename))
    except ControlSyncError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    async def _plan(reconciler):
        if reconciler.state.is_tracked:
            await reconciler.refresh()
        return reconciler.plan(identity, desired)

    result = run_operation(ctx, _plan, save=False)
    click.echo(result.plan_output)


@cli.command()
@click.argument("filename", type=click.Path(exists=True))
@click.pass_context
def apply(ctx, filename):
    """Apply a control document from a YAML/JSON file"""
    try:
        identity, desired = parse_document(load_document(filename))
    except ControlSyncError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    async def _apply(reconciler):
        executed = await reconciler.reconcile(identity, desired)
        return executed, reconciler.state

    executed, state = run_operation(ctx, _apply)
    click.echo(executed.plan_output)
    if executed.has_changes:
        click.echo("Apply complete!")
    click.echo(render_state(state))


@cli.command()
@click.pass_context
def refresh(ctx):
    """Read the tracked control back from the store"""

    async def _refresh(reconciler):
        observed = await reconciler.refresh()
        return observed, reconciler.state

    observed, state = run_operation(ctx, _refresh)
    if observed is None:
        click.echo("Standards control not found, removed from state")
    else:
        click.echo(render_state(state))


@cli.command()
@click.confirmation_option(
    prompt="Reset the standards control to ENABLED and stop tracking it?"
)
@click.pass_context
def reset(ctx):
    """Reset the tracked control to ENABLED and stop tracking it"""

    async def _reset(reconciler):
        identity = reconciler.identity
        await reconciler.reset()
        return identity

    identity = run_operation(ctx, _reset)
    click.echo(f"Standards control {identity.control_arn} reset to ENABLED")


@cli.command(name="import")
@click.argument("import_id")
@click.pass_context
def import_(ctx, import_id):
    """Track an existing control: IMPORT_ID is <standards_arn>,<control_arn>"""

    async def _import(reconciler):
        await reconciler.import_identity(import_id)
        observed = await reconciler.refresh()
        return observed, reconciler.state

    observed, state = run_operation(ctx, _import)
    if observed is None:
        click.echo(f"Error: standards control {import_id} not found", err=True)
        ctx.exit(1)
    click.echo("Import successful!")
    click.echo(render_state(state))


@cli.command()
@click.option(
    "--output", "-o", type=click.Choice(["table", "json", "yaml"]), default="table"
)
@click.pass_context
def show(ctx, output):
    """Show the persisted state without contacting the store"""
    try:
        state = StateFile(ctx.obj["state_path"]).load()
    except StateFileError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    click.echo(render_state(state, output))


@cli.command()
@click.pass_context
def stores(ctx):
    """List the available control stores"""
    register_builtin_stores()
    registry = get_registry()

    rows = []
    for name in registry.list_stores():
        info = registry.get_store_info(name)
        selected = "*" if name == ctx.obj["store_name"] else ""
        rows.append([selected, info["name"], info["version"]])

    click.echo(tabulate(rows, headers=["", "Store", "Version"], tablefmt="simple"))


if __name__ == "__main__":
    cli()
