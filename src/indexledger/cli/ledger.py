"""ixl ledger commands - create ledgers and start/stop tracking indexes."""

import click
from rich.console import Console

from indexledger.cli.utils import CliState, handle_errors, indexes_for
from indexledger.core.logging import bind_run_fields


def _bind_item_type(_ctx: click.Context, _param: click.Parameter, value: str) -> str:
    bind_run_fields(item_type=value)
    return value


item_type_option = click.option(
    "--item-type",
    "-t",
    required=True,
    callback=_bind_item_type,
    help="Item type whose ledger to use",
)
index_option = click.option(
    "--index", "-i", "index_ids", type=int, multiple=True, required=True, help="Index id"
)


@click.command()
@item_type_option
@click.option(
    "--id-type",
    type=click.Choice(["int", "str"]),
    default="int",
    show_default=True,
    help="Column type of item ids",
)
@click.pass_obj
def init_command(state: CliState, item_type: str, id_type: str) -> None:
    """Create the ledger table for an item type (no-op if it exists)."""
    console = Console(stderr=True)
    with handle_errors():
        ledger = state.ledger(item_type, id_type)
        existed = ledger.exists()
        ledger.create()
    if existed:
        console.print(f"Ledger [cyan]{ledger.name}[/cyan] already exists")
    else:
        console.print(f"[green]✓[/green] Created ledger [cyan]{ledger.name}[/cyan]")


@click.command()
@item_type_option
@index_option
@click.option("--source-table", required=True, help="Table enumerating every known item")
@click.option("--id-column", default="id", show_default=True, help="Item id column")
@click.pass_obj
def start_command(
    state: CliState,
    item_type: str,
    index_ids: tuple[int, ...],
    source_table: str,
    id_column: str,
) -> None:
    """Start tracking indexes: every known item becomes dirty."""
    console = Console(stderr=True)
    with handle_errors():
        tracker = state.tracker(item_type, source_table=source_table, id_column=id_column)
        if not tracker.tracked:
            console.print(f"[yellow]Item type '{item_type}' is not tracked[/yellow]")
            return
        indexes = indexes_for(item_type, index_ids)
        tracker.start_tracking(indexes)
        for index in indexes:
            status = tracker.get_index_status(index)
            console.print(f"[green]✓[/green] Index {index.id}: {status.total} items queued")


@click.command()
@item_type_option
@index_option
@click.pass_obj
def stop_command(state: CliState, item_type: str, index_ids: tuple[int, ...]) -> None:
    """Stop tracking indexes and drop their entries."""
    console = Console(stderr=True)
    with handle_errors():
        tracker = state.tracker(item_type)
        tracker.stop_tracking(indexes_for(item_type, index_ids))
    console.print(f"[green]✓[/green] Stopped tracking {len(index_ids)} index(es)")
