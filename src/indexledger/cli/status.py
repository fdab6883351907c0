"""ixl status/changed/indexes commands - report ledger contents."""

import json

import click
from rich.console import Console
from rich.table import Table

from indexledger.cli.ledger import index_option, item_type_option
from indexledger.cli.utils import CliState, handle_errors, indexes_for
from indexledger.config.constants import UNLIMITED
from indexledger.tracking import LedgerTracker


@click.command()
@item_type_option
@index_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def status_command(
    state: CliState, item_type: str, index_ids: tuple[int, ...], as_json: bool
) -> None:
    """Show how many tracked items are indexed, per index."""
    with handle_errors():
        tracker = state.tracker(item_type)
        statuses = {
            index.id: tracker.get_index_status(index)
            for index in indexes_for(item_type, index_ids)
        }

    if as_json:
        click.echo(
            json.dumps(
                {
                    "item_type": item_type,
                    "tracked": tracker.tracked,
                    "indexes": {
                        str(index_id): {"indexed": s.indexed, "total": s.total}
                        for index_id, s in statuses.items()
                    },
                }
            )
        )
        return

    console = Console()
    if not tracker.tracked:
        console.print(f"Item type '{item_type}': not tracked")
        return
    table = Table(title=f"Item type '{item_type}'")
    table.add_column("Index", justify="right")
    table.add_column("Indexed", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Remaining", justify="right")
    for index_id, s in statuses.items():
        table.add_row(str(index_id), f"{s.indexed:,}", f"{s.total:,}", f"{s.remaining:,}")
    console.print(table)


@click.command()
@item_type_option
@click.option("--index", "-i", "index_id", type=int, required=True, help="Index id")
@click.option(
    "--limit",
    "-n",
    type=int,
    default=UNLIMITED,
    show_default=True,
    help="Max ids (negative: unlimited)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def changed_command(
    state: CliState, item_type: str, index_id: int, limit: int, as_json: bool
) -> None:
    """List dirty item ids for an index, oldest change first."""
    with handle_errors():
        tracker = state.tracker(item_type)
        (index,) = indexes_for(item_type, (index_id,))
        ids = tracker.get_changed_items(index, limit)

    if as_json:
        click.echo(json.dumps(ids))
        return
    for item_id in ids:
        click.echo(item_id)


@click.command()
@item_type_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def indexes_command(state: CliState, item_type: str, as_json: bool) -> None:
    """List index ids with entries in an item type's ledger."""
    with handle_errors():
        tracker = state.tracker(item_type)
        index_ids = tracker.get_tracked_indexes() if isinstance(tracker, LedgerTracker) else []

    if as_json:
        click.echo(json.dumps(index_ids))
        return
    for index_id in index_ids:
        click.echo(index_id)
