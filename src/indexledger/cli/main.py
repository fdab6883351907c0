"""indexledger CLI - ixl command."""

from pathlib import Path

import click

from indexledger.cli.ledger import init_command, start_command, stop_command
from indexledger.cli.status import changed_command, indexes_command, status_command
from indexledger.cli.utils import load_state
from indexledger.core.logging import configure_logging, run_context


@click.group()
@click.version_option(version="0.1.0", prog_name="ixl")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML config file (default: ./indexledger.yaml)",
)
@click.option("--db", "db_url", default=None, help="Database URL (overrides config)")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_path: Path | None, db_url: str | None) -> None:
    """indexledger - track which items each search index still has to index."""
    state = load_state(config_path, db_url, verbose)
    if verbose:
        configure_logging(level="DEBUG")
    else:
        configure_logging(config=state.config.logging)
    ctx.with_resource(run_context(command=ctx.invoked_subcommand))
    ctx.obj = state


cli.add_command(init_command, name="init")
cli.add_command(start_command, name="start")
cli.add_command(stop_command, name="stop")
cli.add_command(status_command, name="status")
cli.add_command(changed_command, name="changed")
cli.add_command(indexes_command, name="indexes")


if __name__ == "__main__":
    cli()
