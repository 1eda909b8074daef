"""
riveripam CLI entry point.

Usage:
    riveripam [OPTIONS] COMMAND [ARGS]...

Commands:
    network   Network management
    pool      Pool management
    ip        Address reservation
"""

from typing import Annotated

import typer

from riveripam.cli.commands import ip, network, pool
from riveripam.cli.context import CLIContext
from riveripam.cli.output import print_error
from riveripam.config import load_config
from riveripam.errors import ValidationError
from riveripam.models.enums import LogLevel
from riveripam.utils.logger import configure_logging

app = typer.Typer(
    name="riveripam",
    help="Cluster IPv4 address pool management",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register command groups
app.add_typer(network.app, name="network", help="Network management")
app.add_typer(pool.app, name="pool", help="Pool management")
app.add_typer(ip.app, name="ip", help="Address reservation")


@app.callback()
def main(
    ctx: typer.Context,
    config_file: Annotated[
        str | None,
        typer.Option("--config", "-c", help="YAML config file", envvar="RIVERIPAM_CONFIG"),
    ] = None,
    db_file: Annotated[
        str | None,
        typer.Option("--db", help="SQLite store file (overrides DB_FILE)"),
    ] = None,
    log_level: Annotated[
        LogLevel | None,
        typer.Option("--log-level", "-l", help="Log level"),
    ] = None,
):
    """
    riveripam address management CLI.

    Manage networks, pools and address reservations in a shared store.
    """
    try:
        config = load_config(config_file)
    except (OSError, ValidationError) as e:
        print_error(str(e))
        raise typer.Exit(1)

    if db_file:
        config.DB_FILE = db_file
    if log_level:
        config.LOG_LEVEL = log_level

    configure_logging(config.LOG_LEVEL, config.LOG_FILE or None)
    ctx.obj = CLIContext(config=config)


if __name__ == "__main__":
    app()
