"""Network management commands."""

from typing import Annotated

import typer

from riveripam.cli.context import open_store
from riveripam.cli.output import console, format_network_table, print_error, print_success
from riveripam.errors import IPAMError, NotFoundError

app = typer.Typer(help="Network management commands")


@app.command("create")
def create_network(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Network name")],
):
    """Create an empty network."""
    try:
        with open_store(ctx) as store:
            store.create_network(name)
        print_success(f"Network {name} created.")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("delete")
def delete_network(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Network name")],
):
    """Delete a network. The network must not have pools."""
    try:
        with open_store(ctx) as store:
            store.delete_network(name)
        print_success(f"Network {name} deleted.")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("list")
def list_networks(ctx: typer.Context):
    """List all networks."""
    try:
        with open_store(ctx) as store:
            networks = store.list_networks()

        if not networks:
            console.print("[yellow]No networks found.[/yellow]")
            return

        for network in networks:
            console.print(f"{network.name}  [dim]({len(network.pools)} pools)[/dim]")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("show")
def show_network(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Network name")],
):
    """Show a network's pools and usage."""
    try:
        with open_store(ctx) as store:
            network = store.get_network(name)
            usage = {pool.name: store.count_pool(name, pool.name) for pool in network.pools}
            try:
                last_reserved = store.get_last_reserved_ip(name)
            except NotFoundError:
                last_reserved = None

        if not network.pools:
            console.print(f"[yellow]Network {name} has no pools.[/yellow]")
            return

        console.print(format_network_table(network, usage, last_reserved))

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)
