"""Pool management commands."""

from typing import Annotated

import typer

from riveripam.cli.context import open_store
from riveripam.cli.output import console, print_error, print_success
from riveripam.errors import IPAMError
from riveripam.types import Pool

app = typer.Typer(help="Pool management commands")


@app.command("add")
def add_pool(
    ctx: typer.Context,
    network: Annotated[str, typer.Argument(help="Network name")],
    name: Annotated[str, typer.Argument(help="Pool name")],
    subnet: Annotated[str, typer.Option("--subnet", "-s", help="Subnet CIDR")],
    gateway: Annotated[str, typer.Option("--gateway", "-g", help="Gateway address")],
    start: Annotated[
        str | None,
        typer.Option("--start", help="First allocatable address (default: network + 1)"),
    ] = None,
    end: Annotated[
        str | None,
        typer.Option("--end", help="Last allocatable address (default: broadcast - 1)"),
    ] = None,
    vlan: Annotated[
        int | None,
        typer.Option("--vlan", help="VLAN ID"),
    ] = None,
):
    """Add a pool to a network."""
    try:
        pool = Pool(
            name=name,
            subnet=subnet,
            gateway=gateway,
            pool_start=start,
            pool_end=end,
            vlan_id=vlan,
        )
        with open_store(ctx) as store:
            store.add_pool(network, pool)
        print_success(f"Pool {pool} added to network {network}.")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("del")
def del_pool(
    ctx: typer.Context,
    network: Annotated[str, typer.Argument(help="Network name")],
    name: Annotated[str, typer.Argument(help="Pool name")],
):
    """Remove a pool from a network. The pool must have no reserved addresses."""
    try:
        with open_store(ctx) as store:
            store.del_pool(network, name)
        print_success(f"Pool {name} removed from network {network}.")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("count")
def count_pool(
    ctx: typer.Context,
    network: Annotated[str, typer.Argument(help="Network name")],
    name: Annotated[str, typer.Argument(help="Pool name")],
):
    """Show how many addresses of a pool are in use."""
    try:
        with open_store(ctx) as store:
            total, used = store.count_pool(network, name)
        console.print(f"{network}/{name}: {used}/{total} in use")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)
