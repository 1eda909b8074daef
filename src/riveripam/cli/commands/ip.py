"""Address reservation commands."""

import ipaddress
from typing import Annotated

import typer

from riveripam.allocator import Allocator
from riveripam.cli.context import open_store
from riveripam.cli.output import console, print_error, print_success
from riveripam.errors import IPAMError

app = typer.Typer(help="Address reservation commands")

NamespaceOption = Annotated[str, typer.Option("--namespace", "-n", help="Owner namespace")]
OwnerOption = Annotated[str, typer.Option("--owner", "-o", help="Owner name")]


def _parse_ip(value: str) -> ipaddress.IPv4Address:
    try:
        return ipaddress.IPv4Address(value)
    except ValueError:
        raise typer.BadParameter(f"{value!r} is not an IPv4 address")


@app.command("reserve")
def reserve_ip(
    ctx: typer.Context,
    network: Annotated[str, typer.Argument(help="Network name")],
    pool: Annotated[str, typer.Argument(help="Pool name")],
    ip: Annotated[str, typer.Argument(help="Address to reserve")],
    namespace: NamespaceOption = "default",
    owner: OwnerOption = "",
):
    """Reserve a specific address."""
    addr = _parse_ip(ip)
    try:
        with open_store(ctx) as store:
            reserved = store.reserve(network, pool, namespace, owner, addr)

        if not reserved:
            console.print(f"[yellow]{addr} is already in use.[/yellow]")
            raise typer.Exit(2)
        print_success(f"Reserved {addr} for {namespace}/{owner}.")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("allocate")
def allocate_ip(
    ctx: typer.Context,
    network: Annotated[str, typer.Argument(help="Network name")],
    pool: Annotated[
        str | None,
        typer.Option("--pool", "-p", help="Restrict to one pool"),
    ] = None,
    namespace: NamespaceOption = "default",
    owner: OwnerOption = "",
):
    """Reserve the next free address of a network."""
    try:
        with open_store(ctx) as store:
            addr, pool_name = Allocator(store).allocate(network, namespace, owner, pool)
        print_success(f"Allocated {addr} from {network}/{pool_name} for {namespace}/{owner}.")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("release")
def release_ip(
    ctx: typer.Context,
    ip: Annotated[str, typer.Argument(help="Address to release")],
):
    """Release an address."""
    addr = _parse_ip(ip)
    try:
        with open_store(ctx) as store:
            store.release(addr)
        print_success(f"Released {addr}.")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)


@app.command("release-owner")
def release_owner(
    ctx: typer.Context,
    network: Annotated[str, typer.Argument(help="Network name")],
    pool: Annotated[str, typer.Argument(help="Pool name")],
    namespace: NamespaceOption = "default",
    owner: OwnerOption = "",
):
    """Release every address an owner holds in a pool."""
    try:
        with open_store(ctx) as store:
            released = store.release_by_name(network, pool, namespace, owner)

        if not released:
            console.print(f"[yellow]{namespace}/{owner} holds no addresses.[/yellow]")
            return
        print_success(f"Released {', '.join(released)}.")

    except IPAMError as e:
        print_error(str(e))
        raise typer.Exit(1)
