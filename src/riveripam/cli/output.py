"""Console output helpers for the CLI."""

from rich.console import Console
from rich.table import Table

from riveripam.types import LastReservedIP, Network

console = Console()


def print_error(message: str) -> None:
    console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def format_network_table(
    network: Network,
    usage: dict[str, tuple[int, int]],
    last_reserved: LastReservedIP | None = None,
) -> Table:
    """Render a network's pools as a table."""
    title = f"Network {network.name}"
    if last_reserved is not None:
        title += f" (last reserved {last_reserved.ip} in {last_reserved.pool})"

    table = Table(title=title, show_header=True)
    table.add_column("Pool", style="cyan")
    table.add_column("Subnet")
    table.add_column("Gateway")
    table.add_column("Range")
    table.add_column("VLAN")
    table.add_column("Used", justify="right")

    for pool in network.pools:
        total, used = usage.get(pool.name, (pool.size(), 0))
        table.add_row(
            pool.name,
            str(pool.subnet),
            str(pool.gateway),
            f"{pool.pool_start} - {pool.pool_end}",
            str(pool.vlan_id) if pool.vlan_id else "-",
            f"{used}/{total}",
        )
    return table
