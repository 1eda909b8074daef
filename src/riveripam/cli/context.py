"""Per-invocation CLI state passed to commands through typer's context."""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import typer

from riveripam.config import IPAMConfig, build_client
from riveripam.store.ipam import ResourceIPAMStore


@dataclass
class CLIContext:
    config: IPAMConfig


@contextmanager
def open_store(ctx: typer.Context) -> Iterator[ResourceIPAMStore]:
    """Open the configured store with a synced cache, closing it afterwards."""
    state: CLIContext = ctx.obj
    client = build_client(state.config)
    store = ResourceIPAMStore(client, state.config)
    try:
        store.run()
        yield store
    finally:
        store.stop()
        client.close()
