"""
Sequential address allocation on top of an IPAMStore.

The allocator continues from the network's last reserved address instead of
rescanning every pool from the start, so consecutive allocations hand out
consecutive addresses and contention between allocators stays low. A stale
or missing marker just means starting over at the first candidate pool.
"""

from __future__ import annotations

import ipaddress

from riveripam.errors import NotFoundError, PoolExhaustedError, ValidationError
from riveripam.store.base import IPAMStore
from riveripam.types import Network, Pool
from riveripam.utils.logger import get_logger


class Allocator:
    """Picks and reserves the next free address of a network."""

    def __init__(self, store: IPAMStore, logger=None):
        self.store = store
        self.logger = logger or get_logger(__name__)

    def _start_point(
        self,
        network: Network,
        candidates: list[Pool],
    ) -> tuple[int, ipaddress.IPv4Address | None]:
        """Index into candidates and first address to try."""
        try:
            lri = self.store.get_last_reserved_ip(network.name)
            pool_index = lri.index(network)
        except (NotFoundError, ValidationError) as e:
            self.logger.debug(f"No usable last reserved ip for {network.name}: {e}")
            return 0, None

        pool_name = network.pools[pool_index].name
        for idx, pool in enumerate(candidates):
            if pool.name == pool_name:
                # Past the pool end, iter_from() wraps to the pool start
                return idx, ipaddress.IPv4Address((int(lri.ip) + 1) % 2**32)
        return 0, None

    def allocate(
        self,
        network: str,
        namespace: str,
        name: str,
        pool: str | None = None,
    ) -> tuple[ipaddress.IPv4Address, str]:
        """
        Reserve the next free address for an owner.

        Args:
            network: Network to allocate from.
            namespace: Owner namespace.
            name: Owner name.
            pool: Restrict allocation to this pool (None for any pool).

        Returns:
            Tuple of (reserved address, pool name).

        Raises:
            NotFoundError: Unknown network or pool.
            PoolExhaustedError: Every candidate address is taken.
        """
        net = self.store.get_network(network)
        candidates = [net.get_pool(pool)] if pool else list(net.pools)
        if not candidates:
            raise PoolExhaustedError(f"network {network} has no pools")

        start_index, start_ip = self._start_point(net, candidates)

        for offset in range(len(candidates)):
            candidate = candidates[(start_index + offset) % len(candidates)]
            first = start_ip if offset == 0 else None

            for ip in candidate.iter_from(first):
                if ip == candidate.gateway:
                    continue
                if self.store.reserve(network, candidate.name, namespace, name, ip):
                    return ip, candidate.name

        raise PoolExhaustedError(
            f"no free address left in network {network}"
            + (f" pool {pool}" if pool else "")
        )
