"""
Network model and the records that hang off a network.

A network is an ordered list of pools. Name uniqueness and non-overlapping
ranges are enforced by the reservation coordinator when pools are added,
not by this type.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field

from riveripam.errors import (
    IPNotInPoolError,
    NotFoundError,
    PoolNotInNetworkError,
    ValidationError,
)
from riveripam.models.resources import (
    LastReservedIPResource,
    NetworkResource,
    NetworkSpec,
    UsingIPResource,
)
from riveripam.types.pool import Pool
from riveripam.utils.names import to_ip


@dataclass
class Network:
    """A named collection of pools."""

    name: str
    pools: list[Pool] = field(default_factory=list)

    def lookup_pool_index(self, name: str) -> int:
        """Index of the pool with the given name, raising NotFoundError if absent."""
        for idx, pool in enumerate(self.pools):
            if pool.name == name:
                return idx
        raise NotFoundError(f"network {self.name} does not have pool {name}")

    def get_pool(self, name: str) -> Pool:
        return self.pools[self.lookup_pool_index(name)]

    def to_spec(self) -> NetworkSpec:
        return NetworkSpec(pools=[pool.to_resource() for pool in self.pools])


@dataclass
class LastReservedIP:
    """
    Most recently reserved address of a network and the pool it came from.

    The marker can go stale when a pool is removed or shrunk; index() detects
    that lazily instead of the marker being invalidated eagerly.
    """

    ip: ipaddress.IPv4Address | None
    pool: str

    def index(self, network: Network) -> int:
        """
        Resolve the marker's pool to an index in network.pools.

        Raises:
            PoolNotInNetworkError: No pool in the network has the marker's name.
            IPNotInPoolError: The pool exists but does not contain the address.
        """
        try:
            pool_index = network.lookup_pool_index(self.pool)
        except NotFoundError as e:
            raise PoolNotInNetworkError(
                f"last reserved ip's pool {self.pool} is not in network {network.name}"
            ) from e

        if not network.pools[pool_index].contains(self.ip):
            raise IPNotInPoolError(f"last reserved ip {self.ip} is not in pool {self.pool}")
        return pool_index


@dataclass
class UsingIP:
    """An address currently allocated to an owner."""

    ip: str
    owner_name: str
    owner_namespace: str
    network: str
    pool: str


# =============================================================================
# Wire Translation
# =============================================================================


def network_from_resource(resource: NetworkResource) -> Network:
    """
    Translate a stored network into the domain type.

    Raises:
        ValidationError: A stored pool does not parse or validate.
    """
    pools = []
    for spec in resource.spec.pools:
        pool = Pool.from_resource(spec)
        pool.validate()
        pools.append(pool)
    return Network(name=resource.metadata.name, pools=pools)


def last_reserved_ip_from_resource(resource: LastReservedIPResource) -> LastReservedIP:
    """
    Translate a stored last-reserved-ip marker into the domain type.

    Raises:
        ValidationError: The stored address is not an IPv4 address.
    """
    try:
        ip = ipaddress.IPv4Address(resource.spec.ip)
    except ValueError as e:
        raise ValidationError(
            f"last reserved ip {resource.spec.ip!r} of {resource.metadata.name} is invalid"
        ) from e
    return LastReservedIP(ip=ip, pool=resource.spec.pool_name)


def using_ip_from_resource(resource: UsingIPResource) -> UsingIP:
    """Translate a stored in-use record into the domain type."""
    return UsingIP(
        ip=to_ip(resource.metadata.name),
        owner_name=resource.spec.pod_name,
        owner_namespace=resource.spec.pod_namespace,
        network=resource.spec.network,
        pool=resource.spec.pool,
    )
