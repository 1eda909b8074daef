"""Domain types: pools, networks and their markers."""

from riveripam.types.network import (
    LastReservedIP,
    Network,
    UsingIP,
    last_reserved_ip_from_resource,
    network_from_resource,
    using_ip_from_resource,
)
from riveripam.types.pool import Pool, last_ip, next_ip

__all__ = [
    "Pool",
    "Network",
    "LastReservedIP",
    "UsingIP",
    "last_ip",
    "next_ip",
    "network_from_resource",
    "last_reserved_ip_from_resource",
    "using_ip_from_resource",
]
