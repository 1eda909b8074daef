"""
Local cache of networks, last-reserved-ip markers and in-use addresses.

The cache mirrors the backing store and is fed only by change notifications
(see riveripam.store.informer). Writers take the lock exclusively, readers
share it. It is a hint: the store stays the sole source of truth, so a stale
read can cost an extra store round-trip but never a double allocation.

Notification rules:
    - an update for a record that carries a deletion marker is a delete
    - an update whose resource version equals the cached one is ignored
    - a record that fails translation is logged and dropped from the cache
"""

from __future__ import annotations

import copy

from riveripam.errors import ValidationError
from riveripam.models.enums import EventType, ResourceKind
from riveripam.models.resources import (
    LastReservedIPResource,
    NetworkResource,
    UsingIPResource,
    WatchEvent,
)
from riveripam.types import (
    LastReservedIP,
    Network,
    UsingIP,
    last_reserved_ip_from_resource,
    network_from_resource,
    using_ip_from_resource,
)
from riveripam.utils.logger import get_logger
from riveripam.utils.rwlock import ReadWriteLock


class Cache:
    """In-memory snapshot of the three record kinds, guarded by a read/write lock."""

    def __init__(self, logger=None):
        self.logger = logger or get_logger(__name__)
        self._lock = ReadWriteLock()

        self._networks: dict[str, Network] = {}
        # record name (192-168-0-1) -> in-use entry
        self._using_ips: dict[str, UsingIP] = {}
        self._last_reserved_ips: dict[str, LastReservedIP] = {}

        # (kind, name) -> resource version of the cached entry
        self._versions: dict[tuple[ResourceKind, str], str] = {}
        # record name -> version of an in-use record this process released;
        # late notifications carrying that version must not resurrect it
        self._released: dict[str, str] = {}

    # =========================================================================
    # Event Dispatch
    # =========================================================================

    def apply(self, event: WatchEvent) -> None:
        """Apply one change notification."""
        match (event.type, event.resource):
            case (EventType.ADDED, NetworkResource() as network):
                self.add_network(network)
            case (EventType.MODIFIED, NetworkResource() as network):
                self.update_network(network)
            case (EventType.DELETED, NetworkResource() as network):
                self.delete_network(network)

            case (EventType.ADDED, LastReservedIPResource() as lri):
                self.add_last_reserved_ip(lri)
            case (EventType.MODIFIED, LastReservedIPResource() as lri):
                self.update_last_reserved_ip(lri)
            case (EventType.DELETED, LastReservedIPResource() as lri):
                self.delete_last_reserved_ip(lri)

            case (EventType.ADDED, UsingIPResource() as using_ip):
                self.add_using_ip(using_ip)
            case (EventType.MODIFIED, UsingIPResource() as using_ip):
                self.update_using_ip(using_ip)
            case (EventType.DELETED, UsingIPResource() as using_ip):
                self.delete_using_ip(using_ip)

            case _:
                raise TypeError(f"unsupported watch event {event!r}")

    def _is_duplicate(self, kind: ResourceKind, name: str, version: str) -> bool:
        """Caller holds the write lock."""
        return bool(version) and self._versions.get((kind, name)) == version

    # =========================================================================
    # Networks
    # =========================================================================

    def add_network(self, resource: NetworkResource) -> None:
        with self._lock.write_locked():
            self._store_network(resource, "add")

    def update_network(self, resource: NetworkResource) -> None:
        name = resource.metadata.name
        with self._lock.write_locked():
            if resource.metadata.deletion_timestamp is not None:
                self._drop(ResourceKind.NETWORK, self._networks, name)
                self.logger.debug(f"network {name} is being deleted, removed from cache")
                return
            if self._is_duplicate(ResourceKind.NETWORK, name, resource.metadata.resource_version):
                return
            self._store_network(resource, "update")

    def delete_network(self, resource: NetworkResource) -> None:
        name = resource.metadata.name
        with self._lock.write_locked():
            self._drop(ResourceKind.NETWORK, self._networks, name)
        self.logger.debug(f"delete network {name} from cache")

    def _store_network(self, resource: NetworkResource, action: str) -> None:
        name = resource.metadata.name
        try:
            network = network_from_resource(resource)
        except ValidationError as e:
            self.logger.error(f"fail to {action} network {name} to cache: {e}")
            self._drop(ResourceKind.NETWORK, self._networks, name)
            return

        self._networks[name] = network
        self._versions[(ResourceKind.NETWORK, name)] = resource.metadata.resource_version
        self.logger.debug(f"{action} network {name} ({len(network.pools)} pools) to cache")

    # =========================================================================
    # Last Reserved IPs
    # =========================================================================

    def add_last_reserved_ip(self, resource: LastReservedIPResource) -> None:
        with self._lock.write_locked():
            self._store_last_reserved_ip(resource, "add")

    def update_last_reserved_ip(self, resource: LastReservedIPResource) -> None:
        name = resource.metadata.name
        kind = ResourceKind.LAST_RESERVED_IP
        with self._lock.write_locked():
            if resource.metadata.deletion_timestamp is not None:
                self._drop(kind, self._last_reserved_ips, name)
                return
            if self._is_duplicate(kind, name, resource.metadata.resource_version):
                return
            self._store_last_reserved_ip(resource, "update")

    def delete_last_reserved_ip(self, resource: LastReservedIPResource) -> None:
        name = resource.metadata.name
        with self._lock.write_locked():
            self._drop(ResourceKind.LAST_RESERVED_IP, self._last_reserved_ips, name)
        self.logger.debug(f"delete last reserved ip of {name} from cache")

    def _store_last_reserved_ip(self, resource: LastReservedIPResource, action: str) -> None:
        name = resource.metadata.name
        kind = ResourceKind.LAST_RESERVED_IP
        try:
            lri = last_reserved_ip_from_resource(resource)
        except ValidationError as e:
            self.logger.error(f"fail to {action} last reserved ip {name} to cache: {e}")
            self._drop(kind, self._last_reserved_ips, name)
            return

        self._last_reserved_ips[name] = lri
        self._versions[(kind, name)] = resource.metadata.resource_version
        self.logger.trace(f"{action} last reserved ip {name} {lri.ip}@{lri.pool} to cache")

    # =========================================================================
    # Using IPs
    # =========================================================================

    def add_using_ip(self, resource: UsingIPResource) -> None:
        with self._lock.write_locked():
            self._store_using_ip(resource, "add")

    def update_using_ip(self, resource: UsingIPResource) -> None:
        name = resource.metadata.name
        kind = ResourceKind.USING_IP
        with self._lock.write_locked():
            if resource.metadata.deletion_timestamp is not None:
                self._drop(kind, self._using_ips, name)
                return
            if self._is_duplicate(kind, name, resource.metadata.resource_version):
                return
            self._store_using_ip(resource, "update")

    def delete_using_ip(self, resource: UsingIPResource) -> None:
        name = resource.metadata.name
        with self._lock.write_locked():
            self._drop(ResourceKind.USING_IP, self._using_ips, name)
        self.logger.trace(f"delete using ip {name} from cache")

    def forget_using_ip(self, name: str, resource_version: str = "") -> None:
        """
        Evict an in-use address after this process deleted it from the store.

        Notifications for the deleted record (same resource version) that
        arrive afterwards are ignored.
        """
        with self._lock.write_locked():
            self._drop(ResourceKind.USING_IP, self._using_ips, name)
            if resource_version:
                self._released[name] = resource_version
        self.logger.trace(f"forget using ip {name} from cache")

    def _store_using_ip(self, resource: UsingIPResource, action: str) -> None:
        name = resource.metadata.name
        version = resource.metadata.resource_version
        if version and self._released.get(name) == version:
            return
        self._released.pop(name, None)
        self._using_ips[name] = using_ip_from_resource(resource)
        self._versions[(ResourceKind.USING_IP, name)] = resource.metadata.resource_version
        self.logger.trace(
            f"{action} using ip {name} "
            f"({resource.spec.pod_namespace}/{resource.spec.pod_name}) to cache"
        )

    def _drop(self, kind: ResourceKind, entries: dict, name: str) -> None:
        """Caller holds the write lock."""
        entries.pop(name, None)
        self._versions.pop((kind, name), None)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_network(self, name: str) -> Network | None:
        """Deep copy of a cached network, or None."""
        with self._lock.read_locked():
            network = self._networks.get(name)
            return copy.deepcopy(network) if network is not None else None

    def get_last_reserved_ip(self, network_name: str) -> LastReservedIP | None:
        """Deep copy of a network's last reserved ip marker, or None."""
        with self._lock.read_locked():
            lri = self._last_reserved_ips.get(network_name)
            return copy.deepcopy(lri) if lri is not None else None

    def is_ip_in_use(self, resource_name: str) -> bool:
        """Check an address, given as its record name, against the cache."""
        with self._lock.read_locked():
            return resource_name in self._using_ips

    def network_names(self) -> list[str]:
        with self._lock.read_locked():
            return sorted(self._networks)

    def count_using(self, network: str, pool: str) -> int:
        """Number of cached in-use addresses attributed to a pool."""
        with self._lock.read_locked():
            return sum(
                1
                for entry in self._using_ips.values()
                if entry.network == network and entry.pool == pool
            )

    def using_ips_of(
        self,
        network: str,
        pool: str,
        namespace: str,
        name: str,
    ) -> list[UsingIP]:
        """Cached in-use entries held by one owner within a pool."""
        with self._lock.read_locked():
            return [
                copy.deepcopy(entry)
                for entry in self._using_ips.values()
                if entry.network == network
                and entry.pool == pool
                and entry.owner_namespace == namespace
                and entry.owner_name == name
            ]
