"""
Store interfaces.

Two layers:
    - ResourceClient: the backing store holding the authoritative records.
      Its atomic create-if-absent is what makes address reservation
      exclusive across processes.
    - IPAMStore: the address-management operations built on top of it.
"""

from __future__ import annotations

import ipaddress
from abc import ABC, abstractmethod

from riveripam.models.enums import ResourceKind
from riveripam.models.resources import Resource, WatchEvent
from riveripam.types import LastReservedIP, Network, Pool


# =============================================================================
# Backing Store
# =============================================================================


class Watcher(ABC):
    """
    A change feed for one record kind.

    `initial` is a consistent snapshot taken when the watch was opened; every
    change after that snapshot is delivered through next(). Per-key order is
    preserved, global order is not guaranteed, and a record may be delivered
    more than once with the same resource version.
    """

    initial: list[Resource]

    @abstractmethod
    def next(self, timeout: float | None = None) -> WatchEvent | None:
        """Next event, or None if nothing arrived within timeout."""

    @abstractmethod
    def stop(self) -> None:
        """Stop the feed. Subsequent next() calls return None."""


class ResourceClient(ABC):
    """
    CRUD + watch access to the backing store.

    Every write assigns a new metadata.resource_version.
    """

    @abstractmethod
    def create(self, resource: Resource) -> Resource:
        """
        Create a record.

        Raises:
            ResourceAlreadyExistsError: A record with the same kind and name exists.
        """

    @abstractmethod
    def get(self, kind: ResourceKind, name: str) -> Resource:
        """
        Fetch a record.

        Raises:
            ResourceNotFoundError: No such record.
        """

    @abstractmethod
    def update(self, resource: Resource) -> Resource:
        """
        Replace a record, conditioned on its resource_version.

        Raises:
            ResourceNotFoundError: No such record.
            ResourceConflictError: The stored version differs from the given one.
        """

    @abstractmethod
    def delete(self, kind: ResourceKind, name: str) -> None:
        """Delete a record. Deleting a missing record is not an error."""

    @abstractmethod
    def list(self, kind: ResourceKind) -> list[Resource]:
        """All records of a kind."""

    @abstractmethod
    def watch(self, kind: ResourceKind) -> Watcher:
        """Open a change feed for a kind."""

    def close(self) -> None:
        """Release client resources."""


# =============================================================================
# Address Management
# =============================================================================


class IPAMStore(ABC):
    """Address management operations used by allocators and tooling."""

    # Network
    @abstractmethod
    def create_network(self, name: str) -> None: ...

    @abstractmethod
    def delete_network(self, name: str) -> None: ...

    @abstractmethod
    def get_network(self, name: str) -> Network: ...

    @abstractmethod
    def get_last_reserved_ip(self, name: str) -> LastReservedIP: ...

    # Pool
    @abstractmethod
    def add_pool(self, network: str, pool: Pool) -> None: ...

    @abstractmethod
    def del_pool(self, network: str, pool: str) -> None: ...

    @abstractmethod
    def count_pool(self, network: str, pool: str) -> tuple[int, int]: ...

    # IP
    @abstractmethod
    def reserve(
        self,
        network: str,
        pool: str,
        namespace: str,
        name: str,
        ip: ipaddress.IPv4Address,
    ) -> bool: ...

    @abstractmethod
    def release(self, ip: ipaddress.IPv4Address) -> None: ...

    @abstractmethod
    def release_by_name(
        self,
        network: str,
        pool: str,
        namespace: str,
        name: str,
    ) -> list[str]: ...
