"""
Reservation coordinator.

ResourceIPAMStore is the only writer of allocation state. It reads the local
cache to reject bad requests early and writes straight to the backing store.

Reservation protocol (create-as-lock):
    1. If the cache already marks the address in use, answer False.
    2. Otherwise create a UsingIP record named after the address. The store's
       create is atomic and fails with "already exists" for a taken name, so
       exactly one caller across all processes wins.
    3. "Already exists" means someone else holds the address: answer False.
       Any other failure is raised.
    4. On success, update the network's LastReservedIP marker best-effort;
       a failure there is logged and the reservation stands.

Every mutating call also holds a process-local lock. It only orders this
process's own cache-check-then-write sequences; exclusivity between
processes comes from step 2 alone.

Pool changes are read-modify-write on the network record. The record is
fetched fresh from the store and written back with its resource version, so
a concurrent writer in another process makes the update fail with
ResourceConflictError instead of being silently overwritten.
"""

from __future__ import annotations

import ipaddress
import threading

from riveripam.config import IPAMConfig
from riveripam.errors import (
    AlreadyExistsError,
    DuplicatePoolError,
    IPAMError,
    NotEmptyError,
    NotFoundError,
    PoolInUseError,
    PoolOverlapError,
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    StoreError,
    ValidationError,
)
from riveripam.models.enums import ResourceKind
from riveripam.models.resources import (
    LastReservedIPResource,
    LastReservedIPSpec,
    NetworkResource,
    ObjectMeta,
    UsingIPResource,
    UsingIPSpec,
)
from riveripam.store.base import IPAMStore, ResourceClient
from riveripam.store.cache import Cache
from riveripam.store.informer import Informer
from riveripam.types import LastReservedIP, Network, Pool
from riveripam.utils.logger import get_logger
from riveripam.utils.names import is_resource_name, to_resource_name


class ResourceIPAMStore(IPAMStore):
    """
    IPAMStore over a ResourceClient, with a watch-fed local cache.

    Call run() before use so the cache holds the store's current state, and
    stop() on shutdown.
    """

    def __init__(
        self,
        client: ResourceClient,
        config: IPAMConfig | None = None,
        logger=None,
    ):
        """
        Args:
            client: Backing store.
            config: Configuration; defaults are used when None.
            logger: Optional logger; defaults to this module's.
        """
        self.client = client
        self.config = config or IPAMConfig()
        self.logger = logger or get_logger(__name__)

        self.cache = Cache(logger=self.logger)
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._informers = [
            Informer(
                client,
                kind,
                self.cache.apply,
                self._stop_event,
                resync_period=self.config.RESYNC_PERIOD_SECONDS,
                logger=self.logger,
            )
            for kind in ResourceKind
        ]

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def run(self) -> None:
        """
        Start the informers and wait until every cache kind has synced.

        Raises:
            StoreError: The initial sync did not finish in time.
        """
        self.logger.debug("Starting informers")
        for informer in self._informers:
            informer.start()

        self.logger.info("Waiting for caches to sync")
        timeout = self.config.CACHE_SYNC_TIMEOUT_SECONDS
        for informer in self._informers:
            if not informer.wait_for_sync(timeout):
                self.stop()
                raise StoreError(f"fail to sync {informer.kind.value} cache")

    def stop(self) -> None:
        """Stop the informers. In-flight calls are left to finish."""
        self._stop_event.set()
        for informer in self._informers:
            informer.stop()
        self.logger.info("IPAM store shutting down")

    def __enter__(self) -> ResourceIPAMStore:
        self.run()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    # =========================================================================
    # Networks
    # =========================================================================

    def create_network(self, name: str) -> None:
        with self._lock:
            if self.cache.get_network(name) is not None:
                raise AlreadyExistsError(f"network {name} already exists")

            try:
                self.client.create(NetworkResource(metadata=ObjectMeta(name=name)))
            except ResourceAlreadyExistsError as e:
                raise AlreadyExistsError(f"network {name} already exists") from e

        self.logger.info(f"Created network {name}")

    def delete_network(self, name: str) -> None:
        with self._lock:
            network = self.cache.get_network(name)
            if network is None:
                raise NotFoundError(f"network {name} is not in cache")
            if network.pools:
                raise NotEmptyError(
                    f"network {name} with {len(network.pools)} pools is not allowed "
                    f"to be deleted"
                )

            # Missing record is fine: someone else deleted it first
            self.client.delete(ResourceKind.NETWORK, name)
            self.client.delete(ResourceKind.LAST_RESERVED_IP, name)

        self.logger.info(f"Deleted network {name}")

    def get_network(self, name: str) -> Network:
        network = self.cache.get_network(name)
        if network is None:
            raise NotFoundError(f"network {name} is not in cache")
        return network

    def get_last_reserved_ip(self, name: str) -> LastReservedIP:
        lri = self.cache.get_last_reserved_ip(name)
        if lri is None:
            raise NotFoundError(f"last reserved ip {name} is not in cache")
        return lri

    def list_networks(self) -> list[Network]:
        """Every cached network."""
        return [
            network
            for network in (self.cache.get_network(n) for n in self.cache.network_names())
            if network is not None
        ]

    # =========================================================================
    # Pools
    # =========================================================================

    @staticmethod
    def _check_pool_conflicts(network_name: str, pool: Pool, existing: list[Pool]) -> None:
        for p in existing:
            if pool.name == p.name:
                raise DuplicatePoolError(f"network {network_name} already has pool {pool.name}")
            if pool.overlaps(p):
                raise PoolOverlapError(
                    f"new pool {pool} overlaps old pool {p} in network {network_name}"
                )

    def add_pool(self, network: str, pool: Pool) -> None:
        """
        Append a pool to a network.

        Raises:
            NotFoundError: The network is not in the cache.
            DuplicatePoolError: The network already has a pool with this name.
            PoolOverlapError: The pool's range intersects an existing pool.
            ValidationError: The pool is invalid.
            ResourceConflictError: The network changed concurrently in the store.
        """
        with self._lock:
            cached = self.cache.get_network(network)
            if cached is None:
                raise NotFoundError(f"network {network} is not in cache")
            self._check_pool_conflicts(network, pool, cached.pools)

            pool.canonicalize()

            # Append against the store's current object, not the cache
            try:
                resource = self.client.get(ResourceKind.NETWORK, network)
            except ResourceNotFoundError as e:
                raise NotFoundError(f"network {network} does not exist") from e

            stored_pools = [Pool.from_resource(spec) for spec in resource.spec.pools]
            self._check_pool_conflicts(network, pool, stored_pools)

            resource.spec.pools.append(pool.to_resource())
            self.client.update(resource)

        self.logger.info(f"Added pool {pool} to network {network}")

    def del_pool(self, network: str, pool: str) -> None:
        """
        Remove a pool from a network.

        Raises:
            NotFoundError: The network or the pool does not exist.
            PoolInUseError: The pool still has reserved addresses.
            ResourceConflictError: The network changed concurrently in the store.
        """
        with self._lock:
            try:
                resource = self.client.get(ResourceKind.NETWORK, network)
            except ResourceNotFoundError as e:
                raise NotFoundError(f"network {network} does not exist") from e

            pool_index = next(
                (i for i, p in enumerate(resource.spec.pools) if p.name == pool),
                -1,
            )
            if pool_index < 0:
                raise NotFoundError(f"network {network} does not have pool {pool}")

            used = self.cache.count_using(network, pool)
            if used:
                raise PoolInUseError(
                    f"pool {pool} of network {network} still has {used} addresses in use"
                )

            del resource.spec.pools[pool_index]
            self.client.update(resource)

        self.logger.info(f"Removed pool {pool} from network {network}")

    def count_pool(self, network: str, pool: str) -> tuple[int, int]:
        """
        Count a pool's addresses.

        Returns:
            Tuple of (total addresses in range, addresses in use).
        """
        found = self.get_network(network).get_pool(pool)
        return found.size(), self.cache.count_using(network, pool)

    # =========================================================================
    # Addresses
    # =========================================================================

    def reserve(
        self,
        network: str,
        pool: str,
        namespace: str,
        name: str,
        ip: ipaddress.IPv4Address,
    ) -> bool:
        """
        Try to take an address for an owner.

        Returns:
            True if this call now holds the address, False if someone else does.

        Raises:
            ValidationError: The address does not map to a valid record name.
            StoreError: The store failed for a reason other than contention.
        """
        key = to_resource_name(str(ip))
        if not is_resource_name(key):
            raise ValidationError(f"ip {ip} does not map to a valid record name: {key}")

        with self._lock:
            if self.cache.is_ip_in_use(key):
                return False

            using_ip = UsingIPResource(
                metadata=ObjectMeta(name=key),
                spec=UsingIPSpec(
                    pod_name=name,
                    pod_namespace=namespace,
                    network=network,
                    pool=pool,
                ),
            )
            try:
                self.client.create(using_ip)
            except ResourceAlreadyExistsError:
                self.logger.debug(f"IP {ip} already reserved by someone else")
                return False

            self.logger.info(f"Reserved IP {ip} in {network}/{pool} for {namespace}/{name}")
            self._update_last_reserved_ip(network, pool, str(ip))
            return True

    def _update_last_reserved_ip(self, network: str, pool: str, ip: str) -> None:
        """Record the continuation marker. Failures are logged, never raised."""
        try:
            try:
                resource = self.client.get(ResourceKind.LAST_RESERVED_IP, network)
            except ResourceNotFoundError:
                self.client.create(
                    LastReservedIPResource(
                        metadata=ObjectMeta(name=network),
                        spec=LastReservedIPSpec(ip=ip, pool_name=pool),
                    )
                )
                return

            resource.spec.ip = ip
            resource.spec.pool_name = pool
            self.client.update(resource)
        except IPAMError as e:
            self.logger.warning(f"Failed to update last reserved ip of {network} to {ip}: {e}")

    def _delete_using_ip(self, key: str) -> None:
        """Delete an in-use record and evict it from the cache. Caller holds the lock."""
        try:
            version = self.client.get(ResourceKind.USING_IP, key).metadata.resource_version
        except ResourceNotFoundError:
            version = ""
        self.client.delete(ResourceKind.USING_IP, key)
        self.cache.forget_using_ip(key, version)

    def release(self, ip: ipaddress.IPv4Address) -> None:
        """Free an address. Releasing a free address is not an error."""
        with self._lock:
            self._delete_using_ip(to_resource_name(str(ip)))
        self.logger.info(f"Released IP {ip}")

    def release_by_name(
        self,
        network: str,
        pool: str,
        namespace: str,
        name: str,
    ) -> list[str]:
        """
        Free every address an owner holds in a pool.

        Returns:
            Released addresses.
        """
        with self._lock:
            released = []
            for entry in self.cache.using_ips_of(network, pool, namespace, name):
                self._delete_using_ip(to_resource_name(entry.ip))
                released.append(entry.ip)

        if released:
            self.logger.info(
                f"Released {len(released)} IPs of {namespace}/{name} in {network}/{pool}"
            )
        return released
