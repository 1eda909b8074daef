"""
In-process backing store.

Records live in a dict guarded by a single lock, so create-if-absent is
atomic for every thread of the process. Watchers receive deep copies of each
change through their own queue. Mainly useful for tests and for running
several independent coordinators inside one process.
"""

from __future__ import annotations

import datetime
import queue
import threading

from riveripam.errors import (
    ResourceAlreadyExistsError,
    ResourceConflictError,
    ResourceNotFoundError,
)
from riveripam.models.enums import EventType, ResourceKind
from riveripam.models.resources import Resource, WatchEvent
from riveripam.store.base import ResourceClient, Watcher
from riveripam.utils.logger import get_logger


class MemoryWatcher(Watcher):
    """Queue-backed change feed handed out by MemoryResourceClient."""

    def __init__(self, client: MemoryResourceClient, kind: ResourceKind, initial):
        self.kind = kind
        self.initial = initial
        self._client = client
        self._queue: queue.Queue[WatchEvent | None] = queue.Queue()
        self._stopped = threading.Event()

    def push(self, event: WatchEvent) -> None:
        if not self._stopped.is_set():
            self._queue.put(event)

    def next(self, timeout: float | None = None) -> WatchEvent | None:
        if self._stopped.is_set():
            return None
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        self._client._unregister(self)
        # Wake up a consumer blocked in next()
        self._queue.put(None)


class MemoryResourceClient(ResourceClient):
    """Thread-safe dict-backed ResourceClient."""

    def __init__(self, logger=None):
        self.logger = logger or get_logger(__name__)

        # (kind, name) -> record
        self._objects: dict[tuple[ResourceKind, str], Resource] = {}
        self._watchers: dict[ResourceKind, set[MemoryWatcher]] = {
            kind: set() for kind in ResourceKind
        }
        self._revision = 0
        self._lock = threading.Lock()

    # =========================================================================
    # Internals (caller holds self._lock)
    # =========================================================================

    def _next_version(self) -> str:
        self._revision += 1
        return str(self._revision)

    def _notify(self, event_type: EventType, resource: Resource) -> None:
        kind = ResourceKind(resource.kind)
        for watcher in self._watchers[kind]:
            watcher.push(WatchEvent(event_type, resource.model_copy(deep=True)))

    def _unregister(self, watcher: MemoryWatcher) -> None:
        with self._lock:
            self._watchers[watcher.kind].discard(watcher)

    # =========================================================================
    # ResourceClient
    # =========================================================================

    def create(self, resource: Resource) -> Resource:
        kind = ResourceKind(resource.kind)
        key = (kind, resource.metadata.name)

        with self._lock:
            if key in self._objects:
                raise ResourceAlreadyExistsError(
                    f"{kind.value} {resource.metadata.name} already exists"
                )

            stored = resource.model_copy(deep=True)
            stored.metadata.resource_version = self._next_version()
            stored.metadata.deletion_timestamp = None
            self._objects[key] = stored
            self._notify(EventType.ADDED, stored)
            return stored.model_copy(deep=True)

    def get(self, kind: ResourceKind, name: str) -> Resource:
        with self._lock:
            stored = self._objects.get((ResourceKind(kind), name))
            if stored is None:
                raise ResourceNotFoundError(f"{ResourceKind(kind).value} {name} not found")
            return stored.model_copy(deep=True)

    def update(self, resource: Resource) -> Resource:
        kind = ResourceKind(resource.kind)
        key = (kind, resource.metadata.name)

        with self._lock:
            current = self._objects.get(key)
            if current is None:
                raise ResourceNotFoundError(f"{kind.value} {resource.metadata.name} not found")

            expected = resource.metadata.resource_version
            if expected and expected != current.metadata.resource_version:
                raise ResourceConflictError(
                    f"{kind.value} {resource.metadata.name} was modified "
                    f"(version {expected}, stored {current.metadata.resource_version})"
                )

            stored = resource.model_copy(deep=True)
            stored.metadata.resource_version = self._next_version()
            stored.metadata.deletion_timestamp = current.metadata.deletion_timestamp

            # Last finalizer removed from a record pending deletion
            if stored.metadata.deletion_timestamp and not stored.metadata.finalizers:
                del self._objects[key]
                self._notify(EventType.DELETED, stored)
            else:
                self._objects[key] = stored
                self._notify(EventType.MODIFIED, stored)
            return stored.model_copy(deep=True)

    def delete(self, kind: ResourceKind, name: str) -> None:
        key = (ResourceKind(kind), name)

        with self._lock:
            current = self._objects.get(key)
            if current is None:
                return

            if current.metadata.finalizers:
                if current.metadata.deletion_timestamp is None:
                    current.metadata.deletion_timestamp = datetime.datetime.now(
                        datetime.timezone.utc
                    )
                    current.metadata.resource_version = self._next_version()
                    self._notify(EventType.MODIFIED, current)
                return

            del self._objects[key]
            self._notify(EventType.DELETED, current)

    def list(self, kind: ResourceKind) -> list[Resource]:
        kind = ResourceKind(kind)
        with self._lock:
            return [
                obj.model_copy(deep=True)
                for (k, _), obj in self._objects.items()
                if k == kind
            ]

    def watch(self, kind: ResourceKind) -> MemoryWatcher:
        kind = ResourceKind(kind)
        with self._lock:
            initial = [
                obj.model_copy(deep=True)
                for (k, _), obj in self._objects.items()
                if k == kind
            ]
            watcher = MemoryWatcher(self, kind, initial)
            self._watchers[kind].add(watcher)

        self.logger.debug(f"Opened watch on {kind.value} ({len(initial)} initial records)")
        return watcher
