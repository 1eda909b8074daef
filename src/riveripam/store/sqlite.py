"""
SQLite backing store.

Uses Peewee ORM over a SQLite file that every cooperating process opens.
Exclusivity across processes comes from two things:

    - a UNIQUE (kind, name) index, so a second create of the same key fails
      with IntegrityError no matter which process issues it
    - BEGIN IMMEDIATE write transactions, so the revision counter and
      version-conditioned updates are serialized across processes

Watches poll the table and diff consecutive snapshots, so any process sees
changes made by any other within one poll interval.

Components:
    - build_models: per-database model classes (no shared module-level db)
    - SqliteResourceClient: ResourceClient implementation
    - SqliteWatcher: polling change feed
"""

from __future__ import annotations

import collections
import datetime
import threading
import time
from contextlib import contextmanager

import peewee

from riveripam.errors import (
    ResourceAlreadyExistsError,
    ResourceConflictError,
    ResourceNotFoundError,
    StoreError,
)
from riveripam.models.enums import EventType, ResourceKind
from riveripam.models.resources import Resource, WatchEvent, dump_resource, parse_resource
from riveripam.store.base import ResourceClient, Watcher
from riveripam.utils.logger import get_logger


# =============================================================================
# Models
# =============================================================================


def build_models(db: peewee.Database):
    """
    Create the model classes bound to one database.

    Returns:
        Tuple of (ResourceRecord, Revision) model classes.
    """

    class BaseModel(peewee.Model):
        class Meta:
            database = db

    class ResourceRecord(BaseModel):
        """One stored record; `body` holds the full JSON wire form."""

        kind = peewee.CharField()
        name = peewee.CharField()
        resource_version = peewee.IntegerField()
        deletion_timestamp = peewee.DateTimeField(null=True)
        body = peewee.TextField()

        class Meta:
            table_name = "resources"
            indexes = ((("kind", "name"), True),)

    class Revision(BaseModel):
        """Single-row store-wide revision counter."""

        value = peewee.IntegerField(default=0)

        class Meta:
            table_name = "revision"

    return ResourceRecord, Revision


# =============================================================================
# Watcher
# =============================================================================


class SqliteWatcher(Watcher):
    """Change feed that polls the table and diffs snapshots."""

    def __init__(
        self,
        client: SqliteResourceClient,
        kind: ResourceKind,
        poll_interval: float,
    ):
        self.kind = kind
        self.poll_interval = poll_interval
        self._client = client
        self._stopped = threading.Event()
        self._pending: collections.deque[WatchEvent] = collections.deque()

        self.initial = client.list(kind)
        # name -> last seen record
        self._seen: dict[str, Resource] = {r.metadata.name: r for r in self.initial}

    def _poll(self) -> None:
        current = {r.metadata.name: r for r in self._client.list(self.kind)}

        for name, resource in current.items():
            previous = self._seen.get(name)
            if previous is None:
                self._pending.append(WatchEvent(EventType.ADDED, resource))
            elif previous.metadata.resource_version != resource.metadata.resource_version:
                self._pending.append(WatchEvent(EventType.MODIFIED, resource))

        for name, resource in self._seen.items():
            if name not in current:
                self._pending.append(WatchEvent(EventType.DELETED, resource))

        self._seen = current

    def next(self, timeout: float | None = None) -> WatchEvent | None:
        deadline = None if timeout is None else time.monotonic() + timeout

        while not self._stopped.is_set():
            if self._pending:
                return self._pending.popleft()

            self._poll()
            if self._pending:
                return self._pending.popleft()

            wait = self.poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                wait = min(wait, remaining)
            self._stopped.wait(wait)

        return None

    def stop(self) -> None:
        self._stopped.set()


# =============================================================================
# Client
# =============================================================================


class SqliteResourceClient(ResourceClient):
    """ResourceClient backed by a SQLite file shared between processes."""

    def __init__(
        self,
        db_path: str,
        poll_interval: float = 0.2,
        busy_timeout: float = 10.0,
        logger=None,
    ):
        """
        Open (and if needed create) the store.

        Args:
            db_path: Path to the SQLite database file.
            poll_interval: Seconds between watch polls.
            busy_timeout: Seconds to wait for another process's write lock.
            logger: Optional logger; defaults to this module's.
        """
        self.db_path = db_path
        self.poll_interval = poll_interval
        self.logger = logger or get_logger(__name__)

        self.db = peewee.SqliteDatabase(
            db_path,
            timeout=busy_timeout,
            pragmas={"journal_mode": "wal", "synchronous": "normal"},
        )
        self.Record, self.Revision = build_models(self.db)

        with self._store_errors("initialize"):
            self.db.connect(reuse_if_open=True)
            self.db.create_tables([self.Record, self.Revision], safe=True)
            with self.db.atomic("IMMEDIATE"):
                self.Revision.get_or_create(id=1, defaults={"value": 0})

        self.logger.debug(f"SQLite store opened: {db_path}")

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _store_errors(self, action: str):
        """Translate database failures into StoreError."""
        try:
            yield
        except peewee.PeeweeException as e:
            self.logger.error(f"SQLite store failed to {action}: {e}")
            raise StoreError(f"failed to {action}: {e}") from e

    def _bump_revision(self) -> int:
        """Increment the revision counter. Caller holds a write transaction."""
        self.Revision.update(value=self.Revision.value + 1).where(
            self.Revision.id == 1
        ).execute()
        return self.Revision.get_by_id(1).value

    def _select(self, kind: ResourceKind, name: str):
        return self.Record.get_or_none(
            (self.Record.kind == ResourceKind(kind).value) & (self.Record.name == name)
        )

    @staticmethod
    def _to_resource(row) -> Resource:
        resource = parse_resource(row.body)
        resource.metadata.resource_version = str(row.resource_version)
        return resource

    # =========================================================================
    # ResourceClient
    # =========================================================================

    def create(self, resource: Resource) -> Resource:
        kind = ResourceKind(resource.kind)
        stored = resource.model_copy(deep=True)
        stored.metadata.deletion_timestamp = None

        with self._store_errors(f"create {kind.value} {stored.metadata.name}"):
            try:
                with self.db.atomic("IMMEDIATE"):
                    version = self._bump_revision()
                    stored.metadata.resource_version = str(version)
                    self.Record.create(
                        kind=kind.value,
                        name=stored.metadata.name,
                        resource_version=version,
                        deletion_timestamp=None,
                        body=dump_resource(stored),
                    )
            except peewee.IntegrityError as e:
                raise ResourceAlreadyExistsError(
                    f"{kind.value} {stored.metadata.name} already exists"
                ) from e

        return stored

    def get(self, kind: ResourceKind, name: str) -> Resource:
        with self._store_errors(f"get {ResourceKind(kind).value} {name}"):
            row = self._select(kind, name)
        if row is None:
            raise ResourceNotFoundError(f"{ResourceKind(kind).value} {name} not found")
        return self._to_resource(row)

    def update(self, resource: Resource) -> Resource:
        kind = ResourceKind(resource.kind)
        name = resource.metadata.name
        stored = resource.model_copy(deep=True)

        with self._store_errors(f"update {kind.value} {name}"):
            with self.db.atomic("IMMEDIATE"):
                row = self._select(kind, name)
                if row is None:
                    raise ResourceNotFoundError(f"{kind.value} {name} not found")

                expected = resource.metadata.resource_version
                if expected and expected != str(row.resource_version):
                    raise ResourceConflictError(
                        f"{kind.value} {name} was modified "
                        f"(version {expected}, stored {row.resource_version})"
                    )

                version = self._bump_revision()
                stored.metadata.resource_version = str(version)
                stored.metadata.deletion_timestamp = (
                    self._to_resource(row).metadata.deletion_timestamp
                )

                # Last finalizer removed from a record pending deletion
                if row.deletion_timestamp is not None and not stored.metadata.finalizers:
                    row.delete_instance()
                else:
                    row.resource_version = version
                    row.body = dump_resource(stored)
                    row.save()

        return stored

    def delete(self, kind: ResourceKind, name: str) -> None:
        kind = ResourceKind(kind)

        with self._store_errors(f"delete {kind.value} {name}"):
            with self.db.atomic("IMMEDIATE"):
                row = self._select(kind, name)
                if row is None:
                    return

                resource = self._to_resource(row)
                if not resource.metadata.finalizers:
                    row.delete_instance()
                    return

                if row.deletion_timestamp is None:
                    now = datetime.datetime.now(datetime.timezone.utc)
                    resource.metadata.deletion_timestamp = now
                    row.deletion_timestamp = now.replace(tzinfo=None)
                    row.resource_version = self._bump_revision()
                    row.body = dump_resource(resource)
                    row.save()

    def list(self, kind: ResourceKind) -> list[Resource]:
        kind = ResourceKind(kind)
        with self._store_errors(f"list {kind.value}"):
            rows = list(
                self.Record.select()
                .where(self.Record.kind == kind.value)
                .order_by(self.Record.name)
            )
        return [self._to_resource(row) for row in rows]

    def watch(self, kind: ResourceKind) -> SqliteWatcher:
        watcher = SqliteWatcher(self, ResourceKind(kind), self.poll_interval)
        self.logger.debug(
            f"Opened watch on {watcher.kind.value} ({len(watcher.initial)} initial records)"
        )
        return watcher

    def close(self) -> None:
        if not self.db.is_closed():
            self.db.close()

