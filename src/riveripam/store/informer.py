"""
Notification consumer feeding the local cache.

Each Informer owns one background thread that opens a watch on a record
kind, replays the initial snapshot as ADDED events, then forwards every
change to a handler until its stop event is set. Periodically the last seen
state of every record is re-delivered as MODIFIED with an unchanged
resource version; the cache ignores those, so a resync only matters when a
notification was lost on the way.

If the watch fails, the informer logs the error, waits, and reopens it;
records that disappeared while the watch was down are delivered as DELETED.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from riveripam.errors import IPAMError
from riveripam.models.enums import EventType, ResourceKind
from riveripam.models.resources import Resource, WatchEvent
from riveripam.store.base import ResourceClient, Watcher
from riveripam.utils.logger import format_traceback, get_logger

# Longest a blocked next() may delay noticing the stop event
WATCH_WAIT_SECONDS = 0.5
# Pause before reopening a failed watch
RETRY_DELAY_SECONDS = 1.0


class Informer:
    """Background watch loop for one record kind."""

    def __init__(
        self,
        client: ResourceClient,
        kind: ResourceKind,
        handler: Callable[[WatchEvent], None],
        stop_event: threading.Event,
        resync_period: float = 30.0,
        logger=None,
    ):
        """
        Args:
            client: Backing store to watch.
            kind: Record kind to watch.
            handler: Called with every event, on the informer thread.
            stop_event: Set to stop the loop.
            resync_period: Seconds between resyncs, 0 disables them.
            logger: Optional logger; defaults to this module's.
        """
        self.client = client
        self.kind = ResourceKind(kind)
        self.handler = handler
        self.stop_event = stop_event
        self.resync_period = resync_period
        self.logger = logger or get_logger(__name__)

        # name -> last delivered state
        self._known: dict[str, Resource] = {}
        self._synced = threading.Event()
        self._watcher: Watcher | None = None
        self._thread: threading.Thread | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._run,
            name=f"informer-{self.kind.value}",
            daemon=True,
        )
        self._thread.start()

    def has_synced(self) -> bool:
        return self._synced.is_set()

    def wait_for_sync(self, timeout: float | None = None) -> bool:
        """Block until the initial snapshot was delivered."""
        return self._synced.wait(timeout)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the loop and wait for the thread. The stop event is set here too."""
        self.stop_event.set()
        watcher = self._watcher
        if watcher is not None:
            watcher.stop()
        if self._thread is not None:
            self._thread.join(timeout)

    # =========================================================================
    # Loop
    # =========================================================================

    def _dispatch(self, event: WatchEvent) -> None:
        name = event.resource.metadata.name
        if event.type == EventType.DELETED:
            self._known.pop(name, None)
        else:
            self._known[name] = event.resource

        try:
            self.handler(event)
        except Exception as e:
            # A bad record must not stop the notification stream
            self.logger.error(
                f"Handler failed for {event.type.value} {self.kind.value} {name}: {e}"
            )
            self.logger.debug(format_traceback(e))

    def _replay_initial(self, watcher: Watcher) -> None:
        current = {r.metadata.name: r for r in watcher.initial}

        for name in list(self._known):
            if name not in current:
                self._dispatch(WatchEvent(EventType.DELETED, self._known[name]))
        for resource in current.values():
            self._dispatch(WatchEvent(EventType.ADDED, resource))

    def _resync(self) -> None:
        for resource in list(self._known.values()):
            self._dispatch(WatchEvent(EventType.MODIFIED, resource))

    def _run(self) -> None:
        self.logger.debug(f"Informer for {self.kind.value} started")

        while not self.stop_event.is_set():
            try:
                watcher = self.client.watch(self.kind)
            except IPAMError as e:
                self.logger.warning(f"Failed to watch {self.kind.value}: {e}")
                self.stop_event.wait(RETRY_DELAY_SECONDS)
                continue

            self._watcher = watcher
            self._replay_initial(watcher)
            if not self._synced.is_set():
                self._synced.set()
                self.logger.info(
                    f"{self.kind.value} cache synced ({len(self._known)} records)"
                )

            last_resync = time.monotonic()
            try:
                while not self.stop_event.is_set():
                    event = watcher.next(timeout=WATCH_WAIT_SECONDS)
                    if event is not None:
                        self._dispatch(event)

                    if (
                        self.resync_period
                        and time.monotonic() - last_resync >= self.resync_period
                    ):
                        self._resync()
                        last_resync = time.monotonic()
            except IPAMError as e:
                self.logger.warning(f"Watch on {self.kind.value} failed, reopening: {e}")
                self.stop_event.wait(RETRY_DELAY_SECONDS)
            finally:
                watcher.stop()
                self._watcher = None

        self.logger.debug(f"Informer for {self.kind.value} stopped")
