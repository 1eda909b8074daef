"""
Enumeration types for riveripam.

This module defines the enumerations shared by the wire records, the
backing-store clients and the configuration layer.
"""

from enum import Enum


# =============================================================================
# Resource-Related Enums
# =============================================================================


class ResourceKind(str, Enum):
    """
    Kinds of records kept in the backing store.

    - NETWORK: a named collection of pools
    - LAST_RESERVED_IP: per-network continuation hint
    - USING_IP: an address currently allocated to an owner
    """

    NETWORK = "Network"
    LAST_RESERVED_IP = "LastReservedIP"
    USING_IP = "UsingIP"


class EventType(str, Enum):
    """
    Change notification types delivered by a store watch.

    DELETED carries the last known state of the record.
    """

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


class StoreBackend(str, Enum):
    """Backing-store implementations selectable from configuration."""

    MEMORY = "memory"  # Single process, lost on exit
    SQLITE = "sqlite"  # Shared SQLite file, usable from several processes


# =============================================================================
# Configuration Enums
# =============================================================================


class LogLevel(str, Enum):
    """
    Logging verbosity levels.

    Levels (from most to least verbose):
        - FULL: trace-level output, including every cache mutation
        - DEBUG: detailed debugging information
        - INFO: general operational information
        - WARNING: only warnings and errors
    """

    FULL = "full"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
