"""
Configuration for riveripam.

This module defines the configuration dataclass shared by the reservation
coordinator, the backing-store clients and the CLI.

Values come from, in increasing priority:
    1. dataclass defaults
    2. an optional YAML file (keys are the attribute names)
    3. RIVERIPAM_<ATTRIBUTE> environment variables

Usage:
    from riveripam.config import load_config

    config = load_config("/etc/riveripam.yaml")
    store = ResourceIPAMStore(build_client(config), config)
"""

import os
from dataclasses import dataclass, fields

import yaml

from riveripam.errors import ValidationError
from riveripam.models.enums import LogLevel, StoreBackend

ENV_PREFIX = "RIVERIPAM_"


# =============================================================================
# Configuration Dataclass
# =============================================================================


@dataclass
class IPAMConfig:
    """
    riveripam configuration.

    Attributes:
        STORE_BACKEND: Backing store implementation.
        DB_FILE: SQLite file shared by every process of the cluster.
        WATCH_POLL_INTERVAL_SECONDS: Poll period of SQLite watches.
        RESYNC_PERIOD_SECONDS: Informer resync period, 0 disables resyncs.
        CACHE_SYNC_TIMEOUT_SECONDS: How long run() waits for the initial sync.
        LOG_LEVEL: Logging verbosity level.
        LOG_FILE: Optional rotating log file.
    """

    # -------------------------------------------------------------------------
    # Store Configuration
    # -------------------------------------------------------------------------

    STORE_BACKEND: StoreBackend = StoreBackend.SQLITE
    DB_FILE: str = "/var/lib/riveripam/riveripam.db"
    STORE_BUSY_TIMEOUT_SECONDS: float = 10.0

    # -------------------------------------------------------------------------
    # Cache Configuration
    # -------------------------------------------------------------------------

    WATCH_POLL_INTERVAL_SECONDS: float = 0.2
    RESYNC_PERIOD_SECONDS: float = 30.0
    CACHE_SYNC_TIMEOUT_SECONDS: float = 30.0

    # -------------------------------------------------------------------------
    # Logging Configuration
    # -------------------------------------------------------------------------

    LOG_LEVEL: LogLevel = LogLevel.INFO
    LOG_FILE: str = ""

    def __post_init__(self):
        self.STORE_BACKEND = StoreBackend(self.STORE_BACKEND)
        self.LOG_LEVEL = LogLevel(self.LOG_LEVEL)

    def update(self, values: dict) -> None:
        """
        Apply a mapping of attribute names to raw values.

        Raises:
            ValidationError: Unknown attribute or a value of the wrong type.
        """
        known = {f.name: f for f in fields(self)}
        for key, raw in values.items():
            name = key.upper()
            if name not in known:
                raise ValidationError(f"unknown configuration key {key!r}")
            setattr(self, name, _coerce(known[name].type, raw, name))
        self.__post_init__()


def _coerce(field_type, raw, name: str):
    """Convert a raw YAML/env value to the field's type."""
    try:
        if field_type in (float, "float"):
            return float(raw)
        if field_type in (int, "int"):
            return int(raw)
        if field_type in (StoreBackend, "StoreBackend"):
            return StoreBackend(str(raw).lower())
        if field_type in (LogLevel, "LogLevel"):
            return LogLevel(str(raw).lower())
        return str(raw)
    except ValueError as e:
        raise ValidationError(f"invalid value {raw!r} for {name}") from e


# =============================================================================
# Loading
# =============================================================================


def load_config(path: str | None = None, environ: dict | None = None) -> IPAMConfig:
    """
    Build a configuration from defaults, an optional YAML file and the environment.

    Args:
        path: YAML file path, skipped when None.
        environ: Environment mapping, defaults to os.environ.

    Raises:
        ValidationError: The file is not a mapping or holds bad values.
    """
    config = IPAMConfig()

    if path:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValidationError(f"configuration file {path} must hold a mapping")
        config.update(data)

    # Other RIVERIPAM_* variables (e.g. the CLI's RIVERIPAM_CONFIG) are not settings
    environ = os.environ if environ is None else environ
    names = {f.name for f in fields(IPAMConfig)}
    overrides = {
        key[len(ENV_PREFIX) :]: value
        for key, value in environ.items()
        if key.startswith(ENV_PREFIX) and key[len(ENV_PREFIX) :] in names
    }
    if overrides:
        config.update(overrides)

    return config


def build_client(config: IPAMConfig, logger=None):
    """Construct the ResourceClient selected by the configuration."""
    from riveripam.store.memory import MemoryResourceClient
    from riveripam.store.sqlite import SqliteResourceClient

    match config.STORE_BACKEND:
        case StoreBackend.MEMORY:
            return MemoryResourceClient(logger=logger)
        case StoreBackend.SQLITE:
            db_dir = os.path.dirname(config.DB_FILE)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
            return SqliteResourceClient(
                config.DB_FILE,
                poll_interval=config.WATCH_POLL_INTERVAL_SECONDS,
                busy_timeout=config.STORE_BUSY_TIMEOUT_SECONDS,
                logger=logger,
            )
