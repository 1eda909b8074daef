"""Tests for configuration loading."""

import pytest

from riveripam.config import IPAMConfig, build_client, load_config
from riveripam.errors import ValidationError
from riveripam.models.enums import LogLevel, StoreBackend
from riveripam.store.memory import MemoryResourceClient
from riveripam.store.sqlite import SqliteResourceClient


def test_defaults():
    config = load_config(environ={})

    assert config.STORE_BACKEND == StoreBackend.SQLITE
    assert config.LOG_LEVEL == LogLevel.INFO
    assert config.RESYNC_PERIOD_SECONDS == 30.0


def test_yaml_file(tmp_path):
    path = tmp_path / "riveripam.yaml"
    path.write_text(
        "STORE_BACKEND: memory\n"
        "RESYNC_PERIOD_SECONDS: 5\n"
        "log_level: debug\n"
    )

    config = load_config(str(path), environ={})

    assert config.STORE_BACKEND == StoreBackend.MEMORY
    assert config.RESYNC_PERIOD_SECONDS == 5.0
    assert config.LOG_LEVEL == LogLevel.DEBUG


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "riveripam.yaml"
    path.write_text("DB_FILE: /tmp/from-file.db\n")

    config = load_config(
        str(path),
        environ={
            "RIVERIPAM_DB_FILE": "/tmp/from-env.db",
            "RIVERIPAM_WATCH_POLL_INTERVAL_SECONDS": "0.5",
            "RIVERIPAM_CONFIG": "/ignored.yaml",
            "UNRELATED": "x",
        },
    )

    assert config.DB_FILE == "/tmp/from-env.db"
    assert config.WATCH_POLL_INTERVAL_SECONDS == 0.5


def test_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path), environ={}) == IPAMConfig()


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "NOT_A_SETTING: 1\n",
        "STORE_BACKEND: etcd\n",
        "RESYNC_PERIOD_SECONDS: soon\n",
    ],
)
def test_invalid_file(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)

    with pytest.raises(ValidationError):
        load_config(str(path), environ={})


def test_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_config(str(tmp_path / "missing.yaml"), environ={})


def test_build_memory_client():
    client = build_client(IPAMConfig(STORE_BACKEND=StoreBackend.MEMORY))
    assert isinstance(client, MemoryResourceClient)


def test_build_sqlite_client_creates_directory(tmp_path):
    db_file = tmp_path / "state" / "ipam.db"
    config = IPAMConfig(STORE_BACKEND="sqlite", DB_FILE=str(db_file))

    client = build_client(config)
    try:
        assert isinstance(client, SqliteResourceClient)
        assert db_file.exists()
    finally:
        client.close()
