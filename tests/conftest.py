"""Shared pytest fixtures for riveripam tests."""

import time

import pytest

from riveripam.config import IPAMConfig
from riveripam.models.enums import StoreBackend
from riveripam.store.ipam import ResourceIPAMStore
from riveripam.store.memory import MemoryResourceClient
from riveripam.store.sqlite import SqliteResourceClient


def _wait_until(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    """Poll predicate until it is truthy or the timeout expires."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


@pytest.fixture
def wait_until():
    """Helper for waiting on the watch-fed cache to catch up."""
    return _wait_until


@pytest.fixture
def memory_config() -> IPAMConfig:
    return IPAMConfig(
        STORE_BACKEND=StoreBackend.MEMORY,
        CACHE_SYNC_TIMEOUT_SECONDS=5.0,
    )


@pytest.fixture
def memory_client() -> MemoryResourceClient:
    return MemoryResourceClient()


@pytest.fixture
def sqlite_client(tmp_path):
    client = SqliteResourceClient(str(tmp_path / "ipam.db"), poll_interval=0.02)
    yield client
    client.close()


@pytest.fixture
def store(memory_client, memory_config):
    """Running coordinator over an in-memory store."""
    ipam = ResourceIPAMStore(memory_client, memory_config)
    ipam.run()
    yield ipam
    ipam.stop()


@pytest.fixture
def make_network(store, wait_until):
    """Create a network and wait until the cache has it."""

    def _make(name: str = "n1"):
        store.create_network(name)
        assert wait_until(lambda: store.cache.get_network(name) is not None)
        return name

    return _make


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: marks tests that wait on polling watches")
