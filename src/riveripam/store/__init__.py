"""
Backing-store clients, local cache and reservation coordinator.

    - base: ResourceClient / Watcher / IPAMStore interfaces
    - memory: in-process ResourceClient
    - sqlite: SQLite ResourceClient shared between processes
    - cache: watch-fed local cache
    - informer: background watch loop feeding the cache
    - ipam: ResourceIPAMStore, the reservation coordinator
"""

from riveripam.store.base import IPAMStore, ResourceClient, Watcher
from riveripam.store.ipam import ResourceIPAMStore

__all__ = ["IPAMStore", "ResourceClient", "Watcher", "ResourceIPAMStore"]
