"""
Pydantic models for records exchanged with the backing store.

These are the wire representation of networks, last-reserved-ip markers and
in-use addresses. Addresses, subnets and VLAN IDs are carried as plain
strings/integers here; translation into the validated domain types lives in
riveripam.types.

Model Categories:
    - Metadata: name, change-version token, deletion marker, finalizers
    - Network: list of wire pools
    - LastReservedIP: address + pool name
    - UsingIP: owner identity + network + pool
    - Watch events: tagged union over the three record kinds
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from riveripam.models.enums import EventType


class WireModel(BaseModel):
    """Base for wire models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# Metadata
# =============================================================================


class ObjectMeta(WireModel):
    """
    Metadata common to every stored record.

    resource_version is assigned by the store on every write and is only
    ever compared for equality. deletion_timestamp is set when a delete was
    requested but finalizers still hold the record.
    """

    name: str
    resource_version: str = Field(default="", alias="resourceVersion")
    deletion_timestamp: datetime.datetime | None = Field(
        default=None,
        alias="deletionTimestamp",
    )
    finalizers: list[str] = Field(default_factory=list)


# =============================================================================
# Network
# =============================================================================


class PoolSpec(WireModel):
    """A pool as stored inside a network record."""

    name: str = ""
    pool_start: str = Field(default="", alias="poolStart")
    pool_end: str = Field(default="", alias="poolEnd")
    gateway: str = ""
    subnet: str = ""
    vlan_id: int = Field(default=0, alias="vlanId", description="0 means unset")


class NetworkSpec(WireModel):
    pools: list[PoolSpec] = Field(default_factory=list)


class NetworkResource(WireModel):
    """Network record."""

    kind: Literal["Network"] = "Network"
    metadata: ObjectMeta
    spec: NetworkSpec = Field(default_factory=NetworkSpec)


# =============================================================================
# LastReservedIP
# =============================================================================


class LastReservedIPSpec(WireModel):
    ip: str = ""
    pool_name: str = Field(default="", alias="poolName")


class LastReservedIPResource(WireModel):
    """Last reserved address of a network, keyed by the network name."""

    kind: Literal["LastReservedIP"] = "LastReservedIP"
    metadata: ObjectMeta
    spec: LastReservedIPSpec = Field(default_factory=LastReservedIPSpec)


# =============================================================================
# UsingIP
# =============================================================================


class UsingIPSpec(WireModel):
    pod_name: str = Field(default="", alias="podName")
    pod_namespace: str = Field(default="", alias="podNamespace")
    network: str = ""
    pool: str = ""


class UsingIPResource(WireModel):
    """In-use address, keyed by the address's canonical record name."""

    kind: Literal["UsingIP"] = "UsingIP"
    metadata: ObjectMeta
    spec: UsingIPSpec = Field(default_factory=UsingIPSpec)


# =============================================================================
# Tagged Union
# =============================================================================

Resource = Annotated[
    Union[NetworkResource, LastReservedIPResource, UsingIPResource],
    Field(discriminator="kind"),
]

_resource_adapter = TypeAdapter(Resource)


def parse_resource(data: dict | str | bytes) -> Resource:
    """Parse a record from a dict or JSON document, dispatching on its kind."""
    if isinstance(data, dict):
        return _resource_adapter.validate_python(data)
    return _resource_adapter.validate_json(data)


def dump_resource(resource: Resource) -> str:
    """Serialize a record to its JSON wire form."""
    return resource.model_dump_json(by_alias=True)


@dataclass(frozen=True)
class WatchEvent:
    """A single change notification from a store watch."""

    type: EventType
    resource: Resource
