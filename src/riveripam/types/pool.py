"""
Address pool model.

A pool is a named, contiguous range of addresses inside one subnet:

    subnet     192.168.0.0/24
    gateway    192.168.0.254
    poolStart  192.168.0.1      (defaults to network address + 1)
    poolEnd    192.168.0.254    (defaults to broadcast address - 1)
    vlanID     10               (optional)

Raw input is checked with validate(); canonicalize() then fills the missing
range bounds. Only IPv4 is supported; IPv6 input fails validation and is
never contained in a pool.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Iterator
from dataclasses import dataclass

from riveripam.errors import ValidationError
from riveripam.models.resources import PoolSpec

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
IPInterface = ipaddress.IPv4Interface | ipaddress.IPv6Interface


def _parse_address(value, field_name: str) -> IPAddress | None:
    if value is None or value == "":
        return None
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    try:
        return ipaddress.ip_address(value)
    except ValueError as e:
        raise ValidationError(f"pool {field_name} {value!r} is not an IP address") from e


def _parse_subnet(value) -> IPInterface | None:
    if value is None or value == "":
        return None
    if isinstance(value, (ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
        return value
    if isinstance(value, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return ipaddress.ip_interface(str(value))
    try:
        # Interface rather than network: host bits must survive until validate()
        return ipaddress.ip_interface(value)
    except ValueError as e:
        raise ValidationError(f"pool subnet {value!r} is not a CIDR") from e


def to_ipv4(value) -> ipaddress.IPv4Address | None:
    """Parse a value into an IPv4 address, or None if it is not one."""
    try:
        addr = value if isinstance(value, ipaddress.IPv4Address) else ipaddress.ip_address(value)
    except ValueError:
        return None
    if addr.version != 4:
        return None
    return addr


def next_ip(addr: ipaddress.IPv4Address) -> ipaddress.IPv4Address:
    """Address immediately after addr."""
    return addr + 1


def last_ip(subnet: ipaddress.IPv4Network) -> ipaddress.IPv4Address:
    """
    Last usable address of a subnet.

    Each address byte is OR-ed with the inverted mask byte, which yields the
    broadcast address; the final byte is then decremented so the IPv4
    broadcast address itself is excluded.
    """
    end = bytearray(
        a | (~m & 0xFF)
        for a, m in zip(subnet.network_address.packed, subnet.netmask.packed)
    )
    end[3] -= 1
    return ipaddress.IPv4Address(bytes(end))


@dataclass
class Pool:
    """
    A named range of addresses within a subnet.

    Attributes:
        name: Pool name, unique within its network.
        subnet: Network address and prefix length. Kept as an interface so a
            subnet given with host bits set can be reported by validate().
        gateway: Gateway address, must lie inside the subnet.
        pool_start: First allocatable address (inclusive).
        pool_end: Last allocatable address (inclusive).
        vlan_id: Optional VLAN tag.

    String values are parsed on construction, so
    Pool(name="p1", subnet="10.0.0.0/24", gateway="10.0.0.1") works.
    """

    name: str = ""
    subnet: IPInterface | None = None
    gateway: IPAddress | None = None
    pool_start: IPAddress | None = None
    pool_end: IPAddress | None = None
    vlan_id: int | None = None

    def __post_init__(self):
        self.subnet = _parse_subnet(self.subnet)
        self.gateway = _parse_address(self.gateway, "gateway")
        self.pool_start = _parse_address(self.pool_start, "poolStart")
        self.pool_end = _parse_address(self.pool_end, "poolEnd")

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self) -> None:
        """
        Check the pool invariants, raising ValidationError on the first failure.

        Order: name, vlan range, gateway presence, subnet presence, subnet
        IPv4 form, subnet size, subnet network-address form, gateway in
        subnet, poolStart in subnet, poolEnd in subnet, poolStart <= poolEnd.
        """
        vlan = self.vlan_id
        if not self.name:
            raise ValidationError("pool name can not be empty")
        if vlan is not None and (vlan <= 0 or 1005 < vlan < 1025 or vlan > 4094):
            raise ValidationError(f"pool vlanID {vlan} is invalid")
        if self.gateway is None:
            raise ValidationError("pool gateway is invalid")
        if self.subnet is None:
            raise ValidationError("pool subnet is invalid")

        if self.subnet.version != 4:
            raise ValidationError(f"IP {self.subnet.ip} is not ipv4 standard form")

        # Can't allocate from a network with no usable addresses
        ones = self.subnet.network.prefixlen
        if ones > self.subnet.max_prefixlen - 2:
            raise ValidationError(f"pool subnet {self.subnet} too small to allocate from")

        network_ip = self.subnet.network.network_address
        if self.subnet.ip != network_ip:
            raise ValidationError(
                f"pool subnet has host bits set because a subnet mask of length "
                f"{ones} the network address is {network_ip}"
            )

        if not self._in_subnet(self.gateway):
            raise ValidationError(f"gateway {self.gateway} not in subnet {self.subnet}")

        if self.pool_start is not None:
            if self.pool_start.version != 4:
                raise ValidationError(f"IP {self.pool_start} is not ipv4 standard form")
            if not self._in_subnet(self.pool_start):
                raise ValidationError(
                    f"poolStart {self.pool_start} not in subnet {self.subnet}"
                )

        if self.pool_end is not None:
            if self.pool_end.version != 4:
                raise ValidationError(f"IP {self.pool_end} is not ipv4 standard form")
            if not self._in_subnet(self.pool_end):
                raise ValidationError(f"poolEnd {self.pool_end} not in subnet {self.subnet}")

        if (
            self.pool_start is not None
            and self.pool_end is not None
            and self.pool_start > self.pool_end
        ):
            raise ValidationError(
                f"poolStart {self.pool_start} is after poolEnd {self.pool_end}"
            )

    def canonicalize(self) -> None:
        """Validate, then default poolStart/poolEnd to the usable subnet range."""
        self.validate()

        if self.pool_start is None:
            self.pool_start = next_ip(self.subnet.network.network_address)
        if self.pool_end is None:
            self.pool_end = last_ip(self.subnet.network)

    # =========================================================================
    # Queries
    # =========================================================================

    def _in_subnet(self, addr: IPAddress) -> bool:
        return addr.version == 4 and addr in self.subnet.network

    def contains(self, addr) -> bool:
        """Check whether an address lies inside the pool's range."""
        ip = to_ipv4(addr) if addr is not None else None
        if ip is None or self.subnet is None or self.subnet.version != 4:
            return False

        start, end = self.effective_range()
        return self._in_subnet(ip) and start <= ip <= end

    def effective_range(self) -> tuple[ipaddress.IPv4Address, ipaddress.IPv4Address]:
        """Subnet bounds narrowed by poolStart/poolEnd when set."""
        network = self.subnet.network
        start, end = network.network_address, network.broadcast_address
        if self.pool_start is not None and self.pool_start.version == 4:
            start = self.pool_start
        if self.pool_end is not None and self.pool_end.version == 4:
            end = self.pool_end
        return start, end

    def overlaps(self, other: Pool) -> bool:
        """Check whether two pools' effective ranges intersect."""
        if self.subnet is None or other.subnet is None:
            return False
        if self.subnet.version != 4 or other.subnet.version != 4:
            return False

        start, end = self.effective_range()
        other_start, other_end = other.effective_range()
        return start <= other_end and other_start <= end

    def size(self) -> int:
        """Number of addresses in the effective range."""
        start, end = self.effective_range()
        return int(end) - int(start) + 1

    def iter_from(self, addr=None) -> Iterator[ipaddress.IPv4Address]:
        """
        Walk every address of the effective range once, starting at addr.

        Wraps around to the range start after the range end. Starts at the
        range start when addr is None or outside the pool.
        """
        start, end = self.effective_range()
        first = to_ipv4(addr) if addr is not None else None
        if first is None or not self.contains(first):
            first = start

        offset = int(first) - int(start)
        total = self.size()
        for i in range(total):
            yield ipaddress.IPv4Address(int(start) + (offset + i) % total)

    # =========================================================================
    # Wire Conversion
    # =========================================================================

    @classmethod
    def from_resource(cls, spec: PoolSpec) -> Pool:
        """Build a pool from its stored form; empty strings and vlan 0 mean unset."""
        return cls(
            name=spec.name,
            subnet=spec.subnet,
            gateway=spec.gateway,
            pool_start=spec.pool_start,
            pool_end=spec.pool_end,
            vlan_id=spec.vlan_id or None,
        )

    def to_resource(self) -> PoolSpec:
        """Convert to the stored form."""
        return PoolSpec(
            name=self.name,
            subnet=str(self.subnet.network) if self.subnet is not None else "",
            gateway=str(self.gateway) if self.gateway is not None else "",
            pool_start=str(self.pool_start) if self.pool_start is not None else "",
            pool_end=str(self.pool_end) if self.pool_end is not None else "",
            vlan_id=self.vlan_id or 0,
        )

    def __str__(self) -> str:
        start, end = self.pool_start, self.pool_end
        return f"{self.name}({self.subnet} {start or '?'}-{end or '?'})"
