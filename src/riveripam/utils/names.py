"""
Canonical record names for addresses.

In-use records are keyed by the dotted-decimal address with every "." turned
into "-", so the store's uniqueness guarantee on names doubles as a lock on
the address itself.
"""

import re

# RFC 1123 DNS label: alphanumeric or '-', at most 63 chars, alphanumeric first
DNS_LABEL_RFC1123 = re.compile(r"^[a-zA-Z0-9][-a-zA-Z0-9]{0,62}$")


def to_resource_name(ip: str) -> str:
    """Convert an address to its record name (192.168.0.1 -> 192-168-0-1)."""
    return str(ip).replace(".", "-")


def to_ip(resource_name: str) -> str:
    """Convert a record name back to the dotted-decimal address."""
    return resource_name.replace("-", ".")


def is_resource_name(value: str) -> bool:
    """Check whether a string is a valid record name."""
    return DNS_LABEL_RFC1123.match(value) is not None
