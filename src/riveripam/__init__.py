"""riveripam - IPv4 address pool management shared across a cluster."""

__version__ = "0.1.0"
