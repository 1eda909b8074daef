"""Tests for the network model and wire translation."""

import ipaddress

import pytest

from riveripam.errors import (
    IPNotInPoolError,
    NotFoundError,
    PoolNotInNetworkError,
    ValidationError,
)
from riveripam.models.resources import (
    LastReservedIPResource,
    LastReservedIPSpec,
    NetworkResource,
    NetworkSpec,
    ObjectMeta,
    PoolSpec,
    UsingIPResource,
    UsingIPSpec,
)
from riveripam.types import (
    LastReservedIP,
    Network,
    Pool,
    last_reserved_ip_from_resource,
    network_from_resource,
    using_ip_from_resource,
)


@pytest.fixture
def network() -> Network:
    p1 = Pool(name="p1", subnet="192.168.0.0/24", gateway="192.168.0.254")
    p2 = Pool(name="p2", subnet="192.168.1.0/24", gateway="192.168.1.254")
    p1.canonicalize()
    p2.canonicalize()
    return Network(name="n1", pools=[p1, p2])


class TestNetwork:
    def test_lookup_pool_index(self, network):
        assert network.lookup_pool_index("p1") == 0
        assert network.lookup_pool_index("p2") == 1

    def test_lookup_missing_pool(self, network):
        with pytest.raises(NotFoundError, match="does not have pool p3"):
            network.lookup_pool_index("p3")

    def test_get_pool(self, network):
        assert network.get_pool("p2").gateway == ipaddress.IPv4Address("192.168.1.254")

    def test_to_spec_keeps_pool_order(self, network):
        spec = network.to_spec()
        assert [p.name for p in spec.pools] == ["p1", "p2"]


class TestLastReservedIPIndex:
    def test_index(self, network):
        lri = LastReservedIP(ip=ipaddress.IPv4Address("192.168.1.7"), pool="p2")
        assert lri.index(network) == 1

    def test_pool_not_in_network(self, network):
        lri = LastReservedIP(ip=ipaddress.IPv4Address("192.168.0.7"), pool="gone")
        with pytest.raises(PoolNotInNetworkError):
            lri.index(network)

    def test_ip_not_in_pool(self, network):
        # Address belongs to p1, marker claims p2
        lri = LastReservedIP(ip=ipaddress.IPv4Address("192.168.0.7"), pool="p2")
        with pytest.raises(IPNotInPoolError):
            lri.index(network)

    def test_errors_share_categories(self):
        assert issubclass(PoolNotInNetworkError, NotFoundError)
        assert issubclass(IPNotInPoolError, ValidationError)


class TestWireTranslation:
    def test_network_from_resource(self):
        resource = NetworkResource(
            metadata=ObjectMeta(name="n1", resource_version="3"),
            spec=NetworkSpec(
                pools=[
                    PoolSpec(
                        name="p1",
                        subnet="10.0.0.0/24",
                        gateway="10.0.0.1",
                        pool_start="10.0.0.10",
                        pool_end="10.0.0.20",
                    )
                ]
            ),
        )

        network = network_from_resource(resource)

        assert network.name == "n1"
        assert network.pools[0].pool_start == ipaddress.IPv4Address("10.0.0.10")

    def test_network_with_invalid_pool(self):
        resource = NetworkResource(
            metadata=ObjectMeta(name="n1"),
            spec=NetworkSpec(pools=[PoolSpec(name="p1", subnet="10.0.0.0/24")]),
        )
        with pytest.raises(ValidationError):
            network_from_resource(resource)

    def test_last_reserved_ip_from_resource(self):
        resource = LastReservedIPResource(
            metadata=ObjectMeta(name="n1"),
            spec=LastReservedIPSpec(ip="10.0.0.5", pool_name="p1"),
        )
        lri = last_reserved_ip_from_resource(resource)
        assert lri == LastReservedIP(ip=ipaddress.IPv4Address("10.0.0.5"), pool="p1")

    def test_last_reserved_ip_with_bad_address(self):
        resource = LastReservedIPResource(
            metadata=ObjectMeta(name="n1"),
            spec=LastReservedIPSpec(ip="10.0.0", pool_name="p1"),
        )
        with pytest.raises(ValidationError):
            last_reserved_ip_from_resource(resource)

    def test_using_ip_from_resource(self):
        resource = UsingIPResource(
            metadata=ObjectMeta(name="10-0-0-5"),
            spec=UsingIPSpec(pod_name="web", pod_namespace="prod", network="n1", pool="p1"),
        )
        using = using_ip_from_resource(resource)

        assert using.ip == "10.0.0.5"
        assert using.owner_name == "web"
        assert using.owner_namespace == "prod"
