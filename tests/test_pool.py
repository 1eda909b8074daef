"""Tests for the pool model."""

import ipaddress

import pytest

from riveripam.errors import ValidationError
from riveripam.models.resources import PoolSpec
from riveripam.types.pool import Pool, last_ip, next_ip

IP = ipaddress.IPv4Address


class TestValidate:
    @pytest.mark.parametrize(
        "pool, reason",
        [
            (
                Pool(name="", subnet="192.168.0.0/24", gateway="192.168.0.254"),
                "name",
            ),
            (
                Pool(name="t", subnet="192.168.0.0/24", gateway="192.168.0.254", vlan_id=-100),
                "vlanID",
            ),
            (
                Pool(name="t", subnet="192.168.0.0/24", gateway="192.168.0.254", vlan_id=0),
                "vlanID",
            ),
            (
                Pool(name="t", subnet="192.168.0.0/24", gateway="192.168.0.254", vlan_id=1010),
                "vlanID",
            ),
            (
                Pool(name="t", subnet="192.168.0.0/24", gateway="192.168.0.254", vlan_id=4095),
                "vlanID",
            ),
            (Pool(name="t", subnet="192.168.0.0/24"), "gateway"),
            (Pool(name="t", gateway="192.168.0.254"), "subnet is invalid"),
            (Pool(name="t", subnet="192.168.0.0/31", gateway="192.168.0.1"), "too small"),
            (Pool(name="t", subnet="192.168.0.5/24", gateway="192.168.0.1"), "host bits"),
            (Pool(name="t", subnet="fd00::/64", gateway="fd00::1"), "ipv4"),
            (Pool(name="t", subnet="192.168.0.0/24", gateway="192.168.2.2"), "gateway"),
            (
                Pool(
                    name="t",
                    subnet="192.168.0.0/24",
                    gateway="192.168.0.254",
                    pool_start="192.168.0.10",
                    pool_end="192.168.1.100",
                ),
                "poolEnd",
            ),
            (
                Pool(
                    name="t",
                    subnet="192.168.0.0/24",
                    gateway="192.168.0.254",
                    pool_start="10.0.0.1",
                ),
                "poolStart",
            ),
            (
                Pool(
                    name="t",
                    subnet="192.168.0.0/24",
                    gateway="192.168.0.254",
                    pool_start="192.168.0.100",
                    pool_end="192.168.0.50",
                ),
                "after",
            ),
        ],
    )
    def test_rejects_invalid_pool(self, pool, reason):
        with pytest.raises(ValidationError, match=reason):
            pool.validate()

    def test_first_failure_is_reported(self):
        # Empty name and missing gateway: name is checked first
        pool = Pool(name="", subnet="192.168.0.0/24")
        with pytest.raises(ValidationError, match="name"):
            pool.validate()

    @pytest.mark.parametrize("vlan", [None, 1, 1005, 1025, 4094])
    def test_accepts_valid_vlan(self, vlan):
        Pool(name="t", subnet="10.0.0.0/24", gateway="10.0.0.1", vlan_id=vlan).validate()

    def test_unparseable_address_raises_validation_error(self):
        with pytest.raises(ValidationError):
            Pool(name="t", subnet="10.0.0.0/24", gateway="not-an-ip")
        with pytest.raises(ValidationError):
            Pool(name="t", subnet="10.0.0.0/33", gateway="10.0.0.1")


class TestCanonicalize:
    def test_fills_range_defaults(self):
        pool = Pool(name="test", subnet="192.168.0.0/24", gateway="192.168.0.100", vlan_id=10)
        pool.canonicalize()

        assert pool.pool_start == IP("192.168.0.1")
        assert pool.pool_end == IP("192.168.0.254")

    def test_keeps_explicit_range(self):
        pool = Pool(
            name="test",
            subnet="10.1.0.0/16",
            gateway="10.1.0.1",
            pool_start="10.1.2.0",
            pool_end="10.1.2.255",
        )
        pool.canonicalize()

        assert pool.pool_start == IP("10.1.2.0")
        assert pool.pool_end == IP("10.1.2.255")

    def test_validates_first(self):
        pool = Pool(name="test", subnet="192.168.0.0/24")
        with pytest.raises(ValidationError):
            pool.canonicalize()
        assert pool.pool_start is None


class TestLastIP:
    @pytest.mark.parametrize(
        "subnet, expected",
        [
            ("192.168.0.0/24", "192.168.0.254"),
            ("172.16.0.0/22", "172.16.3.254"),
            ("192.168.0.0/26", "192.168.0.62"),
            ("10.0.0.0/30", "10.0.0.2"),
        ],
    )
    def test_last_ip(self, subnet, expected):
        assert last_ip(ipaddress.IPv4Network(subnet)) == IP(expected)

    def test_next_ip(self):
        assert next_ip(IP("10.0.0.255")) == IP("10.0.1.0")


class TestContains:
    @pytest.mark.parametrize(
        "pool, ip, expected",
        [
            (Pool(subnet="192.168.0.0/24", gateway="192.168.0.254"), "192.168.0.100", True),
            (Pool(subnet="192.168.0.0/24", gateway="192.168.0.254"), "192.168.1.100", False),
            (
                Pool(subnet="192.168.0.0/24", gateway="192.168.0.254", pool_start="192.168.0.150"),
                "192.168.0.100",
                False,
            ),
            (
                Pool(subnet="192.168.0.0/24", gateway="192.168.0.254", pool_end="192.168.0.50"),
                "192.168.0.100",
                False,
            ),
            (
                Pool(
                    subnet="192.168.0.0/24",
                    gateway="192.168.0.254",
                    pool_start="192.168.0.10",
                    pool_end="192.168.0.20",
                ),
                "192.168.0.20",
                True,
            ),
            (Pool(subnet="192.168.0.0/24", gateway="192.168.0.254"), "fd00::1", False),
            (Pool(subnet="192.168.0.0/24", gateway="192.168.0.254"), "garbage", False),
            (Pool(subnet="192.168.0.0/24", gateway="192.168.0.254"), None, False),
        ],
    )
    def test_contains(self, pool, ip, expected):
        assert pool.contains(ip) is expected

    def test_accepts_address_objects(self):
        pool = Pool(subnet="10.0.0.0/24", gateway="10.0.0.1")
        assert pool.contains(IP("10.0.0.7"))


class TestOverlaps:
    def _canonical(self, **kwargs) -> Pool:
        pool = Pool(**kwargs)
        pool.canonicalize()
        return pool

    def test_same_subnet_overlaps(self):
        a = self._canonical(name="a", subnet="192.168.0.0/24", gateway="192.168.0.1")
        b = self._canonical(name="b", subnet="192.168.0.0/25", gateway="192.168.0.1")
        assert a.overlaps(b)
        assert b.overlaps(a)

    def test_disjoint_subnets(self):
        a = self._canonical(name="a", subnet="192.168.0.0/24", gateway="192.168.0.1")
        b = self._canonical(name="b", subnet="192.168.1.0/24", gateway="192.168.1.1")
        assert not a.overlaps(b)

    def test_different_subnets_with_intersecting_ranges(self):
        a = self._canonical(
            name="a",
            subnet="10.0.0.0/16",
            gateway="10.0.0.1",
            pool_start="10.0.1.0",
            pool_end="10.0.1.255",
        )
        b = self._canonical(name="b", subnet="10.0.1.0/24", gateway="10.0.1.1")
        assert a.overlaps(b)

    def test_same_subnet_disjoint_ranges(self):
        a = self._canonical(
            name="a",
            subnet="10.0.0.0/24",
            gateway="10.0.0.1",
            pool_start="10.0.0.10",
            pool_end="10.0.0.19",
        )
        b = self._canonical(
            name="b",
            subnet="10.0.0.0/24",
            gateway="10.0.0.1",
            pool_start="10.0.0.20",
            pool_end="10.0.0.29",
        )
        assert not a.overlaps(b)

    def test_pool_without_subnet_never_overlaps(self):
        a = Pool(name="a")
        b = self._canonical(name="b", subnet="10.0.0.0/24", gateway="10.0.0.1")
        assert not a.overlaps(b)


class TestIteration:
    def test_size(self):
        pool = Pool(name="p", subnet="10.0.0.0/24", gateway="10.0.0.1")
        pool.canonicalize()
        assert pool.size() == 254

    def test_iter_from_wraps_around(self):
        pool = Pool(
            name="p",
            subnet="10.0.0.0/24",
            gateway="10.0.0.1",
            pool_start="10.0.0.10",
            pool_end="10.0.0.12",
        )
        ips = [str(ip) for ip in pool.iter_from("10.0.0.11")]
        assert ips == ["10.0.0.11", "10.0.0.12", "10.0.0.10"]

    def test_iter_from_outside_pool_starts_at_range_start(self):
        pool = Pool(
            name="p",
            subnet="10.0.0.0/24",
            gateway="10.0.0.1",
            pool_start="10.0.0.10",
            pool_end="10.0.0.11",
        )
        assert [str(ip) for ip in pool.iter_from("10.0.0.200")] == ["10.0.0.10", "10.0.0.11"]


class TestWireConversion:
    def test_from_resource(self):
        spec = PoolSpec(
            name="p1",
            subnet="192.168.0.0/24",
            gateway="192.168.0.254",
            pool_start="192.168.0.1",
            pool_end="192.168.0.254",
            vlan_id=0,
        )
        pool = Pool.from_resource(spec)

        assert pool.name == "p1"
        assert pool.subnet.network == ipaddress.IPv4Network("192.168.0.0/24")
        assert pool.vlan_id is None
        assert pool.pool_end == IP("192.168.0.254")

    def test_to_resource_uses_wire_field_names(self):
        pool = Pool(name="p1", subnet="192.168.0.0/24", gateway="192.168.0.254", vlan_id=12)
        pool.canonicalize()

        wire = pool.to_resource().model_dump(by_alias=True)
        assert wire == {
            "name": "p1",
            "poolStart": "192.168.0.1",
            "poolEnd": "192.168.0.254",
            "gateway": "192.168.0.254",
            "subnet": "192.168.0.0/24",
            "vlanId": 12,
        }

    def test_from_resource_with_bad_subnet(self):
        with pytest.raises(ValidationError):
            Pool.from_resource(PoolSpec(name="p", subnet="nope", gateway="10.0.0.1"))
