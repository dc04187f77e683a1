"""Tests for network spec resolution."""

import pytest

from cpi.base.exceptions import CPIError, ConfigurationInconsistencyError, SubnetNotFoundError
from cpi.base.models import NetworkDefinition, SubnetRef
from cpi.network import NetworkResolver


def _manual(ip: str, subnet: str, groups=None) -> dict:
    props = {"subnet": subnet}
    if groups is not None:
        props["security_groups"] = groups
    return {"type": "manual", "ip": ip, "cloud_properties": props}


@pytest.fixture
def resolver(provider):
    return NetworkResolver(provider, ["default"])


class TestNetworkDefinition:
    def test_missing_type_is_dynamic(self):
        assert NetworkDefinition.parse("a", {}).type == "dynamic"

    def test_unknown_type(self):
        with pytest.raises(CPIError, match="unknown type"):
            NetworkDefinition.parse("a", {"type": "bridged"})

    def test_manual_requires_ip(self):
        with pytest.raises(CPIError, match="requires an ip"):
            NetworkDefinition.parse("a", {"type": "manual", "cloud_properties": {"subnet": "s"}})

    def test_security_groups_must_be_a_list(self):
        with pytest.raises(CPIError, match="Network 'a' is invalid"):
            NetworkDefinition.parse("a", {"cloud_properties": {"security_groups": "web"}})

    def test_cloud_properties_must_be_a_mapping(self):
        with pytest.raises(CPIError, match="must be a mapping"):
            NetworkDefinition.parse("a", {"cloud_properties": ["web"]})

    def test_null_cloud_properties(self):
        net = NetworkDefinition.parse("a", {"type": "dynamic", "cloud_properties": None})
        assert net.cloud_properties.security_groups == []


class TestResolveZone:
    def test_disk_zone_is_baseline(self, resolver):
        plan = resolver.resolve("pool-zone", "disk-zone", {"a": {"type": "dynamic"}})
        assert plan.zone == "disk-zone"

    def test_pool_hint_when_no_disk_zone(self, resolver):
        plan = resolver.resolve("pool-zone", None, {"a": {"type": "dynamic"}})
        assert plan.zone == "pool-zone"

    def test_subnet_zone_overrides_preference(self, resolver, provider):
        plan = resolver.resolve("foobar-1a", "foobar-1a", {"n": _manual("1.2.3.4", "subnet-11a35d7c")})
        assert plan.zone == "az-1b"
        assert plan.subnet == SubnetRef(subnet_id="subnet-11a35d7c", availability_zone="az-1b")
        assert plan.private_ip == "1.2.3.4"

    def test_subnet_zone_conflicts_with_pinned_zone(self, resolver):
        with pytest.raises(ConfigurationInconsistencyError):
            resolver.resolve(None, "foobar-1a", {"n": _manual("1.2.3.4", "s")}, zone_pinned=True)

    def test_subnet_in_pinned_zone(self, resolver):
        plan = resolver.resolve(None, "az-1b", {"n": _manual("1.2.3.4", "s")}, zone_pinned=True)
        assert plan.zone == "az-1b"

    def test_unknown_subnet(self, resolver, provider):
        provider.lookup_subnet.side_effect = SubnetNotFoundError("subnet-x")
        with pytest.raises(SubnetNotFoundError):
            resolver.resolve(None, "z", {"n": _manual("1.2.3.4", "subnet-x")})

    def test_last_manual_network_wins(self, resolver, provider):
        provider.lookup_subnet.side_effect = lambda sid: SubnetRef(
            subnet_id=sid, availability_zone={"s1": "z1", "s2": "z2"}[sid]
        )
        plan = resolver.resolve(
            None, "z0", {"first": _manual("10.0.0.1", "s1"), "second": _manual("10.0.1.1", "s2")}
        )
        assert plan.zone == "z2"
        assert plan.private_ip == "10.0.1.1"
        assert plan.subnet.subnet_id == "s2"

    def test_manual_network_without_subnet_is_not_placed(self, resolver, provider):
        plan = resolver.resolve(None, "z", {"n": {"type": "manual", "ip": "1.2.3.4"}})
        provider.lookup_subnet.assert_not_called()
        assert plan.subnet is None
        assert plan.private_ip is None


class TestResolveSecurityGroups:
    def test_defaults_when_none_declared(self, resolver):
        plan = resolver.resolve(None, "z", {"a": {"type": "dynamic"}})
        assert plan.security_groups == ["default"]

    def test_no_defaults_configured(self, provider):
        plan = NetworkResolver(provider).resolve(None, "z", {"a": {"type": "dynamic"}})
        assert plan.security_groups == []

    def test_union_across_networks(self, resolver):
        networks = {
            "a": {"type": "dynamic", "cloud_properties": {"security_groups": ["bar", "foo"]}},
            "b": _manual("1.2.3.4", "s", ["foo", "baz"]),
        }
        plan = resolver.resolve(None, "az-1b", networks)
        assert sorted(plan.security_groups) == ["bar", "baz", "foo"]

    def test_vip_groups_ignored(self, resolver):
        networks = {
            "a": {"type": "dynamic"},
            "v": {"type": "vip", "ip": "10.0.0.1", "cloud_properties": {"security_groups": ["x"]}},
        }
        plan = resolver.resolve(None, "z", networks)
        assert plan.security_groups == ["default"]


class TestResolveVipAndDns:
    def test_vip_recorded_as_pending(self, resolver, combined_networks):
        plan = resolver.resolve(None, "z", combined_networks)
        assert plan.pending_elastic_ip == "10.0.0.1"
        assert plan.subnet is None

    def test_no_vip(self, resolver):
        assert resolver.resolve(None, "z", {"a": {}}).pending_elastic_ip is None

    def test_dns_carried(self, resolver):
        plan = resolver.resolve(None, "z", {"a": {"type": "dynamic", "dns": ["1.2.3.4", "5.6.7.8"]}})
        assert plan.dns == ["1.2.3.4", "5.6.7.8"]

    def test_no_dns(self, resolver):
        assert resolver.resolve(None, "z", {"a": {"type": "dynamic"}}).dns is None
