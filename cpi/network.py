"""Translation of a director network spec into EC2 launch parameters."""

from __future__ import annotations

from typing import Any

from cpi.base.exceptions import ConfigurationInconsistencyError
from cpi.base.logger import cpi_logger
from cpi.base.models import LaunchPlan, NetworkDefinition, SubnetRef
from cpi.base.provider import ProviderBlueprint


def parse_networks(networks: dict[str, dict[str, Any]]) -> list[NetworkDefinition]:
    return [NetworkDefinition.parse(name, raw) for name, raw in networks.items()]


class NetworkResolver:
    """Resolve zone, security groups, subnet, private IP and elastic IP.

    Attributes:
        provider: Provider client used for subnet lookups.
        default_security_groups: Groups requested when no network declares any.
    """

    def __init__(
        self,
        provider: ProviderBlueprint,
        default_security_groups: list[str] | None = None,
    ) -> None:
        self.provider = provider
        self.default_security_groups = list(default_security_groups or [])

    def resolve(
        self,
        pool_zone_hint: str | None,
        disk_zone: str | None,
        networks: dict[str, dict[str, Any]],
        *,
        zone_pinned: bool = False,
        request_id: str | None = None,
    ) -> LaunchPlan:
        """Build the :class:`LaunchPlan` for *networks*.

        Args:
            pool_zone_hint: Zone preferred by the resource pool.
            disk_zone: Zone chosen by :func:`cpi.zone.select_availability_zone`;
                takes precedence over the hint.
            networks: Mapping of network name to raw network definition.
            zone_pinned: True when persistent disks require *disk_zone*.  A
                subnet in another zone is then an error instead of an
                override.
            request_id: Correlation id for log records.

        Raises:
            SubnetNotFoundError: If a manual network names an unknown subnet.
            ConfigurationInconsistencyError: If a subnet contradicts a pinned zone.
        """
        zone = disk_zone or pool_zone_hint
        definitions = parse_networks(networks)

        manual = [n for n in definitions if n.type == "manual" and n.cloud_properties.subnet]
        vips = [n for n in definitions if n.type == "vip"]
        if len(manual) > 1:
            cpi_logger.warning(
                f"{len(manual)} manual networks with subnets, using '{manual[-1].name}'",
                operation="resolve_networks",
                request_id=request_id,
            )
        if len(vips) > 1:
            cpi_logger.warning(
                f"{len(vips)} vip networks, using '{vips[-1].name}'",
                operation="resolve_networks",
                request_id=request_id,
            )

        subnet: SubnetRef | None = None
        private_ip: str | None = None
        if manual:
            network = manual[-1]
            subnet = self.provider.lookup_subnet(network.cloud_properties.subnet)  # type: ignore[arg-type]
            private_ip = network.ip
            if subnet.availability_zone != zone:
                if zone_pinned:
                    raise ConfigurationInconsistencyError(
                        f"subnet '{subnet.subnet_id}' is in {subnet.availability_zone} "
                        f"but persistent disks require {zone}"
                    )
                zone = subnet.availability_zone

        dns: list[str] | None = None
        for network in definitions:
            if network.type != "vip" and network.dns:
                dns = list(network.dns)

        if zone is None:
            raise ConfigurationInconsistencyError("no availability zone could be resolved")

        return LaunchPlan(
            zone=zone,
            security_groups=self.security_groups(definitions),
            subnet=subnet,
            private_ip=private_ip,
            pending_elastic_ip=vips[-1].ip if vips else None,
            dns=dns,
        )

    def security_groups(self, definitions: list[NetworkDefinition]) -> list[str]:
        """Union of the groups declared by non-vip networks, in first-seen order.

        Falls back to the configured defaults, which may be empty; the
        provider then attaches its account default group.
        """
        groups: list[str] = []
        for network in definitions:
            if network.type == "vip":
                continue
            for group in network.cloud_properties.security_groups:
                if group not in groups:
                    groups.append(group)
        return groups or list(self.default_security_groups)
