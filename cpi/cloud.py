"""VM launch orchestration.

:class:`Cloud` is the entry point of the CPI core.  ``create_vm`` resolves
the availability zone and the network plan, launches one instance, waits
for it to run, associates any elastic IP and finally publishes the agent
settings to the registry under the new instance id::

    cloud = cloud_factory("aws", config)
    instance_id = cloud.create_vm("agent-1", "ami-123", pool, networks)
"""

from __future__ import annotations

import copy
import json
import logging
import time
import uuid
from enum import Enum
from typing import Any

from pydantic import ValidationError

from cpi.base.async_support import AsyncMixin
from cpi.base.config import CPIConfig
from cpi.base.exceptions import CPIError, ReadinessTimeoutError, RegistryError
from cpi.base.logger import cpi_logger, new_request_id
from cpi.base.models import (
    INSTANCE_RUNNING,
    LaunchPlan,
    LaunchRequest,
    ResourcePoolSpec,
    VolumeRef,
)
from cpi.base.provider import ProviderBlueprint
from cpi.base.registry import RegistryBlueprint
from cpi.network import NetworkResolver
from cpi.zone import ensure_same_availability_zone, select_availability_zone

EPHEMERAL_DEVICE = "/dev/sdb"


class CreateVMState(str, Enum):
    START = "start"
    ZONE_RESOLVED = "zone_resolved"
    PLAN_RESOLVED = "plan_resolved"
    LAUNCH_REQUESTED = "launch_requested"
    RUNNING = "running"
    IP_ASSOCIATED = "ip_associated"
    REGISTERED = "registered"


def build_user_data(registry_endpoint: str, dns: list[str] | None = None) -> str:
    """Serialize the first document the booting agent reads.

    Keys are sorted so the payload is byte-stable for the same input.
    """
    data: dict[str, Any] = {"registry": {"endpoint": registry_endpoint}}
    if dns:
        data["dns"] = {"nameserver": list(dns)}
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def persistent_disk_devices(disk_ids: list[str] | None) -> dict[str, str | None]:
    """Persistent disk entries for a VM that has none attached yet.

    The disks are only used to pick the zone here; each gets a device
    once it is attached, so every entry starts out as ``None``.
    """
    return dict.fromkeys(disk_ids or [])


def build_agent_settings(
    vm_name: str,
    agent_id: str,
    networks: dict[str, dict[str, Any]],
    root_device_name: str,
    disk_ids: list[str] | None,
    env: dict[str, Any] | None,
    extras: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Assemble the agent settings document.

    *extras* are merged at the top level; the core keys always win.
    """
    settings: dict[str, Any] = copy.deepcopy(extras or {})
    settings.update(
        {
            "vm": {"name": vm_name},
            "agent_id": agent_id,
            "networks": copy.deepcopy(networks),
            "disks": {
                "system": root_device_name,
                "ephemeral": EPHEMERAL_DEVICE,
                "persistent": persistent_disk_devices(disk_ids),
            },
            "env": copy.deepcopy(env or {}),
        }
    )
    return settings


class Cloud(AsyncMixin):
    """AWS CPI: create-VM path and its zone helpers.

    Attributes:
        config: Immutable CPI configuration.
        provider: Provider client collaborator.
        registry: Agent settings registry collaborator.
    """

    provider_name = "aws"

    def __init__(
        self,
        config: CPIConfig,
        provider: ProviderBlueprint,
        registry: RegistryBlueprint,
    ) -> None:
        self.config = config
        self.provider = provider
        self.registry = registry
        self.network_resolver = NetworkResolver(provider, config.default_security_groups)

    @staticmethod
    def generate_unique_name() -> str:
        return str(uuid.uuid4())

    def select_availability_zone(
        self, disk_ids: list[str] | None, preferred_zone: str | None
    ) -> str:
        """Zone for a VM using *disk_ids*, honouring *preferred_zone*.

        Raises:
            ConfigurationInconsistencyError: If the disks or preference disagree.
            VolumeNotFoundError: If a disk does not exist.
        """
        return select_availability_zone(
            self.provider, disk_ids, preferred_zone, self.config.default_availability_zone
        )

    def ensure_same_availability_zone(
        self, volumes: list[VolumeRef], preferred_zone: str | None
    ) -> str:
        return ensure_same_availability_zone(volumes, preferred_zone)

    def create_vm(
        self,
        agent_id: str,
        image_id: str,
        resource_pool: dict[str, Any] | ResourcePoolSpec,
        networks: dict[str, dict[str, Any]],
        disk_ids: list[str] | None = None,
        env: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> str:
        """Create a VM for *agent_id* and register its agent settings.

        Args:
            agent_id: Id of the agent that will manage the VM.
            image_id: Machine image (AMI) to boot.
            resource_pool: ``instance_type``, ``key_name`` and an optional
                ``availability_zone`` preference.
            networks: Mapping of network name to network definition.
            disk_ids: Existing persistent disks the VM must be co-located with.
            env: Opaque environment handed to the agent.
            timeout: Overall budget for the call in seconds.  The wait for
                the instance is capped by what is left of it, and no later
                step starts once it has run out.

        Returns:
            The provider's instance id.

        Raises:
            CPIError: On a malformed resource pool or network spec.
            ConfigurationInconsistencyError: On conflicting zones.
            NotFoundError: On unknown disk, subnet or image ids.
            ReadinessTimeoutError: If the instance never reached running, or
                *timeout* ran out first.  Carries the instance id once one
                was launched.
            RegistryError: If the settings could not be published; the
                instance is left running.
        """
        ctx: dict[str, Any] = {
            "provider": self.provider_name,
            "operation": "create_vm",
            "agent_id": agent_id,
            "request_id": new_request_id(),
        }
        deadline = None if timeout is None else time.monotonic() + timeout
        state = CreateVMState.START
        instance_id: str | None = None
        try:
            pool = _resource_pool(resource_pool)
            zone = self.select_availability_zone(disk_ids, pool.availability_zone)
            state = CreateVMState.ZONE_RESOLVED
            cpi_logger.debug(f"Selected availability zone {zone}", **ctx)

            plan = self.network_resolver.resolve(
                pool.availability_zone,
                zone,
                networks,
                zone_pinned=bool(disk_ids),
                request_id=ctx["request_id"],
            )
            state = CreateVMState.PLAN_RESOLVED

            image = self.provider.describe_image(image_id)
            vm_name = f"vm-{self.generate_unique_name()}"
            request = self._launch_request(vm_name, image_id, pool, plan)
            settings = build_agent_settings(
                vm_name,
                agent_id,
                networks,
                image.root_device_name,
                disk_ids,
                env,
                self.config.agent,
            )
            _time_left(deadline, instance_id, "launching the instance")
            cpi_logger.info(
                f"Creating {vm_name} from {image_id} in {plan.zone}", **ctx
            )
            instance = self.provider.create_instance(request)
            instance_id = instance.id
            ctx["instance_id"] = instance_id
            state = CreateVMState.LAUNCH_REQUESTED

            wait_timeout = self.config.wait_timeout
            left = _time_left(deadline, instance_id, "waiting for the instance")
            if left is not None:
                wait_timeout = min(wait_timeout, left)
            self.provider.wait_until(instance_id, INSTANCE_RUNNING, wait_timeout)
            state = CreateVMState.RUNNING

            if plan.pending_elastic_ip:
                _time_left(deadline, instance_id, "associating the elastic IP")
                cpi_logger.info(f"Associating elastic IP {plan.pending_elastic_ip}", **ctx)
                self.provider.associate_elastic_ip(instance_id, plan.pending_elastic_ip)
                state = CreateVMState.IP_ASSOCIATED

            self._check_security_groups(instance_id, request.security_groups, ctx)
            _time_left(deadline, instance_id, "registering agent settings")
            self.registry.update_settings(instance_id, settings)
            state = CreateVMState.REGISTERED
        except ReadinessTimeoutError as exc:
            cpi_logger.error(
                f"create_vm timed out after {state.value}, instance {instance_id} may still be running: {exc}",
                **ctx,
            )
            raise
        except RegistryError:
            cpi_logger.error(
                f"Instance {instance_id} is running but its settings were not registered",
                **ctx,
            )
            raise
        except CPIError as exc:
            cpi_logger.error(f"create_vm failed after {state.value}: {exc}", **ctx)
            raise

        cpi_logger.info(f"Created {vm_name}", **ctx)
        return instance_id

    def _launch_request(
        self, vm_name: str, image_id: str, pool: ResourcePoolSpec, plan: LaunchPlan
    ) -> LaunchRequest:
        return LaunchRequest(
            name=vm_name,
            image_id=image_id,
            instance_type=pool.instance_type,
            key_name=pool.key_name or self.config.default_key_name,
            security_groups=plan.security_groups,
            user_data=build_user_data(self.config.registry.endpoint, plan.dns),
            availability_zone=plan.zone,
            subnet=plan.subnet,
            private_ip=plan.private_ip,
        )

    def _check_security_groups(
        self, instance_id: str, requested: list[str], ctx: dict[str, Any]
    ) -> None:
        """Log the groups the provider actually attached to the instance.

        Logged at warning level when they differ from *requested*.
        """
        observed = self.provider.describe_instance(instance_id).security_groups
        level = logging.WARNING if requested and set(observed) != set(requested) else logging.INFO
        cpi_logger.log_operation(
            level,
            f"Instance security groups: {', '.join(observed) or 'none'}",
            **ctx,
        )


def _resource_pool(resource_pool: dict[str, Any] | ResourcePoolSpec) -> ResourcePoolSpec:
    if isinstance(resource_pool, ResourcePoolSpec):
        return resource_pool
    try:
        return ResourcePoolSpec.model_validate(resource_pool)
    except ValidationError as e:
        raise CPIError(f"Invalid resource pool: {e}") from e


def _time_left(deadline: float | None, instance_id: str | None, step: str) -> float | None:
    """Seconds left before *deadline*, or ``None`` when the call has no deadline.

    Raises:
        ReadinessTimeoutError: If the deadline has already passed.
    """
    if deadline is None:
        return None
    left = deadline - time.monotonic()
    if left <= 0:
        raise ReadinessTimeoutError(
            f"create_vm timeout ran out before {step}", instance_id=instance_id
        )
    return left
