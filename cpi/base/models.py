"""
Typed value objects exchanged between the CPI core and its collaborators.

Inputs from the director (resource pool, networks) arrive as plain dicts
and are parsed into these models for resolution; provider lookups return
narrow response types instead of raw SDK payloads.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cpi.base.exceptions import CPIError

NetworkType = Literal["dynamic", "manual", "vip"]

INSTANCE_RUNNING = "running"


class ResourcePoolSpec(BaseModel):
    """Shape of the VM requested by a resource pool.

    ``availability_zone`` is a preference only; disks or a subnet may
    override it.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    instance_type: str
    key_name: str | None = None
    availability_zone: str | None = None


class NetworkCloudProperties(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    subnet: str | None = None
    security_groups: list[str] = Field(default_factory=list)


class NetworkDefinition(BaseModel):
    """Typed view of one entry of a network spec."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str
    type: NetworkType = "dynamic"
    ip: str | None = None
    dns: list[str] | None = None
    cloud_properties: NetworkCloudProperties = Field(default_factory=NetworkCloudProperties)

    @classmethod
    def parse(cls, name: str, raw: dict[str, Any]) -> NetworkDefinition:
        """Build a definition from the director's raw network dict.

        A missing ``type`` means dynamic.

        Raises:
            CPIError: On an unknown network type, a manual/vip network
                without an ``ip``, or fields of the wrong shape.
        """
        if not isinstance(raw, dict) or not isinstance(raw.get("cloud_properties") or {}, dict):
            raise CPIError(f"Network '{name}' must be a mapping with mapping cloud_properties")
        net_type = raw.get("type") or "dynamic"
        if net_type not in ("dynamic", "manual", "vip"):
            raise CPIError(f"Network '{name}' has unknown type '{net_type}'")
        if net_type in ("manual", "vip") and not raw.get("ip"):
            raise CPIError(f"Network '{name}' of type '{net_type}' requires an ip")
        props = {k: v for k, v in (raw.get("cloud_properties") or {}).items() if v is not None}
        try:
            return cls(
                name=name,
                type=net_type,
                ip=raw.get("ip"),
                dns=raw.get("dns"),
                cloud_properties=props,
            )
        except ValidationError as e:
            raise CPIError(f"Network '{name}' is invalid: {e}") from e


class ImageInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    image_id: str
    root_device_name: str


class SubnetRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    subnet_id: str
    availability_zone: str
    vpc_id: str | None = None


class VolumeRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    volume_id: str
    availability_zone: str


class Instance(BaseModel):
    """Snapshot of a provider instance at the time it was described."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: str = "pending"
    security_groups: list[str] = Field(default_factory=list)
    elastic_ip: str | None = None


class LaunchPlan(BaseModel):
    """Launch parameters derived from the network spec.

    Built once per create-VM call and never persisted.
    """

    model_config = ConfigDict(frozen=True)

    zone: str
    security_groups: list[str] = Field(default_factory=list)
    subnet: SubnetRef | None = None
    private_ip: str | None = None
    pending_elastic_ip: str | None = None
    dns: list[str] | None = None


class LaunchRequest(BaseModel):
    """A single-instance create request as sent to the provider client."""

    model_config = ConfigDict(frozen=True)

    name: str
    image_id: str
    instance_type: str
    key_name: str | None = None
    security_groups: list[str] = Field(default_factory=list)
    user_data: str
    availability_zone: str
    subnet: SubnetRef | None = None
    private_ip: str | None = None
    count: Literal[1] = 1
