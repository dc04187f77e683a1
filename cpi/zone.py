"""Availability zone selection for new VMs."""

from __future__ import annotations

from typing import Iterable

from cpi.base.exceptions import ConfigurationInconsistencyError
from cpi.base.models import VolumeRef
from cpi.base.provider import ProviderBlueprint


def ensure_same_availability_zone(
    volumes: Iterable[VolumeRef], preferred_zone: str | None
) -> str:
    """Return the single zone shared by *volumes* and *preferred_zone*.

    Raises:
        ConfigurationInconsistencyError: If the volumes span several zones,
            or agree on a zone other than *preferred_zone*.
    """
    zones = {volume.availability_zone for volume in volumes}
    if preferred_zone is not None:
        zones.add(preferred_zone)
    if not zones:
        raise ConfigurationInconsistencyError("no volumes or preferred zone to select from")
    if len(zones) != 1:
        raise ConfigurationInconsistencyError(
            f"can't use multiple availability zones: {', '.join(sorted(zones))}"
        )
    return zones.pop()


def select_availability_zone(
    provider: ProviderBlueprint,
    disk_ids: list[str] | None,
    preferred_zone: str | None,
    default_zone: str,
) -> str:
    """Pick the zone a new VM must launch into.

    Disks pin the zone; a preferred zone must agree with them.  Without
    disks the preference wins, and without either the default is used.
    Volume lookups are not retried here; ``VolumeNotFoundError`` propagates.
    """
    if disk_ids:
        volumes = [provider.lookup_volume(disk_id) for disk_id in disk_ids]
        return ensure_same_availability_zone(volumes, preferred_zone)
    return preferred_zone or default_zone
