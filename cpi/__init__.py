"""AWS CPI: VM-provisioning core of a Cloud Provider Interface.

Entry point for the library. Import :func:`cloud_factory` to build a
configured CPI with a single call::

    from cpi import cloud_factory

    cloud = cloud_factory("aws", {"registry": {"endpoint": "http://registry:3333"}})
    instance_id = cloud.create_vm("agent-1", "ami-123", pool, networks)
"""

from .base import ProviderBlueprint, RegistryBlueprint
from .cloud import Cloud
from .factory import cloud_factory

__all__ = [
    "ProviderBlueprint",
    "RegistryBlueprint",
    "Cloud",
    "cloud_factory",
]
