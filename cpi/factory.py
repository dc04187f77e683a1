"""CPI factory.

Provides :func:`cloud_factory`, the single entry-point for building a
:class:`~cpi.cloud.Cloud` wired to a provider client and the HTTP
registry from a raw config dict.
"""

from typing import Any

from cpi.aws.provider import Provider as AWSProvider
from cpi.base import existing_cloud_providers
from cpi.base.config import validate_config
from cpi.cloud import Cloud
from cpi.registry import Registry


# cloud_provider -> provider client class
_PROVIDER_REGISTRY: dict[str, type] = {
    "aws": AWSProvider,
}


def cloud_factory(cloud_provider: existing_cloud_providers, config: dict[str, Any]) -> Cloud:
    """
    Build a ready-to-use CPI for a cloud provider.
    Args:
        cloud_provider: The cloud provider (e.g. 'aws').
        config: Configuration dictionary validated into a CPIConfig.
    Returns:
        A :class:`Cloud` with its provider client and registry attached.
    Raises:
        ValueError: If the cloud provider is not supported.
        pydantic.ValidationError: If the config is invalid.
    """
    if cloud_provider not in _PROVIDER_REGISTRY:
        raise ValueError(f"Unsupported cloud provider: {cloud_provider}")

    cpi_config = validate_config(cloud_provider, config)
    provider = _PROVIDER_REGISTRY[cloud_provider](cpi_config.aws)
    return Cloud(cpi_config, provider, Registry(cpi_config.registry))
