"""Abstract collaborator blueprints and core utilities.

The provider client and the registry are reached only through the
blueprints defined here.  Import them to type-hint your own code or to
plug in a different provider.
"""

from .provider import ProviderBlueprint
from .registry import RegistryBlueprint
from .supported_services import existing_cloud_providers


__all__ = [
    "ProviderBlueprint",
    "RegistryBlueprint",
    "existing_cloud_providers",
]
