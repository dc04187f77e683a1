"""Agent settings registry blueprint."""

from abc import ABC, abstractmethod
from typing import Any


class RegistryBlueprint(ABC):
    """Abstract interface for the store the booting agent reads its settings from.

    Settings are keyed by instance id with last-write-wins semantics.
    """

    @abstractmethod
    def update_settings(self, instance_id: str, settings: dict[str, Any]) -> None:
        """Persist the agent settings document for *instance_id*.

        Raises:
            RegistryError: If the registry rejects or cannot be reached.
        """

    @abstractmethod
    def read_settings(self, instance_id: str) -> dict[str, Any]:
        """Return the settings document stored for *instance_id*.

        Raises:
            RegistryError: If the settings are missing or unreadable.
        """
