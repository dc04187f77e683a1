"""HTTP client for the agent settings registry."""

from __future__ import annotations

import json
from typing import Any

import requests

from cpi.base.config import RegistryConfig
from cpi.base.exceptions import RegistryError
from cpi.base.registry import RegistryBlueprint


class Registry(RegistryBlueprint):
    """Registry reached over HTTP at ``{endpoint}/instances/{id}/settings``.

    The settings document travels as a JSON string inside a JSON envelope,
    ``{"settings": "<json>"}``, which is what the agent expects to read back.

    Attributes:
        endpoint: Registry base URL without trailing slash.
        session: ``requests`` session carrying auth and JSON headers.
    """

    def __init__(self, config: RegistryConfig) -> None:
        self.endpoint = config.endpoint
        self.timeout = config.timeout
        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if config.user is not None and config.password is not None:
            self.session.auth = (config.user, config.password)

    def _url(self, instance_id: str) -> str:
        return f"{self.endpoint}/instances/{instance_id}/settings"

    def update_settings(self, instance_id: str, settings: dict[str, Any]) -> None:
        """PUT the settings document for *instance_id*.

        Raises:
            RegistryError: On connection failure or a non-2xx response.
        """
        body = {"settings": json.dumps(settings, sort_keys=True)}
        try:
            resp = self.session.put(self._url(instance_id), json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise RegistryError(f"Failed to update settings for '{instance_id}': {e}") from e
        if not resp.ok:
            raise RegistryError(
                f"Failed to update settings for '{instance_id}': "
                f"{resp.status_code} {resp.text}"
            )

    def read_settings(self, instance_id: str) -> dict[str, Any]:
        """GET and decode the settings document for *instance_id*.

        Raises:
            RegistryError: On connection failure, a non-2xx response or a
                malformed body.
        """
        try:
            resp = self.session.get(self._url(instance_id), timeout=self.timeout)
        except requests.RequestException as e:
            raise RegistryError(f"Failed to read settings for '{instance_id}': {e}") from e
        if not resp.ok:
            raise RegistryError(
                f"Failed to read settings for '{instance_id}': "
                f"{resp.status_code} {resp.text}"
            )
        try:
            return json.loads(resp.json()["settings"])  # type: ignore[no-any-return]
        except (ValueError, KeyError, TypeError) as e:
            raise RegistryError(f"Malformed settings for '{instance_id}'") from e
