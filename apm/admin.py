"""Client for the admin API of a running node.

The node loads VM binaries from its plugin directory on startup. The admin
API lets apm ask a running node to reload them and to track a new subnet
without a restart. A node that is not running is reported as
`NotifierUnavailable` so callers can decide to only warn about it.
"""

from abc import ABC, abstractmethod
import itertools
import logging
from typing import Any

import httpx

from .exceptions import AdminError, NotifierUnavailable

__all__ = [
    "Notifier",
    "AdminClient",
]

_LOGGER = logging.getLogger(__name__)

ADMIN_PATH = "/ext/admin"
LOAD_VMS_METHOD = "admin.loadVMs"
WHITELIST_SUBNET_METHOD = "admin.whitelistSubnet"
_TIMEOUT = 10.0


class Notifier(ABC):
    """Notifies a running node about installed plugins."""

    @abstractmethod
    def reload_plugins(self) -> None:
        """Ask the node to load newly installed VMs."""

    @abstractmethod
    def register_subnet(self, subnet_id: str) -> None:
        """Ask the node to track the subnet."""


class AdminClient(Notifier):
    """JSON-RPC client for the node admin API."""

    def __init__(self, endpoint: str, client: httpx.Client | None = None) -> None:
        """
        Initialize the client.

        Args:
            endpoint: host:port (or a full URL) of the node API
            client: HTTP client used for requests
        """
        if "://" not in endpoint:
            endpoint = f"http://{endpoint}"
        self._url = endpoint.rstrip("/") + ADMIN_PATH
        self._client = client or httpx.Client(timeout=_TIMEOUT)
        self._ids = itertools.count(1)

    @property
    def url(self) -> str:
        return self._url

    def close(self) -> None:
        self._client.close()

    def reload_plugins(self) -> None:
        result = self._call(LOAD_VMS_METHOD, {})
        _LOGGER.debug("Node reloaded VMs: %s", result)

    def register_subnet(self, subnet_id: str) -> None:
        self._call(WHITELIST_SUBNET_METHOD, {"subnetID": subnet_id})

    def _call(self, method: str, params: dict[str, Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        _LOGGER.debug("Calling %s on %s", method, self._url)
        try:
            response = self._client.post(self._url, json=payload)
            response.raise_for_status()
        except httpx.ConnectError as err:
            raise NotifierUnavailable(
                f"Node at {self._url} is not reachable: {err}"
            ) from err
        except httpx.HTTPError as err:
            raise AdminError(f"Admin call {method} failed: {err}") from err

        try:
            body = response.json()
        except ValueError as err:
            raise AdminError(f"Admin call {method} returned invalid json: {err}") from err
        if not isinstance(body, dict):
            raise AdminError(f"Admin call {method} returned unexpected body: {body}")
        if error := body.get("error"):
            message = error.get("message") if isinstance(error, dict) else error
            raise AdminError(f"Admin call {method} failed: {message}")
        return body.get("result")
