"""
Directory Sync Client

Async client for the HTTP gateway in front of the LDAP directory. Reports connection
health, the aggregate sync status (enterprise builds only), triggers per-user re-sync and
looks up the directory attributes of a user.

Gateway endpoints (JSON):
    GET  /ldap/status              -> [{"host", "port", "available", "error"}]
    GET  /ldap/sync-status         -> {"enabled", "lastSync", "nextSync", "schedule", "usersSynced", "errors"}
    POST /ldap/sync/{user_id}      -> {"message"}
    GET  /ldap/users/{username}    -> {"userId", "login", "attributes": {field: {"attribute", "value"}}, "server"}
"""

from typing import Any
from typing import Dict
from typing import Optional
from typing import Type
from typing import Union
from urllib.parse import quote

import httpx
from loguru import logger

from idsync_api.exceptions import DirectoryUnreachable
from idsync_api.exceptions import IdentitySyncError
from idsync_api.exceptions import MappingUnavailable
from idsync_api.exceptions import SyncFailed
from idsync_api.exceptions import describe_connection_error
from idsync_api.exceptions import error_from_response
from idsync_api.models.identity import DirectoryConnectionState
from idsync_api.models.identity import DirectoryServerInfo
from idsync_api.models.identity import DirectorySyncStatus
from idsync_api.models.identity import SyncStatusDisabled

DEFAULT_TIMEOUT_SECONDS = 10.0


def parse_json(response: httpx.Response, error_class: Type[IdentitySyncError]) -> Any:
    """Decode a gateway JSON body, raising error_class when the body is not JSON."""
    try:
        return response.json()
    except ValueError as e:
        request = response.request
        raise error_class(
            title="Unexpected directory response",
            body=f"{request.method} {request.url.path} returned a non-JSON body: {response.text[:200]}",
        ) from e


class DirectorySyncClient:
    """
    Client for the directory gateway.

    The enterprise capability is injected at construction. When it is off, the sync
    status is reported as disabled without calling the gateway.

    Attributes
    ----------
    base_url : str
        Gateway base URL without trailing slash
    enterprise : bool
        Whether the aggregate sync status feature is available
    """

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        enterprise: bool = False,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Parameters
        ----------
        base_url : str
            Gateway base URL
        api_token : str, optional
            Bearer token for the gateway
        enterprise : bool
            Enterprise build/license flag
        timeout : float
            Per-request timeout in seconds
        transport : httpx.AsyncBaseTransport, optional
            Custom transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.enterprise = enterprise

        headers = {"Accept": "application/json"}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def __aenter__(self) -> "DirectorySyncClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def get_connection_state(self) -> DirectoryConnectionState:
        """
        Query the connection state of every configured directory server.

        Returns
        -------
        DirectoryConnectionState
            reachable is True when at least one server is available

        Raises
        ------
        DirectoryUnreachable
            The gateway could not be reached or answered with an error
        """
        try:
            response = await self._client.get("/ldap/status")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            title, body = error_from_response(e.response)
            logger.warning("Directory status request rejected", status_code=e.response.status_code, title=title)
            raise DirectoryUnreachable(title=title, body=body) from e
        except httpx.TransportError as e:
            logger.warning("Directory gateway unreachable", base_url=self.base_url, error=str(e))
            raise DirectoryUnreachable(body=describe_connection_error(e)) from e

        servers = [DirectoryServerInfo(**server) for server in parse_json(response, DirectoryUnreachable) or []]
        reachable = any(server.available for server in servers)
        last_error = next((server.error for server in servers if server.error), None)

        logger.debug("Directory connection state loaded", servers=len(servers), reachable=reachable)
        return DirectoryConnectionState(reachable=reachable, server_info=servers, last_error=last_error)

    async def get_sync_status(self) -> Union[DirectorySyncStatus, SyncStatusDisabled]:
        """
        Get the aggregate directory sync status.

        Returns SyncStatusDisabled without any network call when the enterprise
        capability is off.

        Raises
        ------
        SyncFailed
            The gateway could not report the status
        """
        if not self.enterprise:
            logger.debug("Sync status requested on a non-enterprise build - feature disabled")
            return SyncStatusDisabled()

        try:
            response = await self._client.get("/ldap/sync-status")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            title, body = error_from_response(e.response)
            raise SyncFailed(title=title, body=body) from e
        except httpx.TransportError as e:
            raise SyncFailed(title="Could not load directory sync status", body=describe_connection_error(e)) from e

        payload: Dict[str, Any] = parse_json(response, SyncFailed) or {}
        return DirectorySyncStatus(
            enabled=payload.get("enabled", True),
            last_sync_time=payload.get("lastSync"),
            next_sync_time=payload.get("nextSync"),
            schedule=payload.get("schedule"),
            users_synced=payload.get("usersSynced") or 0,
            errors=payload.get("errors") or [],
        )

    async def trigger_user_sync(self, user_id: int) -> str:
        """
        Ask the directory to re-sync one user.

        Either the gateway accepts the request or it does not; nothing is applied locally.

        Returns
        -------
        str
            Acknowledgement message from the gateway

        Raises
        ------
        SyncFailed
            On any downstream error
        """
        try:
            response = await self._client.post(f"/ldap/sync/{user_id}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            title, body = error_from_response(e.response)
            logger.warning("User sync rejected by directory", user_id=user_id, title=title, body=body)
            raise SyncFailed(title=title, body=body) from e
        except httpx.TransportError as e:
            logger.warning("User sync could not reach directory", user_id=user_id, error=str(e))
            raise SyncFailed(body=describe_connection_error(e)) from e

        # Accepted is decided by the status code; the body only carries the message
        message = "User synced"
        try:
            payload = response.json() if response.content else None
        except ValueError:
            payload = None
            logger.debug("User sync acknowledged with a non-JSON body", user_id=user_id, body=response.text[:200])
        if isinstance(payload, dict):
            message = payload.get("message") or message

        logger.info("User sync accepted by directory", user_id=user_id)
        return message

    async def lookup_user(self, username: str) -> Dict[str, Any]:
        """
        Look up the directory entry of a user by login.

        Raises
        ------
        MappingUnavailable
            The directory lookup failed
        """
        try:
            response = await self._client.get(f"/ldap/users/{quote(username, safe='')}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            title, body = error_from_response(e.response)
            raise MappingUnavailable(title=title, body=body) from e
        except httpx.TransportError as e:
            raise MappingUnavailable(body=describe_connection_error(e)) from e

        return parse_json(response, MappingUnavailable)
