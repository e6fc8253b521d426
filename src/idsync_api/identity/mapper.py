"""
Identity Mapper

Resolves which directory attributes produced which local profile fields of a user, and
holds the mapping currently on display.
"""

from typing import Any
from typing import Dict
from typing import Optional

from loguru import logger

from idsync_api.directory.client import DirectorySyncClient
from idsync_api.exceptions import MappingUnavailable
from idsync_api.models.identity import DirectoryServerInfo
from idsync_api.models.identity import UserMapping


def mapping_from_payload(username: str, payload: Dict[str, Any]) -> UserMapping:
    """
    Build a UserMapping from a directory lookup payload.

    Attributes arrive as {local_field: {"attribute": directory_field, "value": value}}.
    Fields without a directory attribute are not sourced from the directory and are skipped.
    """
    if not isinstance(payload, dict):
        raise MappingUnavailable(body=f"Unexpected directory response for {username}")

    sources: Dict[str, str] = {}
    values: Dict[str, Optional[str]] = {}
    for field, entry in (payload.get("attributes") or {}).items():
        if not isinstance(entry, dict) or not entry.get("attribute"):
            continue
        sources[field] = entry["attribute"]
        value = entry.get("value")
        values[field] = None if value is None else str(value)

    server = payload.get("server")
    return UserMapping(
        user_id=payload.get("userId"),
        login=payload.get("login") or username,
        attribute_sources=sources,
        attribute_values=values,
        server_info=DirectoryServerInfo(**server) if isinstance(server, dict) else None,
    )


class IdentityMapper:
    """Directory attribute mapping lookups with a single display slot."""

    def __init__(self, directory_client: DirectorySyncClient):
        self.directory_client = directory_client
        self._current: Optional[UserMapping] = None

    @property
    def current_mapping(self) -> Optional[UserMapping]:
        """Mapping currently on display, if any."""
        return self._current

    async def get_user_mapping(self, username: str) -> UserMapping:
        """
        Resolve the attribute mapping of a user.

        On failure the display slot is cleared before the error propagates, so it never keeps
        a mapping that belongs to another user.

        Raises
        ------
        MappingUnavailable
            The directory lookup failed
        """
        try:
            payload = await self.directory_client.lookup_user(username)
            mapping = mapping_from_payload(username, payload)
        except Exception as e:
            self._current = None
            logger.warning("User mapping unavailable", username=username, error=str(e))
            raise

        self._current = mapping
        logger.debug("User mapping resolved", username=username, fields=len(mapping.attribute_sources))
        return mapping

    def show_mapping(self, mapping: Optional[UserMapping]) -> None:
        """Put a mapping that was already resolved back into the display slot."""
        self._current = mapping

    def clear_mapping(self) -> None:
        """Reset the display slot. Always succeeds."""
        self._current = None
