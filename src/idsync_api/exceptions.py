"""
Domain exceptions and error normalization.

Every collaborator failure is translated into one of the exceptions below, and every
exception is translated into an OperationError before it reaches the presentation layer.
"""

from typing import Optional

import httpx

from idsync_api.enums import ErrorKind
from idsync_api.models.view import OperationError


class IdentitySyncError(Exception):
    """Base class for all identity sync failures."""

    kind: ErrorKind = ErrorKind.OPERATION_FAILED
    default_title: str = "Operation failed"

    def __init__(self, title: Optional[str] = None, body: Optional[str] = None):
        self.title = title or self.default_title
        self.body = body
        super().__init__(f"{self.title}: {body}" if body else self.title)

    def to_operation_error(self) -> OperationError:
        """Convert to the display-ready error shape."""
        return OperationError(kind=self.kind, title=self.title, body=self.body)


class DirectoryUnreachable(IdentitySyncError):
    """The external directory could not be reached."""

    kind = ErrorKind.DIRECTORY_UNREACHABLE
    default_title = "Directory server is unreachable"


class SyncFailed(IdentitySyncError):
    """The directory rejected or failed a sync request."""

    kind = ErrorKind.SYNC_FAILED
    default_title = "Directory sync failed"


class SessionNotFound(IdentitySyncError):
    """The session token never existed for the user."""

    kind = ErrorKind.SESSION_NOT_FOUND
    default_title = "Session not found"


class MappingUnavailable(IdentitySyncError):
    """The directory attribute mapping of a user could not be resolved."""

    kind = ErrorKind.MAPPING_UNAVAILABLE
    default_title = "User mapping unavailable"


class UserSyncFailed(IdentitySyncError):
    """Syncing a single user with the directory failed."""

    kind = ErrorKind.USER_SYNC_FAILED
    default_title = "User sync failed"


class UserNotFound(IdentitySyncError):
    """No local user with the requested id."""

    kind = ErrorKind.USER_NOT_FOUND
    default_title = "User not found"


def describe_connection_error(error: Exception) -> str:
    """
    Describe a network-level failure in words an administrator can act on.

    Parameters
    ----------
    error : Exception
        The connection error exception

    Returns
    -------
    str
        Human readable description
    """
    error_message = str(error)
    lowered = error_message.lower()

    if isinstance(error, httpx.TimeoutException) or "timeout" in lowered or "timed out" in lowered:
        return "Connection to the directory server timed out. Please try again later."
    if "name or service not known" in lowered or "nodename nor servname" in lowered:
        return "Unable to resolve the directory server host. Please verify the URL is correct."
    if "connection refused" in lowered:
        return "Connection to the directory server was refused."
    if "ssl" in lowered or "certificate" in lowered:
        return "SSL/TLS error connecting to the directory server."
    return f"Unable to connect to the directory server: {error_message}"


def error_from_response(response: httpx.Response) -> tuple[str, Optional[str]]:
    """
    Extract (title, body) from an error response of the directory gateway.

    The gateway answers errors as {"message": ..., "error": ...}; anything else falls back
    to the HTTP status line.
    """
    title = f"{response.status_code} {response.reason_phrase}".strip()
    body = None
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        title = payload.get("message") or title
        body = payload.get("error")
    elif response.text:
        body = response.text[:500]

    return title, body


def normalize_error(error: Exception, kind: ErrorKind = ErrorKind.OPERATION_FAILED) -> OperationError:
    """
    Convert any exception into an OperationError.

    IdentitySyncError keeps its own kind, title and body. Raw httpx errors and anything
    else are tagged with the given kind.
    """
    if isinstance(error, IdentitySyncError):
        return error.to_operation_error()

    if isinstance(error, httpx.HTTPStatusError):
        title, body = error_from_response(error.response)
        return OperationError(kind=kind, title=title, body=body)

    if isinstance(error, httpx.TransportError):
        return OperationError(kind=kind, title="Directory request failed", body=describe_connection_error(error))

    return OperationError(kind=kind, title="Unexpected error", body=str(error) or type(error).__name__)
