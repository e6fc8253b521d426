"""
Models Module

Pydantic models for identity records, directory state and console views.
"""

from idsync_api.models.identity import ClientInfo
from idsync_api.models.identity import DirectoryConnectionState
from idsync_api.models.identity import DirectoryServerInfo
from idsync_api.models.identity import DirectorySyncStatus
from idsync_api.models.identity import Session
from idsync_api.models.identity import SyncStatusDisabled
from idsync_api.models.identity import User
from idsync_api.models.identity import UserMapping
from idsync_api.models.view import OperationError
from idsync_api.models.view import OperationResult
from idsync_api.models.view import UserDetailView

__all__ = [
    "ClientInfo",
    "DirectoryConnectionState",
    "DirectoryServerInfo",
    "DirectorySyncStatus",
    "OperationError",
    "OperationResult",
    "Session",
    "SyncStatusDisabled",
    "User",
    "UserDetailView",
    "UserMapping",
]
