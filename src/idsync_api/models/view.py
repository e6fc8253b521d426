"""
View Models

State of one admin console "user detail" screen and the results returned by orchestration operations.
"""

from typing import List
from typing import Optional
from typing import Union

from pydantic import BaseModel
from pydantic import Field

from idsync_api.enums import ErrorKind
from idsync_api.enums import ViewStatus
from idsync_api.models.identity import DirectoryConnectionState
from idsync_api.models.identity import DirectorySyncStatus
from idsync_api.models.identity import Session
from idsync_api.models.identity import SyncStatusDisabled
from idsync_api.models.identity import User
from idsync_api.models.identity import UserMapping


class OperationError(BaseModel):
    """Normalized, display-ready error."""

    kind: ErrorKind = ErrorKind.OPERATION_FAILED
    title: str
    body: Optional[str] = None


class UserDetailView(BaseModel):
    """State of one user detail screen."""

    view_id: str = "default"
    status: ViewStatus = ViewStatus.IDLE

    user: Optional[User] = None
    error: Optional[OperationError] = None
    user_sync_failed: bool = False

    sessions: List[Session] = Field(default_factory=list)
    sessions_error: Optional[OperationError] = None

    mapping: Optional[UserMapping] = None
    mapping_error: Optional[OperationError] = None

    connection_state: Optional[DirectoryConnectionState] = None
    directory_error: Optional[OperationError] = None

    sync_status: Optional[Union[DirectorySyncStatus, SyncStatusDisabled]] = None
    sync_status_error: Optional[OperationError] = None


class OperationResult(BaseModel):
    """Outcome of one orchestration operation together with the resulting view."""

    ok: bool
    error: Optional[OperationError] = None
    view: UserDetailView
