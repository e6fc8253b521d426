"""
Identity Models

Local user records and sessions, and the directory-derived views of them.
"""

from datetime import datetime
from typing import Dict
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class User(BaseModel):
    """Local user record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    login: str
    email: Optional[str] = None
    name: Optional[str] = None
    is_external: bool = False  # True when the record is managed by directory sync


class ClientInfo(BaseModel):
    """Client that opened a session."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device: Optional[str] = None


class Session(BaseModel):
    """Active session token of a user."""

    model_config = ConfigDict(from_attributes=True)

    token_id: int
    user_id: int
    created_at: datetime
    last_seen_at: datetime
    client_info: ClientInfo = Field(default_factory=ClientInfo)


class DirectoryServerInfo(BaseModel):
    """One directory server as reported by the gateway."""

    host: str
    port: Optional[int] = None
    available: bool = False
    error: Optional[str] = None


class DirectoryConnectionState(BaseModel):
    """Connection state of the directory. Recomputed on each query, never persisted."""

    reachable: bool
    server_info: List[DirectoryServerInfo] = Field(default_factory=list)
    last_error: Optional[str] = None


class DirectorySyncStatus(BaseModel):
    """Aggregate status of the scheduled directory sync (enterprise builds only)."""

    enabled: bool = True
    last_sync_time: Optional[datetime] = None
    next_sync_time: Optional[datetime] = None
    schedule: Optional[str] = None
    users_synced: int = 0
    errors: List[str] = Field(default_factory=list)


class SyncStatusDisabled(BaseModel):
    """Sync status when the enterprise sync capability is not present. Not an error."""

    enabled: bool = False


class UserMapping(BaseModel):
    """Which directory attributes produced which local profile fields for a user."""

    user_id: Optional[int] = None
    login: str
    attribute_sources: Dict[str, str] = Field(default_factory=dict)
    attribute_values: Dict[str, Optional[str]] = Field(default_factory=dict)
    server_info: Optional[DirectoryServerInfo] = None
