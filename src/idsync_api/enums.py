"""
Identity Sync Enums

Enum types shared by the stores, the directory client and the orchestration layer.
"""

from enum import Enum

# ════════════════════════════════════════════════════════════════════════════
# Error Taxonomy
# ════════════════════════════════════════════════════════════════════════════


class ErrorKind(str, Enum):
    """Kind of a normalized operation error."""

    DIRECTORY_UNREACHABLE = "DIRECTORY_UNREACHABLE"
    SYNC_FAILED = "SYNC_FAILED"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    MAPPING_UNAVAILABLE = "MAPPING_UNAVAILABLE"
    USER_SYNC_FAILED = "USER_SYNC_FAILED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    OPERATION_FAILED = "OPERATION_FAILED"


# ════════════════════════════════════════════════════════════════════════════
# User Detail View
# ════════════════════════════════════════════════════════════════════════════


class ViewStatus(str, Enum):
    """Load status of a user detail view."""

    IDLE = "IDLE"
    LOADING = "LOADING"
    LOADED = "LOADED"
    FAILED = "FAILED"


class ViewEvent(str, Enum):
    """State transitions published to view observers."""

    USER_LOADING = "USER_LOADING"
    USER_LOADED = "USER_LOADED"
    USER_LOAD_FAILED = "USER_LOAD_FAILED"
    USER_SESSIONS_LOADED = "USER_SESSIONS_LOADED"
    USER_SESSIONS_FAILED = "USER_SESSIONS_FAILED"
    USER_MAPPING_LOADED = "USER_MAPPING_LOADED"
    USER_MAPPING_FAILED = "USER_MAPPING_FAILED"
    USER_MAPPING_CLEARED = "USER_MAPPING_CLEARED"
    USER_ERROR_CLEARED = "USER_ERROR_CLEARED"
    USER_SYNC_FAILED = "USER_SYNC_FAILED"
    DIRECTORY_STATE_LOADED = "DIRECTORY_STATE_LOADED"
    DIRECTORY_FAILED = "DIRECTORY_FAILED"
    SYNC_STATUS_LOADED = "SYNC_STATUS_LOADED"
    SYNC_STATUS_FAILED = "SYNC_STATUS_FAILED"
