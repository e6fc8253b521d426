"""Session token storage."""

from idsync_api.sessions.repository_session import SessionRepository
from idsync_api.sessions.store import InMemorySessionStore
from idsync_api.sessions.store import SessionStore

__all__ = [
    "InMemorySessionStore",
    "SessionRepository",
    "SessionStore",
]
