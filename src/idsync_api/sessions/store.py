"""
Session Store

Authoritative record of active session tokens per user.

Revoked sessions are remembered (tombstoned) rather than forgotten, so the store can tell
"already revoked" (success, idempotent) from "never existed" (SessionNotFound).
"""

import asyncio
from abc import ABC
from abc import abstractmethod
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Dict
from typing import List
from typing import Optional

from loguru import logger

from idsync_api.exceptions import SessionNotFound
from idsync_api.models.identity import ClientInfo
from idsync_api.models.identity import Session

DEFAULT_TOMBSTONE_TTL = timedelta(days=1)


def sort_by_recency(sessions: List[Session]) -> List[Session]:
    """Most recently active first; ties broken by creation time, then token id."""
    return sorted(
        sessions,
        key=lambda s: (s.last_seen_at, s.created_at, s.token_id),
        reverse=True,
    )


class SessionStore(ABC):
    """Session store interface shared by the in-memory and PostgreSQL implementations."""

    @abstractmethod
    async def list_sessions(self, user_id: int) -> List[Session]:
        """Active sessions of a user, most recent first. Empty list when there are none."""

    @abstractmethod
    async def create_session(self, user_id: int, client_info: Optional[ClientInfo] = None) -> Session:
        """Open a new session for a user."""

    @abstractmethod
    async def revoke_session(self, token_id: int, user_id: int) -> None:
        """
        Revoke one session of a user.

        Raises SessionNotFound if the token never existed for that user. Revoking an
        already revoked token succeeds.
        """

    @abstractmethod
    async def revoke_all_sessions(self, user_id: int) -> int:
        """Revoke every active session of a user atomically. Returns how many were revoked."""


class InMemorySessionStore(SessionStore):
    """
    Process-local session store.

    A single asyncio.Lock guards all mutations, so concurrent revokes on the same user
    are serialized and idempotent.

    Tombstones older than tombstone_ttl are pruned together with their sessions on the
    next revoke. After that a repeated revoke of the pruned token raises SessionNotFound.
    """

    def __init__(self, tombstone_ttl: timedelta = DEFAULT_TOMBSTONE_TTL):
        self.tombstone_ttl = tombstone_ttl
        self._sessions: Dict[int, Session] = {}
        self._revoked: Dict[int, datetime] = {}
        self._next_id = 1
        self._lock = asyncio.Lock()

    async def list_sessions(self, user_id: int) -> List[Session]:
        async with self._lock:
            active = [
                session
                for token_id, session in self._sessions.items()
                if session.user_id == user_id and token_id not in self._revoked
            ]
        return sort_by_recency(active)

    async def create_session(self, user_id: int, client_info: Optional[ClientInfo] = None) -> Session:
        now = datetime.now(timezone.utc)
        async with self._lock:
            session = Session(
                token_id=self._next_id,
                user_id=user_id,
                created_at=now,
                last_seen_at=now,
                client_info=client_info or ClientInfo(),
            )
            self._sessions[session.token_id] = session
            self._next_id += 1

        logger.debug("Session created", user_id=user_id, token_id=session.token_id)
        return session

    def add_session(self, session: Session) -> Session:
        """Insert a session with caller-chosen timestamps (imports and fixtures)."""
        self._sessions[session.token_id] = session
        self._next_id = max(self._next_id, session.token_id + 1)
        return session

    def _prune_revoked(self, now: datetime) -> None:
        cutoff = now - self.tombstone_ttl
        expired = [token_id for token_id, revoked_at in self._revoked.items() if revoked_at <= cutoff]
        for token_id in expired:
            del self._revoked[token_id]
            self._sessions.pop(token_id, None)
        if expired:
            logger.debug("Pruned revoked sessions", pruned=len(expired))

    async def revoke_session(self, token_id: int, user_id: int) -> None:
        async with self._lock:
            self._prune_revoked(datetime.now(timezone.utc))
            session = self._sessions.get(token_id)
            if session is None or session.user_id != user_id:
                raise SessionNotFound(body=f"Token {token_id} does not exist for user {user_id}")

            if token_id in self._revoked:
                logger.debug("Session already revoked", user_id=user_id, token_id=token_id)
                return

            self._revoked[token_id] = datetime.now(timezone.utc)

        logger.info("Session revoked", user_id=user_id, token_id=token_id)

    async def revoke_all_sessions(self, user_id: int) -> int:
        async with self._lock:
            now = datetime.now(timezone.utc)
            self._prune_revoked(now)
            revoked = 0
            for token_id, session in self._sessions.items():
                if session.user_id == user_id and token_id not in self._revoked:
                    self._revoked[token_id] = now
                    revoked += 1

        logger.info("All sessions revoked", user_id=user_id, revoked=revoked)
        return revoked
