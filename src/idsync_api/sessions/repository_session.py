"""
Session Repository

PostgreSQL-backed session store. Revocation is a soft delete (revoked_at), so a repeated
revoke is recognized and treated as success.
"""

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

import asyncpg
from loguru import logger

from idsync_api.exceptions import SessionNotFound
from idsync_api.models.identity import ClientInfo
from idsync_api.models.identity import Session
from idsync_api.sessions.store import SessionStore

SESSION_COLUMNS = "token_id, user_id, created_at, last_seen_at, ip_address, user_agent, device"


def row_to_session(row: Dict[str, Any]) -> Session:
    """Build a Session from a user_sessions row."""
    return Session(
        token_id=row["token_id"],
        user_id=row["user_id"],
        created_at=row["created_at"],
        last_seen_at=row["last_seen_at"],
        client_info=ClientInfo(
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
            device=row["device"],
        ),
    )


class SessionRepository(SessionStore):
    """Session store on the idsync.user_sessions table."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool
        self.table = "user_sessions"

    async def list_sessions(self, user_id: int) -> List[Session]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {SESSION_COLUMNS} FROM idsync.{self.table}
                WHERE user_id = $1 AND revoked_at IS NULL
                ORDER BY last_seen_at DESC, created_at DESC, token_id DESC
                """,
                user_id,
            )
            return [row_to_session(row) for row in rows]

    async def create_session(self, user_id: int, client_info: Optional[ClientInfo] = None) -> Session:
        client_info = client_info or ClientInfo()
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO idsync.{self.table} (user_id, ip_address, user_agent, device)
                VALUES ($1, $2, $3, $4)
                RETURNING {SESSION_COLUMNS}
                """,
                user_id,
                client_info.ip_address,
                client_info.user_agent,
                client_info.device,
            )

        session = row_to_session(row)
        logger.debug("Session created", user_id=user_id, token_id=session.token_id)
        return session

    async def revoke_session(self, token_id: int, user_id: int) -> None:
        async with self.pool.acquire() as conn:
            # COALESCE keeps the original revocation time on a repeated revoke
            revoked = await conn.fetchval(
                f"""
                UPDATE idsync.{self.table}
                SET revoked_at = COALESCE(revoked_at, now())
                WHERE token_id = $1 AND user_id = $2
                RETURNING token_id
                """,
                token_id,
                user_id,
            )

        if revoked is None:
            raise SessionNotFound(body=f"Token {token_id} does not exist for user {user_id}")

        logger.info("Session revoked", user_id=user_id, token_id=token_id)

    async def revoke_all_sessions(self, user_id: int) -> int:
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                f"""
                UPDATE idsync.{self.table}
                SET revoked_at = now()
                WHERE user_id = $1 AND revoked_at IS NULL
                """,
                user_id,
            )

        # asyncpg returns the command tag, e.g. "UPDATE 3"
        revoked = int(status.split()[-1]) if status else 0
        logger.info("All sessions revoked", user_id=user_id, revoked=revoked)
        return revoked
