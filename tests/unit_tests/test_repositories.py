"""Tests for the PostgreSQL user and session repositories."""

from datetime import datetime
from datetime import timezone

import pytest

from idsync_api.exceptions import SessionNotFound
from idsync_api.exceptions import UserNotFound
from idsync_api.identity.repository_user import InMemoryUserStore
from idsync_api.identity.repository_user import UserRepository
from idsync_api.models.identity import ClientInfo
from idsync_api.models.identity import User
from idsync_api.sessions.repository_session import SessionRepository
from idsync_api.sessions.repository_session import row_to_session

SEEN = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def session_row(token_id, user_id=1):
    return {
        "token_id": token_id,
        "user_id": user_id,
        "created_at": SEEN,
        "last_seen_at": SEEN,
        "ip_address": "10.0.0.1",
        "user_agent": "curl/8.0",
        "device": None,
    }


class TestSessionRepository:
    """Tests for SessionRepository."""

    def test_row_to_session(self):
        """Test a row is mapped with its client info."""
        session = row_to_session(session_row(5))

        assert session.token_id == 5
        assert session.client_info.user_agent == "curl/8.0"
        assert session.client_info.device is None

    @pytest.mark.asyncio
    async def test_list_sessions(self, mock_db_pool):
        """Test only active sessions are queried, most recent first."""
        pool, conn = mock_db_pool
        conn.fetch.return_value = [session_row(2), session_row(1)]

        sessions = await SessionRepository(pool).list_sessions(1)

        assert [s.token_id for s in sessions] == [2, 1]
        query = conn.fetch.call_args.args[0]
        assert "revoked_at IS NULL" in query
        assert "ORDER BY last_seen_at DESC" in query
        assert conn.fetch.call_args.args[1] == 1

    @pytest.mark.asyncio
    async def test_create_session(self, mock_db_pool):
        """Test the client info is inserted and the stored row returned."""
        pool, conn = mock_db_pool
        conn.fetchrow.return_value = session_row(3)

        session = await SessionRepository(pool).create_session(1, ClientInfo(ip_address="10.0.0.1"))

        assert session.token_id == 3
        assert conn.fetchrow.call_args.args[1:] == (1, "10.0.0.1", None, None)

    @pytest.mark.asyncio
    async def test_revoke_session(self, mock_db_pool):
        """Test revocation is a soft delete scoped to the user."""
        pool, conn = mock_db_pool
        conn.fetchval.return_value = 7

        await SessionRepository(pool).revoke_session(7, 1)

        query = conn.fetchval.call_args.args[0]
        assert "COALESCE(revoked_at, now())" in query
        assert conn.fetchval.call_args.args[1:] == (7, 1)

    @pytest.mark.asyncio
    async def test_revoke_unknown_session_raises(self, mock_db_pool):
        """Test a token without a row for the user raises SessionNotFound."""
        pool, conn = mock_db_pool
        conn.fetchval.return_value = None

        with pytest.raises(SessionNotFound):
            await SessionRepository(pool).revoke_session(7, 1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "command_tag,expected",
        [("UPDATE 3", 3), ("UPDATE 0", 0), ("", 0)],
        ids=["three_revoked", "none_revoked", "empty_tag"],
    )
    async def test_revoke_all_sessions(self, mock_db_pool, command_tag, expected):
        """Test the revoked count is parsed from the command tag."""
        pool, conn = mock_db_pool
        conn.execute.return_value = command_tag

        assert await SessionRepository(pool).revoke_all_sessions(1) == expected


class TestUserRepository:
    """Tests for UserRepository."""

    @pytest.mark.asyncio
    async def test_get_user(self, mock_db_pool):
        """Test a row is mapped onto User."""
        pool, conn = mock_db_pool
        conn.fetchrow.return_value = {"id": 1, "login": "alice", "email": None, "name": "Alice", "is_external": True}

        user = await UserRepository(pool).get_user(1)

        assert user == User(id=1, login="alice", name="Alice", is_external=True)

    @pytest.mark.asyncio
    async def test_get_missing_user_raises(self, mock_db_pool):
        """Test a missing row raises UserNotFound."""
        pool, conn = mock_db_pool
        conn.fetchrow.return_value = None

        with pytest.raises(UserNotFound) as exc_info:
            await UserRepository(pool).get_user(42)

        assert exc_info.value.body == "No user with id 42"

    @pytest.mark.asyncio
    async def test_get_by_login_missing(self, mock_db_pool):
        """Test a missing login returns None."""
        pool, conn = mock_db_pool
        conn.fetchrow.return_value = None

        assert await UserRepository(pool).get_by_login("mallory") is None


class TestInMemoryUserStore:
    """Tests for InMemoryUserStore."""

    @pytest.mark.asyncio
    async def test_lookup_by_id_and_login(self):
        """Test users are found by id and by login."""
        store = InMemoryUserStore()
        store.add_user(User(id=3, login="carol"))

        assert (await store.get_user(3)).login == "carol"
        assert (await store.get_by_login("carol")).id == 3
        assert await store.get_by_login("dave") is None

    @pytest.mark.asyncio
    async def test_missing_user_raises(self):
        """Test an unknown id raises UserNotFound."""
        with pytest.raises(UserNotFound):
            await InMemoryUserStore().get_user(1)
