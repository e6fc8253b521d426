"""Fixtures for user and session stores and the orchestrator built on them."""

from datetime import datetime
from datetime import timedelta
from datetime import timezone
from unittest.mock import AsyncMock
from unittest.mock import MagicMock

import pytest

from idsync_api.models.identity import ClientInfo
from idsync_api.models.identity import Session
from idsync_api.models.identity import User

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_session(token_id: int, user_id: int, minutes_ago: int = 0) -> Session:
    """Session last seen `minutes_ago` minutes before NOW."""
    seen = NOW - timedelta(minutes=minutes_ago)
    return Session(
        token_id=token_id,
        user_id=user_id,
        created_at=seen - timedelta(hours=1),
        last_seen_at=seen,
        client_info=ClientInfo(ip_address="10.0.0.1", user_agent="Mozilla/5.0", device="laptop"),
    )


@pytest.fixture
def user_store():
    """In-memory user store holding alice (1) and bob (2)."""
    from idsync_api.identity.repository_user import InMemoryUserStore

    store = InMemoryUserStore()
    store.add_user(User(id=1, login="alice", email="alice@corp.test", name="Alice Adams", is_external=True))
    store.add_user(User(id=2, login="bob", email="bob@corp.test", name="Bob Brown", is_external=True))
    return store


@pytest.fixture
def session_store():
    """In-memory session store: alice has three sessions (10, 11, 12), bob has one (20)."""
    from idsync_api.sessions.store import InMemorySessionStore

    store = InMemorySessionStore()
    store.add_session(make_session(10, 1, minutes_ago=30))
    store.add_session(make_session(11, 1, minutes_ago=5))
    store.add_session(make_session(12, 1, minutes_ago=60))
    store.add_session(make_session(20, 2, minutes_ago=1))
    return store


@pytest.fixture
def orchestrator(directory_client, session_store, user_store):
    """Orchestrator of a non-enterprise build over the in-memory stores."""
    from idsync_api.orchestrator.user_detail import UserAdminOrchestrator

    return UserAdminOrchestrator(
        directory_client=directory_client,
        session_store=session_store,
        user_store=user_store,
        view_id="test-console",
    )


@pytest.fixture
def enterprise_orchestrator(enterprise_directory_client, session_store, user_store):
    """Orchestrator of an enterprise build over the in-memory stores."""
    from idsync_api.orchestrator.user_detail import UserAdminOrchestrator

    return UserAdminOrchestrator(
        directory_client=enterprise_directory_client,
        session_store=session_store,
        user_store=user_store,
    )


@pytest.fixture
def mock_db_pool():
    """asyncpg-like pool whose acquire() yields the returned connection mock."""
    conn = AsyncMock()
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    pool.acquire.return_value.__aexit__.return_value = False
    return pool, conn
