"""
User Repository

Local user records (the identity backend). Records are created by directory sync or
local admin edits elsewhere; this service only reads them.
"""

from abc import ABC
from abc import abstractmethod
from typing import Dict
from typing import Optional

import asyncpg

from idsync_api.exceptions import UserNotFound
from idsync_api.models.identity import User

USER_COLUMNS = "id, login, email, name, is_external"


class UserStore(ABC):
    """Read access to local users."""

    @abstractmethod
    async def get_user(self, user_id: int) -> User:
        """Get a user by id. Raises UserNotFound."""

    @abstractmethod
    async def get_by_login(self, login: str) -> Optional[User]:
        """Get a user by login, or None."""


class InMemoryUserStore(UserStore):
    """Process-local user store."""

    def __init__(self):
        self._users: Dict[int, User] = {}

    def add_user(self, user: User) -> User:
        self._users[user.id] = user
        return user

    async def get_user(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFound(body=f"No user with id {user_id}")
        return user

    async def get_by_login(self, login: str) -> Optional[User]:
        return next((user for user in self._users.values() if user.login == login), None)


class UserRepository(UserStore):
    """User store on the idsync.users table."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool
        self.table = "users"

    async def get_user(self, user_id: int) -> User:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM idsync.{self.table} WHERE id = $1",
                user_id,
            )
        if row is None:
            raise UserNotFound(body=f"No user with id {user_id}")
        return User(**dict(row))

    async def get_by_login(self, login: str) -> Optional[User]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM idsync.{self.table} WHERE login = $1",
                login,
            )
        return User(**dict(row)) if row else None
