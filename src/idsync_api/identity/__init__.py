"""Local identity records and directory attribute mapping."""

from idsync_api.identity.mapper import IdentityMapper
from idsync_api.identity.repository_user import InMemoryUserStore
from idsync_api.identity.repository_user import UserRepository
from idsync_api.identity.repository_user import UserStore

__all__ = [
    "IdentityMapper",
    "InMemoryUserStore",
    "UserRepository",
    "UserStore",
]
