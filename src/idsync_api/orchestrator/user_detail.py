"""
User Detail Orchestrator

Composes the directory client, the session store, the user store and the identity mapper
for one admin console "user detail" view.

Each operation is one unit of work: it calls collaborators in a fixed order, normalizes
every failure into an OperationError, updates the view and notifies observers of each
state transition. No raw transport error leaves this module.

Ordering contract:
    load_user_detail   user -> (sessions || mapping)        user failure skips both sub-fetches
    sync_user          trigger sync -> (user detail || sync status)   failure leaves data untouched
    revoke_session     revoke -> sessions refresh (always)
    revoke_all         revoke all -> sessions refresh (always)
"""

import asyncio
from typing import Callable
from typing import List
from typing import Optional

from loguru import logger

from idsync_api.directory.client import DirectorySyncClient
from idsync_api.enums import ErrorKind
from idsync_api.enums import ViewEvent
from idsync_api.enums import ViewStatus
from idsync_api.exceptions import normalize_error
from idsync_api.identity.mapper import IdentityMapper
from idsync_api.identity.repository_user import UserStore
from idsync_api.models.view import OperationError
from idsync_api.models.view import OperationResult
from idsync_api.models.view import UserDetailView
from idsync_api.sessions.store import SessionStore

ViewListener = Callable[[ViewEvent, UserDetailView], None]


class UserAdminOrchestrator:
    """
    Controller of one user detail view.

    Observers registered with subscribe() receive (event, view snapshot) after every
    state transition.
    """

    def __init__(
        self,
        directory_client: DirectorySyncClient,
        session_store: SessionStore,
        user_store: UserStore,
        mapper: Optional[IdentityMapper] = None,
        view_id: str = "default",
    ):
        self.directory_client = directory_client
        self.session_store = session_store
        self.user_store = user_store
        self.mapper = mapper or IdentityMapper(directory_client)
        self.view = UserDetailView(view_id=view_id)
        self._listeners: List[ViewListener] = []
        # Bumped by every load_user_detail; results of a superseded load are dropped
        self._load_generation = 0

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """Register an observer. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> UserDetailView:
        """Copy of the current view state."""
        return self.view.model_copy(deep=True)

    def _emit(self, event: ViewEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, self.snapshot())
            except Exception as e:
                logger.error(f"View listener failed on {event.value}: {e}", exc_info=True)

    def _result(self, error: Optional[OperationError] = None) -> OperationResult:
        return OperationResult(ok=error is None, error=error, view=self.snapshot())

    def _is_stale(self, generation: Optional[int]) -> bool:
        return generation is not None and generation != self._load_generation

    # ------------------------------------------------------------------ directory

    async def load_directory_state(self) -> OperationResult:
        """Load the directory connection state. Failures are reported on the view, never raised."""
        try:
            state = await self.directory_client.get_connection_state()
        except Exception as e:
            error = normalize_error(e, ErrorKind.DIRECTORY_UNREACHABLE)
            logger.warning("Directory state unavailable", title=error.title, body=error.body)
            self.view.directory_error = error
            self._emit(ViewEvent.DIRECTORY_FAILED)
            return self._result(error)

        self.view.connection_state = state
        self.view.directory_error = None
        self._emit(ViewEvent.DIRECTORY_STATE_LOADED)
        return self._result()

    async def load_sync_status(self) -> OperationResult:
        """Load the aggregate sync status (reported as disabled on non-enterprise builds)."""
        try:
            status = await self.directory_client.get_sync_status()
        except Exception as e:
            error = normalize_error(e, ErrorKind.SYNC_FAILED)
            logger.warning("Directory sync status unavailable", title=error.title, body=error.body)
            self.view.sync_status_error = error
            self._emit(ViewEvent.SYNC_STATUS_FAILED)
            return self._result(error)

        self.view.sync_status = status
        self.view.sync_status_error = None
        self._emit(ViewEvent.SYNC_STATUS_LOADED)
        return self._result()

    # ------------------------------------------------------------------ user detail

    async def load_user_detail(self, user_id: int) -> OperationResult:
        """
        Load a user, then their sessions and mapping concurrently.

        If the user cannot be loaded, the view fails with a single error and neither the
        session store nor the mapper is called. Sub-fetch failures stay in their sub-view.

        When a newer load starts on the same view before this one finishes, the remaining
        results of this load are dropped and the view keeps the newer user's data.
        """
        self._load_generation += 1
        generation = self._load_generation

        self.view.status = ViewStatus.LOADING
        self.view.error = None
        self._emit(ViewEvent.USER_LOADING)

        try:
            user = await self.user_store.get_user(user_id)
        except Exception as e:
            error = normalize_error(e)
            if self._is_stale(generation):
                logger.debug("Dropping user load failure of a superseded load", user_id=user_id)
                return OperationResult(ok=False, error=error, view=self.snapshot())
            logger.warning("User load failed", user_id=user_id, kind=error.kind.value, title=error.title)
            self.view.error = error
            self.view.status = ViewStatus.FAILED
            self._emit(ViewEvent.USER_LOAD_FAILED)
            return self._result(error)

        if self._is_stale(generation):
            logger.debug("Dropping user of a superseded load", user_id=user_id)
            return self._result()

        if self.view.user is None or self.view.user.id != user.id:
            # Another user's sub-views must not survive a switch
            self.view.sessions = []
            self.view.sessions_error = None
            self.view.mapping = None
            self.view.mapping_error = None
            self.mapper.clear_mapping()

        self.view.user = user
        self.view.status = ViewStatus.LOADED
        self._emit(ViewEvent.USER_LOADED)
        logger.info("User loaded", user_id=user_id, login=user.login)

        await asyncio.gather(
            self._load_sessions(user_id, generation),
            self._load_mapping(user.login, generation),
        )
        return self._result()

    async def load_user_sessions(self, user_id: int) -> OperationResult:
        """Refresh the session list of a user from the store."""
        return await self._load_sessions(user_id)

    async def _load_sessions(self, user_id: int, generation: Optional[int] = None) -> OperationResult:
        try:
            sessions = await self.session_store.list_sessions(user_id)
        except Exception as e:
            error = normalize_error(e)
            if self._is_stale(generation):
                logger.debug("Dropping session failure of a superseded load", user_id=user_id)
                return OperationResult(ok=False, error=error, view=self.snapshot())
            logger.warning("Session list unavailable", user_id=user_id, title=error.title)
            self.view.sessions_error = error
            self._emit(ViewEvent.USER_SESSIONS_FAILED)
            return self._result(error)

        if self._is_stale(generation):
            logger.debug("Dropping sessions of a superseded load", user_id=user_id)
            return self._result()

        self.view.sessions = sessions
        self.view.sessions_error = None
        self._emit(ViewEvent.USER_SESSIONS_LOADED)
        return self._result()

    async def load_user_mapping(self, username: str) -> OperationResult:
        """
        Load the directory attribute mapping of a user.

        On failure the mapping is cleared before the error is recorded, so the view never
        shows a mapping fetched for someone else.
        """
        return await self._load_mapping(username)

    async def _load_mapping(self, username: str, generation: Optional[int] = None) -> OperationResult:
        try:
            mapping = await self.mapper.get_user_mapping(username)
        except Exception as e:
            error = normalize_error(e, ErrorKind.MAPPING_UNAVAILABLE)
            if self._is_stale(generation):
                logger.debug("Dropping mapping failure of a superseded load", username=username)
                self.mapper.show_mapping(self.view.mapping)
                return OperationResult(ok=False, error=error, view=self.snapshot())
            self.mapper.clear_mapping()
            self.view.mapping = None
            self._emit(ViewEvent.USER_MAPPING_CLEARED)
            self.view.mapping_error = error
            self._emit(ViewEvent.USER_MAPPING_FAILED)
            return self._result(error)

        if self._is_stale(generation):
            logger.debug("Dropping mapping of a superseded load", username=username)
            self.mapper.show_mapping(self.view.mapping)
            return self._result()

        self.view.mapping = mapping
        self.view.mapping_error = None
        self._emit(ViewEvent.USER_MAPPING_LOADED)
        return self._result()

    async def sync_user(self, user_id: int) -> OperationResult:
        """
        Re-sync a user with the directory, then refresh the user detail and the sync status.

        On failure only the sync failure is recorded; loaded user, sessions and mapping stay as they were.
        """
        try:
            await self.directory_client.trigger_user_sync(user_id)
        except Exception as e:
            cause = normalize_error(e, ErrorKind.SYNC_FAILED)
            error = OperationError(kind=ErrorKind.USER_SYNC_FAILED, title=cause.title, body=cause.body)
            logger.warning("User sync failed", user_id=user_id, title=error.title, body=error.body)
            self.view.user_sync_failed = True
            self.view.error = error
            self._emit(ViewEvent.USER_SYNC_FAILED)
            return self._result(error)

        self.view.user_sync_failed = False
        await asyncio.gather(
            self.load_user_detail(user_id),
            self.load_sync_status(),
        )
        return self._result()

    # ------------------------------------------------------------------ sessions

    async def revoke_session(self, token_id: int, user_id: int) -> OperationResult:
        """Revoke one session, then refresh the session list whether or not the revoke succeeded."""
        error = None
        try:
            await self.session_store.revoke_session(token_id, user_id)
        except Exception as e:
            error = normalize_error(e)
            logger.warning("Session revoke failed", user_id=user_id, token_id=token_id, title=error.title)

        await self.load_user_sessions(user_id)
        if error is not None:
            self.view.sessions_error = error
        return self._result(error)

    async def revoke_all_sessions(self, user_id: int) -> OperationResult:
        """Revoke every session of a user, then refresh the session list unconditionally."""
        error = None
        try:
            await self.session_store.revoke_all_sessions(user_id)
        except Exception as e:
            error = normalize_error(e)
            logger.warning("Bulk session revoke failed", user_id=user_id, title=error.title)

        await self.load_user_sessions(user_id)
        if error is not None:
            self.view.sessions_error = error
        return self._result(error)

    # ------------------------------------------------------------------ local state

    def clear_user_error(self) -> OperationResult:
        """Dismiss the displayed user and mapping errors."""
        self.view.error = None
        self.view.mapping_error = None
        self._emit(ViewEvent.USER_ERROR_CLEARED)
        return self._result()

    def clear_user_mapping(self) -> OperationResult:
        """Clear the mapping together with its error state. Idempotent."""
        self.clear_user_error()
        self.mapper.clear_mapping()
        self.view.mapping = None
        self._emit(ViewEvent.USER_MAPPING_CLEARED)
        return self._result()
