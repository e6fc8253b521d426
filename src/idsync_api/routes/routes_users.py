"""User detail endpoints: load, directory re-sync and session tokens."""

from typing import Optional

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Path
from fastapi import Request
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from loguru import logger

from idsync_api.dependencies import get_orchestrator
from idsync_api.dependencies import get_session_store
from idsync_api.errors import operation_response
from idsync_api.models.identity import ClientInfo
from idsync_api.orchestrator.user_detail import UserAdminOrchestrator
from idsync_api.schemas.schemas import CreateSessionRequest
from idsync_api.schemas.schemas import OperationErrorResponse
from idsync_api.sessions.store import SessionStore

ROUTER_USERS = APIRouter(tags=["Users"], prefix="/admin/users")


@ROUTER_USERS.get(
    "/{user_id}",
    summary="Load user detail",
    responses={
        status.HTTP_404_NOT_FOUND: {"model": OperationErrorResponse, "description": "User not found"},
    },
)
async def load_user_detail(
    request: Request,
    user_id: int = Path(..., gt=0, description="Local user id"),
    orchestrator: UserAdminOrchestrator = Depends(get_orchestrator),
):
    """Load the user, then their sessions and directory mapping."""
    logger.info("Loading user detail", user_id=user_id, method=request.method, path=request.url.path)
    result = await orchestrator.load_user_detail(user_id)
    return operation_response(result)


##########################


@ROUTER_USERS.post(
    "/{user_id}/ldap-sync",
    summary="Re-sync a user with the directory",
    responses={
        status.HTTP_502_BAD_GATEWAY: {"model": OperationErrorResponse, "description": "User sync failed"},
    },
)
async def sync_user(
    request: Request,
    user_id: int = Path(..., gt=0, description="Local user id"),
    orchestrator: UserAdminOrchestrator = Depends(get_orchestrator),
):
    """Trigger a directory sync of the user, then refresh the user detail and sync status."""
    logger.info("Syncing user with directory", user_id=user_id, method=request.method, path=request.url.path)
    result = await orchestrator.sync_user(user_id)
    return operation_response(result)


##########################


@ROUTER_USERS.get("/{user_id}/sessions", summary="List active sessions")
async def list_user_sessions(
    user_id: int = Path(..., gt=0, description="Local user id"),
    orchestrator: UserAdminOrchestrator = Depends(get_orchestrator),
):
    """Refresh the session list of the user, most recent first."""
    result = await orchestrator.load_user_sessions(user_id)
    return operation_response(result)


@ROUTER_USERS.post(
    "/{user_id}/sessions",
    summary="Open a session for a user",
    status_code=status.HTTP_201_CREATED,
)
async def create_user_session(
    user_id: int = Path(..., gt=0, description="Local user id"),
    body: Optional[CreateSessionRequest] = None,
    session_store: SessionStore = Depends(get_session_store),
):
    """Open a session token on behalf of a user (login flows and support tooling)."""
    client_info = ClientInfo(**body.model_dump()) if body else None
    session = await session_store.create_session(user_id, client_info)
    logger.info("Session opened", user_id=user_id, token_id=session.token_id)
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=jsonable_encoder(session))


@ROUTER_USERS.delete(
    "/{user_id}/sessions/{token_id}",
    summary="Revoke one session",
    responses={
        status.HTTP_404_NOT_FOUND: {"model": OperationErrorResponse, "description": "Session not found"},
    },
)
async def revoke_user_session(
    user_id: int = Path(..., gt=0, description="Local user id"),
    token_id: int = Path(..., gt=0, description="Session token id"),
    orchestrator: UserAdminOrchestrator = Depends(get_orchestrator),
):
    """Revoke one session token, then return the refreshed session list."""
    logger.info("Revoking session", user_id=user_id, token_id=token_id)
    result = await orchestrator.revoke_session(token_id, user_id)
    return operation_response(result)


@ROUTER_USERS.delete("/{user_id}/sessions", summary="Revoke all sessions")
async def revoke_all_user_sessions(
    user_id: int = Path(..., gt=0, description="Local user id"),
    orchestrator: UserAdminOrchestrator = Depends(get_orchestrator),
):
    """Revoke every session token of the user, then return the refreshed session list."""
    logger.info("Revoking all sessions", user_id=user_id)
    result = await orchestrator.revoke_all_sessions(user_id)
    return operation_response(result)
