"""FastAPI dependencies for accessing app state."""

from fastapi import Depends
from fastapi import Header
from fastapi import HTTPException
from fastapi import Request
from fastapi import status

from idsync_api.directory.client import DirectorySyncClient
from idsync_api.orchestrator.registry import ViewRegistry
from idsync_api.orchestrator.user_detail import UserAdminOrchestrator
from idsync_api.sessions.store import SessionStore
from idsync_api.settings import Settings

MAX_VIEW_ID_LENGTH = 128


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Parameters
    ----------
    request : Request
        FastAPI request object

    Returns
    -------
    Settings
        Application settings instance
    """
    return request.app.state.settings


def get_directory_client(request: Request) -> DirectorySyncClient:
    """Get the shared directory gateway client."""
    return request.app.state.directory_client


def get_session_store(request: Request) -> SessionStore:
    """Get the session store."""
    return request.app.state.session_store


def get_view_registry(request: Request) -> ViewRegistry:
    """Get the registry of per-viewer orchestrators."""
    return request.app.state.view_registry


async def get_view_id(
    x_view_id: str = Header(
        "default",
        alias="X-View-ID",
        description="<small>*Identifier of the console view whose state is read and updated*</small>",
    ),
) -> str:
    """
    Extract and validate the console view id from header.

    Raises
    ------
    HTTPException
        400 if the view id is blank or too long
    """
    view_id = x_view_id.strip()
    if not view_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-View-ID header must not be empty",
        )
    if len(view_id) > MAX_VIEW_ID_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"X-View-ID must be at most {MAX_VIEW_ID_LENGTH} characters",
        )
    return view_id


async def get_orchestrator(
    request: Request,
    view_id: str = Depends(get_view_id),
) -> UserAdminOrchestrator:
    """Get the orchestrator of the calling console view."""
    return get_view_registry(request).get(view_id)
