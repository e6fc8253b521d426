"""LDAP directory endpoints: connection state, sync status and user attribute mapping."""

from fastapi import APIRouter
from fastapi import Depends
from fastapi import Request
from fastapi import status
from loguru import logger

from idsync_api.dependencies import get_orchestrator
from idsync_api.errors import operation_response
from idsync_api.orchestrator.user_detail import UserAdminOrchestrator
from idsync_api.schemas.schemas import ERROR_EXAMPLE
from idsync_api.schemas.schemas import OperationErrorResponse

ROUTER_LDAP = APIRouter(tags=["LDAP"], prefix="/admin")


@ROUTER_LDAP.get(
    "/ldap/status",
    summary="Directory connection state",
    responses={
        status.HTTP_503_SERVICE_UNAVAILABLE: {
            "model": OperationErrorResponse,
            "description": "Directory server is unreachable",
            "content": {"application/json": {"example": ERROR_EXAMPLE}},
        },
    },
)
async def get_ldap_status(
    request: Request,
    orchestrator: UserAdminOrchestrator = Depends(get_orchestrator),
):
    """Load the connection state of the configured directory servers into the view."""
    logger.info("Loading directory connection state", method=request.method, path=request.url.path)
    result = await orchestrator.load_directory_state()
    return operation_response(result)


##########################


@ROUTER_LDAP.get(
    "/ldap/sync-status",
    summary="Aggregate directory sync status",
    responses={
        status.HTTP_200_OK: {
            "description": "Sync status loaded. On non-enterprise builds sync_status is {\"enabled\": false}",
        },
        status.HTTP_502_BAD_GATEWAY: {"model": OperationErrorResponse, "description": "Sync status unavailable"},
    },
)
async def get_ldap_sync_status(
    request: Request,
    orchestrator: UserAdminOrchestrator = Depends(get_orchestrator),
):
    """Load the aggregate sync status into the view (enterprise builds only)."""
    logger.info("Loading directory sync status", method=request.method, path=request.url.path)
    result = await orchestrator.load_sync_status()
    return operation_response(result)


##########################


@ROUTER_LDAP.get(
    "/ldap/users/{username}/mapping",
    summary="Directory attribute mapping of a user",
    responses={
        status.HTTP_502_BAD_GATEWAY: {"model": OperationErrorResponse, "description": "Mapping unavailable"},
    },
)
async def get_user_mapping(
    request: Request,
    username: str,
    orchestrator: UserAdminOrchestrator = Depends(get_orchestrator),
):
    """Load which directory attributes produced which profile fields of a user."""
    logger.info("Loading user mapping", username=username, method=request.method, path=request.url.path)
    result = await orchestrator.load_user_mapping(username)
    return operation_response(result)


##########################


@ROUTER_LDAP.delete("/view/mapping", summary="Clear the displayed user mapping")
async def clear_user_mapping(orchestrator: UserAdminOrchestrator = Depends(get_orchestrator)):
    """Clear the mapping and its error state together. Idempotent."""
    result = orchestrator.clear_user_mapping()
    logger.info("User mapping cleared")
    return operation_response(result)


@ROUTER_LDAP.delete("/view/error", summary="Dismiss the displayed user error")
async def clear_user_error(orchestrator: UserAdminOrchestrator = Depends(get_orchestrator)):
    """Dismiss the user error shown on the view."""
    return operation_response(orchestrator.clear_user_error())


@ROUTER_LDAP.get("/view", summary="Current view state")
async def get_view(orchestrator: UserAdminOrchestrator = Depends(get_orchestrator)):
    """Return the view state without calling any collaborator."""
    return orchestrator.snapshot()
