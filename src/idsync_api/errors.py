"""Error handling for the FastAPI application and identity sync failures."""

import pydantic
from fastapi import Request
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from loguru import logger

from idsync_api.enums import ErrorKind
from idsync_api.exceptions import IdentitySyncError
from idsync_api.models.view import OperationResult
from idsync_api.monitoring.logger import log_response_info

__all__ = [
    "ERROR_KIND_STATUS",
    "handle_broad_exceptions",
    "handle_identity_sync_errors",
    "handle_pydantic_validation_errors",
    "operation_response",
]

# HTTP status for each error kind
ERROR_KIND_STATUS = {
    ErrorKind.DIRECTORY_UNREACHABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.SYNC_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.SESSION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.MAPPING_UNAVAILABLE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.USER_SYNC_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.OPERATION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# fastapi docs on middlewares: https://fastapi.tiangolo.com/tutorial/middleware/
async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception as err:  # pylint: disable=broad-except
        error_response = {"detail": "Internal server error", "error_type": type(err).__name__}

        logger.error(
            f"Unhandled exception: {type(err).__name__}: {str(err)}",
            http_status=500,
            http_method=request.method,
            url_path=str(request.url.path),
            error_type=type(err).__name__,
            error_message=str(err),
            exc_info=True,
        )

        response = JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response,
        )
        log_response_info(response)
        return response


# fastapi docs on error handlers: https://fastapi.tiangolo.com/tutorial/handling-errors/
async def handle_pydantic_validation_errors(request: Request, exc: pydantic.ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = exc.errors()
    error_response = {
        "detail": [
            {
                "msg": error["msg"],
                "input": error["input"],
            }
            for error in errors
        ]
    }

    logger.warning(
        f"Validation error: {len(errors)} validation errors",
        http_status=422,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type="ValidationError",
        validation_errors=errors,
    )

    response = JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        content=jsonable_encoder(error_response),
    )
    log_response_info(response)

    return response


async def handle_identity_sync_errors(request: Request, exc: IdentitySyncError) -> JSONResponse:
    """
    Convert an IdentitySyncError that escaped a route into an HTTP response.

    The status code follows ERROR_KIND_STATUS:
    - DIRECTORY_UNREACHABLE -> 503 Service Unavailable
    - SYNC_FAILED, MAPPING_UNAVAILABLE, USER_SYNC_FAILED -> 502 Bad Gateway
    - SESSION_NOT_FOUND, USER_NOT_FOUND -> 404 Not Found
    - OPERATION_FAILED -> 500 Internal Server Error
    """
    http_status = ERROR_KIND_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    error_response = {
        "title": exc.title,
        "body": exc.body,
        "kind": exc.kind.value,
        "error_type": type(exc).__name__,
    }

    logger.warning(
        f"Identity sync error: {type(exc).__name__}: {exc}",
        http_status=http_status,
        http_method=request.method,
        url_path=str(request.url.path),
        error_type=type(exc).__name__,
        error_kind=exc.kind.value,
    )

    response = JSONResponse(status_code=http_status, content=error_response)
    log_response_info(response)
    return response


def operation_response(result: OperationResult) -> JSONResponse:
    """
    Render an orchestration result.

    200 with the view on success. On failure, the status mapped from the error kind and
    {title, body, kind, view}.
    """
    view = jsonable_encoder(result.view)
    if result.ok or result.error is None:
        return JSONResponse(status_code=status.HTTP_200_OK, content=view)

    return JSONResponse(
        status_code=ERROR_KIND_STATUS.get(result.error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        content={
            "title": result.error.title,
            "body": result.error.body,
            "kind": result.error.kind.value,
            "view": view,
        },
    )
