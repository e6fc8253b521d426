####################################
# --- Request/response schemas --- #
####################################

from typing import Optional

from pydantic import BaseModel
from pydantic import Field
from pydantic import field_validator

from idsync_api.enums import ErrorKind
from idsync_api.models.view import UserDetailView


# create (Crud)
class CreateSessionRequest(BaseModel):
    """Client details of a session opened on behalf of a user."""

    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)
    device: Optional[str] = Field(default=None, max_length=128)

    @field_validator("ip_address", "user_agent", "device")
    @classmethod
    def strip_blank(cls, v):
        """Treat blank strings as missing."""
        if v is not None and not v.strip():
            return None
        return v


class OperationErrorResponse(BaseModel):
    """Body of a failed view operation."""

    title: str
    body: Optional[str] = None
    kind: ErrorKind
    view: UserDetailView


# Example payloads used in route documentation
ERROR_EXAMPLE = {
    "title": "Directory server is unreachable",
    "body": "Connection to the directory server timed out. Please try again later.",
    "kind": "DIRECTORY_UNREACHABLE",
    "view": {"view_id": "default", "status": "IDLE"},
}
