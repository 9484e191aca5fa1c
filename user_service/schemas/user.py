"""
User Service — Pydantic Request/Response Schemas
=================================================

What:  Pydantic models for the user API contract and the queue message.
How:   FastAPI serializes responses through these models (by alias), and the
       queue publisher uses the same JSON form for the message body, so a
       downstream consumer sees exactly what GET /users returns.

JSON form of a user:
    {"id": 0, "name": "Ada", "email": "ada@example.com",
     "link": "profile-pictures/ada.png", "createdAt": "0001-01-01T00:00:00Z"}
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Zero values for fields that only the store assigns. A freshly submitted
# user carries these until the downstream consumer inserts the row.
UNASSIGNED_ID = 0
UNASSIGNED_TIMESTAMP = datetime(1, 1, 1, tzinfo=timezone.utc)

CREATE_SUCCESS_MESSAGE = "User created successfully"


class UserRecord(BaseModel):
    """
    What:  One user as exposed by the API and published to the queue.
    Who:   Built by UserStore.list_users() from rows and by UserService when
           a new user is submitted.
    """
    id: int = Field(default=UNASSIGNED_ID, description="Store-assigned identifier")
    name: str = Field(description="Display name")
    email: str = Field(description="Email address")
    link: str = Field(description="Blob reference of the profile photo")
    created_at: datetime = Field(
        default=UNASSIGNED_TIMESTAMP,
        alias="createdAt",
        description="Store-assigned creation timestamp",
    )

    model_config = ConfigDict(populate_by_name=True)


class CreateUserResponse(BaseModel):
    """Returned by POST /users with HTTP 200."""
    message: str = Field(default=CREATE_SUCCESS_MESSAGE)
    profile_pic_url: str = Field(description="Blob reference of the uploaded photo")


class ErrorResponse(BaseModel):
    """
    What:  Error body for every non-2xx response produced by the service.

    Fields:
        error: Machine-readable error code (e.g., "validation_error")
        message: Fixed human-readable text; never contains the cause
        request_id: Correlation ID for finding the request in server logs
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
