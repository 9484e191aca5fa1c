"""
User Service — User Route Handlers
===================================

What:  POST /users (create) and GET /users (list).
How:   Handlers stay thin: they pull data out of the request, call
       UserService and let the global exception handlers in main.py turn
       service errors into 400/500 responses.

Request Flow (POST /users):
    1. Client sends multipart/form-data with `name`, `email` and `photo`
    2. The form is parsed; a missing or non-file `photo` part → 400
    3. UserService uploads the photo, then publishes the user
    4. Return 200 with the fixed success message and the blob reference
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException

from user_service.exceptions import ValidationError
from user_service.schemas.user import CreateUserResponse, ErrorResponse, UserRecord
from user_service.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])

# Documents the multipart body; the form is read manually so that a bad
# `photo` part yields 400 rather than FastAPI's 422.
_CREATE_USER_BODY = {
    "requestBody": {
        "required": True,
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "email": {"type": "string"},
                        "photo": {"type": "string", "format": "binary"},
                    },
                    "required": ["photo"],
                }
            }
        },
    }
}


def get_user_service(request: Request) -> UserService:
    """The UserService built by create_app()."""
    return request.app.state.user_service


def _text_field(form: FormData, key: str) -> str:
    # Absent fields and file parts read as empty text
    value = form.get(key)
    return value if isinstance(value, str) else ""


@router.post(
    "/users",
    response_model=CreateUserResponse,
    responses={
        200: {"description": "User submitted", "model": CreateUserResponse},
        400: {"description": "Missing or invalid photo", "model": ErrorResponse},
        500: {"description": "Upload or publish failed", "model": ErrorResponse},
    },
    summary="Create a user",
    description=(
        "Uploads the profile photo to blob storage and publishes the new user "
        "to the user queue. The database row is created by the queue consumer."
    ),
    openapi_extra=_CREATE_USER_BODY,
)
async def create_user(
    request: Request,
    service: UserService = Depends(get_user_service),
) -> CreateUserResponse:
    """
    Create a user from a multipart form.

    Error responses (handled by global exception handlers):
        HTTP 400: `photo` missing, not a file, or body not parseable
        HTTP 500: upload failed (UploadError) or publish failed (PublishError)
    """
    # What: Parse the form by hand instead of declaring Form/File parameters
    # Why: FastAPI answers a missing or wrong-typed parameter with 422, while
    #      a bad photo must be a 400 with the service error envelope
    try:
        async with request.form() as form:
            photo = form.get("photo")
            if not isinstance(photo, UploadFile) or not photo.filename:
                raise ValidationError(field="photo")

            name = _text_field(form, "name")
            email = _text_field(form, "email")

            logger.info(
                "Received create request: filename=%s, size=%s bytes",
                photo.filename,
                photo.size,
            )

            return await service.create_user(
                name=name,
                email=email,
                filename=photo.filename,
                photo=photo.file,
            )

    except HTTPException as e:
        # Starlette signals an unparseable multipart body this way
        raise ValidationError(field="photo", context={"reason": e.detail}) from e


@router.get(
    "/users",
    response_model=List[UserRecord],
    responses={
        200: {"description": "All users, in store order"},
        500: {"description": "Database error", "model": ErrorResponse},
    },
    summary="List all users",
)
async def list_users(
    service: UserService = Depends(get_user_service),
) -> List[UserRecord]:
    """Returns `[]` when the table is empty."""
    return await service.list_users()
