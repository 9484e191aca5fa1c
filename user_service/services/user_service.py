"""
User Service — User Orchestrator
=================================

What:  Coordinates the create and list workflows.
How:   Composes the blob uploader, the queue publisher and the user store,
       all received through the constructor.
Who:   Called by the /users route handlers.

Create Flow (POST /users):
    ┌──────────┐    ┌──────────────┐    ┌──────────────┐    ┌──────────┐
    │  Form    │───▶│  Upload      │───▶│  Publish     │───▶│  200 OK  │
    │  (Route) │    │  (Blob)      │    │  (Queue)     │    │          │
    └──────────┘    └──────────────┘    └──────────────┘    └──────────┘

    Upload fails  → UploadError, nothing is published
    Publish fails → PublishError, the uploaded blob stays where it is.
                    There is no compensation step; the orphaned blob is an
                    accepted gap.

    The row is not inserted here. The queue message is the hand-off to the
    consumer that provisions the user in the database.
"""

import logging
from typing import List

from user_service.database import UserStore
from user_service.schemas.user import CreateUserResponse, UserRecord
from user_service.services.blob_service import BlobData, BlobUploader
from user_service.services.queue_service import QueuePublisher

logger = logging.getLogger(__name__)


class UserService:
    """
    Business logic for user operations.

    Stateless apart from its collaborators, so one instance serves every
    request.
    """

    def __init__(
        self,
        store: UserStore,
        uploader: BlobUploader,
        publisher: QueuePublisher,
    ):
        self.store = store
        self.uploader = uploader
        self.publisher = publisher

    async def create_user(
        self,
        name: str,
        email: str,
        filename: str,
        photo: BlobData,
    ) -> CreateUserResponse:
        """
        Upload the photo, then publish the new user.

        Raises:
            UploadError: the photo could not be stored (nothing published)
            PublishError: the queue rejected the message (blob kept)
        """
        profile_pic_url = await self.uploader.upload(photo, filename)

        # id and created_at stay at their unassigned values
        user = UserRecord(name=name, email=email, link=profile_pic_url)

        await self.publisher.publish(user)
        logger.info("User submitted: email=%s link=%s", email, profile_pic_url)

        return CreateUserResponse(profile_pic_url=profile_pic_url)

    async def list_users(self) -> List[UserRecord]:
        """All stored users, in store order. Raises StorageQueryError."""
        return await self.store.list_users()
