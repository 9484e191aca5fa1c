"""
User Service — Blob Upload Service
===================================

What:  Streams profile photos to Azure Blob Storage.
How:   A BlobServiceClient is built from the configured connection string for
       each upload, the bytes are streamed to the fixed `profile-pictures`
       container under the client-supplied filename, and the reference
       `profile-pictures/<filename>` is returned.
Who:   Called by UserService as the first external step of POST /users.

Known Defect (kept on purpose):
    Every blob is tagged with metadata ContentType=image/jpeg, whatever the
    uploaded file really is. Consumers must not trust that tag.

Not done here:
    - No validation of size, extension or content type
    - No retry on transient transfer failures
    - No timeout on the transfer
"""

import logging
from typing import IO, AsyncIterable, Iterable, Union

from azure.core.exceptions import AzureError
from azure.storage.blob.aio import BlobServiceClient

from user_service.exceptions import UploadError

logger = logging.getLogger(__name__)

PROFILE_CONTAINER = "profile-pictures"

# Applied to every upload regardless of the real file type (see module doc)
IMAGE_CONTENT_TYPE = "image/jpeg"

BlobData = Union[bytes, IO[bytes], Iterable[bytes], AsyncIterable[bytes]]


class BlobUploader:
    """
    Uploads files into one blob container.

    Clients are opened and closed per call; nothing is cached between
    uploads.
    """

    def __init__(self, connection_string: str, container: str = PROFILE_CONTAINER):
        self._connection_string = connection_string
        self.container = container

    def reference_for(self, filename: str) -> str:
        """Reference string handed back to clients and stored as User.link."""
        return f"{self.container}/{filename}"

    async def upload(self, data: BlobData, filename: str) -> str:
        """
        Stream `data` to `<container>/<filename>`, replacing any existing blob.

        Args:
            data: Readable byte stream (e.g., the spooled upload file)
            filename: Blob name, taken verbatim from the multipart part

        Returns:
            The blob reference string.

        Raises:
            UploadError: the client could not be built from the connection
            string, or the transfer failed. The cause is chained.
        """
        stage = "client"
        try:
            service_client = BlobServiceClient.from_connection_string(
                self._connection_string
            )
            async with service_client:
                stage = "upload"
                blob_client = service_client.get_blob_client(
                    container=self.container, blob=filename
                )
                await blob_client.upload_blob(
                    data,
                    overwrite=True,
                    metadata={"ContentType": IMAGE_CONTENT_TYPE},
                )
        except (AzureError, OSError, ValueError) as e:
            # ValueError: blank or malformed connection string, empty blob name
            logger.error(
                "Blob %s failed for %s/%s: %s", stage, self.container, filename, str(e)
            )
            raise UploadError(
                context={
                    "stage": stage,
                    "container": self.container,
                    "blob": filename,
                    "cause": str(e),
                },
            ) from e

        reference = self.reference_for(filename)
        logger.info("Uploaded profile photo to %s", reference)
        return reference
