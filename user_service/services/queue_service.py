"""
User Service — Queue Publisher
===============================

What:  Announces newly submitted users on the Azure Service Bus queue
       `user-queue`.
How:   For every call: build a ServiceBusClient from the connection string,
       open a sender on the queue, serialize the user to its JSON form and
       send it as one message body with no custom properties. Client and
       sender are closed before the call returns.
Who:   Called by UserService after the profile photo has been uploaded.

The message body is the same JSON a GET /users item has, for example:
    {"id":0,"name":"Ada","email":"ada@example.com",
     "link":"profile-pictures/ada.png","createdAt":"0001-01-01T00:00:00Z"}

There is no retry and no dead-letter handling; a failure surfaces to the
caller as PublishError.
"""

import logging

from azure.core.exceptions import AzureError
from azure.servicebus import ServiceBusMessage
from azure.servicebus.aio import ServiceBusClient

from user_service.exceptions import PublishError
from user_service.schemas.user import UserRecord

logger = logging.getLogger(__name__)

USER_QUEUE = "user-queue"


class QueuePublisher:
    """Sends user records to one Service Bus queue."""

    def __init__(self, connection_string: str, queue_name: str = USER_QUEUE):
        self._connection_string = connection_string
        self.queue_name = queue_name

    async def publish(self, user: UserRecord) -> None:
        """
        Publish `user` as a single JSON message.

        Raises:
            PublishError: client construction, sender construction,
            serialization or the send failed. `context["stage"]` names
            which one.
        """
        stage = "client"
        try:
            client = ServiceBusClient.from_connection_string(self._connection_string)
            async with client:
                stage = "sender"
                sender = client.get_queue_sender(queue_name=self.queue_name)
                async with sender:
                    stage = "serialize"
                    payload = user.model_dump_json(by_alias=True)

                    stage = "send"
                    await sender.send_messages(ServiceBusMessage(payload))
        except (AzureError, OSError, ValueError, TypeError) as e:
            logger.error(
                "Service Bus %s failed for queue %s: %s", stage, self.queue_name, str(e)
            )
            raise PublishError(
                context={"stage": stage, "queue": self.queue_name, "cause": str(e)},
            ) from e

        logger.info("User data sent to Service Bus: %s", payload)
