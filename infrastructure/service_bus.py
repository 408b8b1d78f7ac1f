# ============================================================================
# SERVICE BUS CHANNEL
# ============================================================================
# EPOCH: 1 - LAMBDA RELAY
# STATUS: Infrastructure - Azure Service Bus transactional channel
# PURPOSE: Peek-lock receive as take, complete as commit, abandon as rollback
# CREATED: 19 OCT 2026
# ============================================================================
"""
Service Bus Channel

Maps the channel transaction onto Service Bus peek-lock settlement:

    take()      receive_messages(max_message_count=1)  (message stays locked)
    commit()    complete_message()                    (removed from queue)
    rollback()  abandon_message()                     (lock released, redelivered)

Dual auth, like the rest of our Service Bus code:
    - connection string
    - managed identity (DefaultAzureCredential + fully qualified namespace)

Usage:
    channel = ServiceBusChannel(
        queue_name="relay-events",
        connection_string=os.environ["SERVICEBUS_CONNECTION_STRING"],
    )
    channel.connect()
"""

from typing import Any, Dict, Optional

from azure.identity import DefaultAzureCredential
from azure.servicebus import (
    ServiceBusClient,
    ServiceBusMessage,
    ServiceBusReceivedMessage,
    ServiceBusReceiveMode,
    ServiceBusReceiver,
)

from core.logging import ComponentType, get_logger
from core.models.delivery import ChannelEvent
from infrastructure.channel import Channel, Transaction

logger = get_logger(__name__, ComponentType.CHANNEL)


# ============================================================================
# TRANSACTION
# ============================================================================

class ServiceBusTransaction(Transaction):
    """Settles the (at most one) message received in this transaction."""

    def __init__(self, channel: "ServiceBusChannel"):
        super().__init__()
        self._channel = channel
        self.message: Optional[ServiceBusReceivedMessage] = None

    def _do_commit(self) -> None:
        if self.message is not None:
            self._channel.receiver.complete_message(self.message)
            logger.debug(f"Completed message: {self.message.message_id}")

    def _do_rollback(self) -> None:
        if self.message is not None:
            self._channel.receiver.abandon_message(self.message)
            logger.debug(f"Abandoned message: {self.message.message_id}")

    def _do_release(self) -> None:
        self.message = None


# ============================================================================
# CHANNEL
# ============================================================================

class ServiceBusChannel(Channel):
    """Transactional channel over a Service Bus queue."""

    name = "servicebus"

    def __init__(
        self,
        queue_name: str,
        connection_string: Optional[str] = None,
        fully_qualified_namespace: Optional[str] = None,
        use_managed_identity: bool = False,
        max_wait_time: float = 1.0,
        client: Optional[ServiceBusClient] = None,
    ):
        """
        Initialize channel for a specific queue.

        Args:
            queue_name: Queue to take events from
            connection_string: Service Bus connection string
            fully_qualified_namespace: Namespace for managed identity auth
            use_managed_identity: Use DefaultAzureCredential instead of a
                connection string
            max_wait_time: Seconds take() waits for a message before
                reporting the channel empty
            client: Pre-built client (tests, shared connections)
        """
        super().__init__()
        if not queue_name:
            raise ValueError("queue_name is required for ServiceBusChannel")
        if client is None and not connection_string and not fully_qualified_namespace:
            raise ValueError(
                "ServiceBusChannel needs a connection string or a fully qualified namespace"
            )

        self.queue_name = queue_name
        self.name = queue_name
        self.connection_string = connection_string
        self.fully_qualified_namespace = fully_qualified_namespace
        self.use_managed_identity = use_managed_identity
        self.max_wait_time = max_wait_time

        self._client: Optional[ServiceBusClient] = client
        self._owns_client = client is None
        self._receiver: Optional[ServiceBusReceiver] = None
        self._credential: Optional[DefaultAzureCredential] = None

    @property
    def receiver(self) -> ServiceBusReceiver:
        if self._receiver is None:
            self.connect()
        return self._receiver

    def connect(self) -> None:
        """Open the client and a peek-lock receiver."""
        if self._receiver is not None:
            return

        if self._client is None:
            if self.use_managed_identity or not self.connection_string:
                logger.info(
                    f"Channel connecting to {self.queue_name} "
                    f"(namespace={self.fully_qualified_namespace})"
                )
                self._credential = DefaultAzureCredential()
                self._client = ServiceBusClient(
                    fully_qualified_namespace=self.fully_qualified_namespace,
                    credential=self._credential,
                    retry_total=5,
                    retry_backoff_factor=0.5,
                    retry_backoff_max=60,
                    retry_mode="exponential",
                )
            else:
                logger.info(f"Channel connecting to {self.queue_name} (connection string)")
                self._client = ServiceBusClient.from_connection_string(
                    self.connection_string,
                    retry_total=5,
                    retry_backoff_factor=0.5,
                    retry_backoff_max=60,
                    retry_mode="exponential",
                )

        self._receiver = self._client.get_queue_receiver(
            queue_name=self.queue_name,
            receive_mode=ServiceBusReceiveMode.PEEK_LOCK,
            max_wait_time=self.max_wait_time,
        )
        logger.info(f"Channel connected to queue: {self.queue_name}")

    def close(self) -> None:
        """Close receiver, client and credential."""
        if self._receiver is not None:
            self._receiver.close()
            self._receiver = None

        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

        if self._credential is not None:
            self._credential.close()
            self._credential = None

        logger.info(f"Channel closed for queue: {self.queue_name}")

    def _create_transaction(self) -> Transaction:
        return ServiceBusTransaction(self)

    def _take(self, transaction: Transaction) -> Optional[ChannelEvent]:
        if transaction.message is not None:
            # One message per transaction; a second take reports empty
            return None

        messages = self.receiver.receive_messages(
            max_message_count=1,
            max_wait_time=self.max_wait_time,
        )
        if not messages:
            return None

        message = messages[0]
        transaction.message = message
        logger.debug(
            f"Received message {message.message_id} "
            f"(delivery_count={message.delivery_count})"
        )
        return ChannelEvent(
            body=message_body(message),
            headers=message_headers(message),
            message_id=message.message_id,
        )


# ============================================================================
# HELPERS
# ============================================================================

def message_body(message: ServiceBusReceivedMessage) -> bytes:
    """Raw body bytes of a received message."""
    body = message.body
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if isinstance(body, str):
        return body.encode("utf-8")
    # DATA bodies arrive as an iterable of byte sections
    return b"".join(
        section if isinstance(section, (bytes, bytearray)) else str(section).encode("utf-8")
        for section in body
    )


def message_headers(message: ServiceBusReceivedMessage) -> Dict[str, str]:
    """Application properties as a str -> str mapping."""
    headers: Dict[str, str] = {}
    for key, value in (message.application_properties or {}).items():
        if isinstance(key, bytes):
            key = key.decode("utf-8", errors="replace")
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        headers[str(key)] = str(value)
    return headers


def send_event(
    client: ServiceBusClient,
    queue_name: str,
    body: str,
    properties: Optional[Dict[str, Any]] = None,
) -> None:
    """Enqueue one text event (used by tools/send_event.py)."""
    message = ServiceBusMessage(body=body, content_type="text/plain")
    if properties:
        message.application_properties = dict(properties)

    with client.get_queue_sender(queue_name) as sender:
        sender.send_messages(message)
    logger.info(f"Event sent to {queue_name}")


__all__ = [
    "ServiceBusTransaction",
    "ServiceBusChannel",
    "message_body",
    "message_headers",
    "send_event",
]
