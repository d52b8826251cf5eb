"""Transport capability blueprint."""

from abc import ABC, abstractmethod
from typing import Any


class TransportBlueprint(ABC):
    """Abstract interface for the queue + topic transport the engine drives.

    Maps to AWS SQS (point-to-point queues) and AWS SNS (publish/subscribe
    topics).

    Terminology mapping:
        - **queue URL** → SQS ``QueueUrl``, the address used for every queue call
        - **queue ARN** → SQS ``QueueArn``, the identifier topics deliver to
        - **topic ARN** → SNS ``TopicArn``

    Every method raises a :class:`~queuejack.base.exceptions.QueuejackError`
    subclass on failure; a response carrying a 4xx/5xx status is a failure.
    """

    # --- Queue lifecycle ---

    @abstractmethod
    def create_queue(self, queue_name: str, attributes: dict[str, str] | None = None) -> str:
        """Create a queue and return its URL.

        Args:
            queue_name: Physical queue name (including any ``.fifo`` suffix).
            attributes: Queue attributes, e.g. ``{"FifoQueue": "true"}``.

        Raises:
            QueueAlreadyExistsError: A queue with that name exists with
                different attributes.
        """

    @abstractmethod
    def delete_queue(self, queue_url: str) -> None:
        """Delete a queue by its URL."""

    @abstractmethod
    def get_queue_url(self, queue_name: str) -> str:
        """Look up a queue URL by physical name.

        Raises:
            QueueNotFoundError: The queue does not exist. This is the only
                error callers may treat as a benign "absent" signal.
        """

    @abstractmethod
    def get_queue_attributes(self, queue_url: str, attribute_names: list[str]) -> dict[str, str]:
        """Return the requested queue attributes (e.g. ``QueueArn``)."""

    @abstractmethod
    def set_queue_attributes(self, queue_url: str, attributes: dict[str, str]) -> None:
        """Update queue attributes (e.g. ``RedrivePolicy``, ``Policy``)."""

    # --- Messaging ---

    @abstractmethod
    def send_message(
        self,
        queue_url: str,
        body: str,
        *,
        message_attributes: dict[str, dict[str, str]] | None = None,
        group_id: str | None = None,
        deduplication_id: str | None = None,
    ) -> str:
        """Send a message and return its message ID.

        Args:
            queue_url: Queue URL.
            body: Message body (string).
            message_attributes: Wire-shaped attributes,
                ``{name: {"DataType": "String", "StringValue": value}}``.
            group_id: FIFO message group, passed through unchanged.
            deduplication_id: FIFO deduplication ID, passed through unchanged.
        """

    @abstractmethod
    def receive_messages(
        self,
        queue_url: str,
        max_messages: int = 10,
        *,
        wait_time_seconds: int | None = None,
    ) -> list[dict[str, Any]]:
        """Receive one batch of messages with all message attributes.

        Each dict in the returned list contains:
            - ``message_id``: Provider message ID.
            - ``body``: Message body.
            - ``receipt_handle``: Handle for acknowledgement / deletion.
            - ``attributes``: Native message attributes, ``name -> value``.

        Args:
            queue_url: Queue URL.
            max_messages: Maximum number of messages to retrieve.
            wait_time_seconds: Long-poll wait; ``None`` omits the argument
                entirely (FIFO receives).
        """

    @abstractmethod
    def delete_message(self, queue_url: str, receipt_handle: str) -> None:
        """Acknowledge / delete a message after processing."""

    # --- Topics ---

    @abstractmethod
    def find_topic(self, topic_name: str) -> str | None:
        """Return the ARN of the topic named *topic_name*, or ``None``."""

    @abstractmethod
    def create_topic(self, topic_name: str) -> str:
        """Create (or fetch, if it exists) a topic and return its ARN."""

    @abstractmethod
    def delete_topic(self, topic_arn: str) -> None:
        """Delete a topic by ARN."""

    @abstractmethod
    def publish(
        self,
        topic_arn: str,
        message: str,
        *,
        message_attributes: dict[str, dict[str, str]] | None = None,
    ) -> str:
        """Publish to a topic and return the message ID."""

    # --- Subscriptions ---

    @abstractmethod
    def list_subscriptions_by_topic(self, topic_arn: str) -> list[dict[str, str]]:
        """List every subscription on a topic.

        Each dict contains ``subscription_arn``, ``protocol`` and ``endpoint``.
        """

    @abstractmethod
    def subscribe(self, topic_arn: str, protocol: str, endpoint: str) -> str:
        """Subscribe *endpoint* to a topic and return the subscription ARN."""

    @abstractmethod
    def unsubscribe(self, subscription_arn: str) -> None:
        """Remove a subscription."""

    @abstractmethod
    def set_subscription_attributes(
        self, subscription_arn: str, attribute_name: str, attribute_value: str
    ) -> None:
        """Set one subscription attribute (e.g. ``FilterPolicy``)."""

    # --- Resources ---

    @abstractmethod
    def close(self) -> None:
        """Release the underlying client handles."""
