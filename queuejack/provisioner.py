"""
Queue and topic provisioning.

Every standard or FIFO queue is created together with a dead-letter queue
and a redrive policy that moves a message there after
:data:`~queuejack.base.constants.MAX_RECEIVE_COUNT` failed receives.
Provisioning is idempotent by name: existing queues and topics are looked
up before anything is created.
"""

from __future__ import annotations

import json
import re

from queuejack.base.constants import (
    MAX_RECEIVE_COUNT,
    SUBSCRIPTION_PROTOCOL,
    dead_letter_queue_name,
    is_dead_letter_queue,
    physical_queue_name,
)
from queuejack.base.exceptions import (
    QueuejackError,
    QueueError,
    QueueAlreadyExistsError,
    QueueNotFoundError,
)
from queuejack.base.logger import qj_logger
from queuejack.base.transport import TransportBlueprint


def redrive_policy(dead_letter_arn: str) -> str:
    return json.dumps(
        {
            "maxReceiveCount": str(MAX_RECEIVE_COUNT),
            "deadLetterTargetArn": dead_letter_arn,
        }
    )


class Provisioner:
    """Creates, looks up and deletes queues (with dead-letter pairing) and topics."""

    def __init__(self, transport: TransportBlueprint) -> None:
        self.transport = transport

    # --- Queues ---

    def _get_or_create(self, physical_name: str, fifo: bool) -> str:
        try:
            return self.transport.get_queue_url(physical_name)
        except QueueNotFoundError:
            pass
        attributes = {"FifoQueue": "true"} if fifo else {}
        try:
            return self.transport.create_queue(physical_name, attributes)
        except QueueAlreadyExistsError:
            # Created concurrently, or exists with attributes we did not pass.
            return self.transport.get_queue_url(physical_name)

    def create_queue_with_dead_letter(self, queue_name: str, fifo: bool = False) -> str | None:
        """Create *queue_name* and its dead-letter queue, wired by a redrive policy.

        Args:
            queue_name: Logical queue name (without ``.fifo``).
            fifo: Create FIFO queues.

        Returns:
            The main queue URL, or ``None`` if any transport step failed.
        """
        try:
            queue_url = self._get_or_create(physical_queue_name(queue_name, fifo), fifo)

            if not is_dead_letter_queue(queue_name):
                dead_letter_url = self._get_or_create(dead_letter_queue_name(queue_name, fifo), fifo)
                dead_letter_arn = self.queue_arn(dead_letter_url)
                if not dead_letter_arn:
                    raise QueueError(f"Cannot resolve the ARN of '{dead_letter_url}'")
                self.transport.set_queue_attributes(
                    queue_url, {"RedrivePolicy": redrive_policy(dead_letter_arn)}
                )

            qj_logger.info(
                "Queue provisioned", service="sqs", operation="create_queue", queue=queue_name
            )
            return queue_url
        except QueuejackError as e:
            qj_logger.error(
                f"Failed to provision queue: {e}",
                service="sqs",
                operation="create_queue",
                queue=queue_name,
            )
            return None

    def get_or_create_queue_url(self, queue_name: str, fifo: bool = False) -> str | None:
        """Look up *queue_name*, provisioning it when it does not exist.

        Only :class:`QueueNotFoundError` counts as "absent"; any other
        transport error propagates.
        """
        try:
            return self.transport.get_queue_url(physical_queue_name(queue_name, fifo))
        except QueueNotFoundError:
            return self.create_queue_with_dead_letter(queue_name, fifo=fifo)

    def queue_arn(self, queue_url: str) -> str | None:
        return self.transport.get_queue_attributes(queue_url, ["QueueArn"]).get("QueueArn")

    def grant_topic_delivery(self, queue_url: str, queue_arn: str, topic_arn: str) -> None:
        """Allow *topic_arn* to send to the queue, keeping existing policy statements."""
        current = self.transport.get_queue_attributes(queue_url, ["Policy"]).get("Policy")
        policy = json.loads(current) if current else {
            "Version": "2012-10-17",
            "Id": f"{queue_arn}/SQSDefaultPolicy",
            "Statement": [],
        }
        statements = policy.get("Statement", [])
        if isinstance(statements, dict):
            statements = [statements]
        for statement in statements:
            source = statement.get("Condition", {}).get("ArnEquals", {}).get("aws:SourceArn")
            if source == topic_arn:
                return
        statements.append(
            {
                "Sid": "Allow" + re.sub(r"[^A-Za-z0-9]", "", topic_arn.rsplit(":", 1)[-1]),
                "Effect": "Allow",
                "Principal": "*",
                "Action": "sqs:SendMessage",
                "Resource": queue_arn,
                "Condition": {"ArnEquals": {"aws:SourceArn": topic_arn}},
            }
        )
        policy["Statement"] = statements
        self.transport.set_queue_attributes(queue_url, {"Policy": json.dumps(policy)})

    def delete_queue_with_dead_letter(
        self, queue_name: str, topic_name: str | None = None, fifo: bool = False
    ) -> bool:
        """Delete a queue, its dead-letter queue and its topic subscription.

        The dead-letter queue goes first; for standard queues with a topic
        the topic -> queue subscription is removed before the main queue.

        Returns:
            ``True`` when every step succeeded.
        """
        try:
            if not is_dead_letter_queue(queue_name):
                try:
                    self.transport.delete_queue(
                        self.transport.get_queue_url(dead_letter_queue_name(queue_name, fifo))
                    )
                except QueueNotFoundError:
                    qj_logger.warning(
                        "Dead-letter queue already gone",
                        service="sqs",
                        operation="delete_queue",
                        queue=queue_name,
                    )

            queue_url = self.transport.get_queue_url(physical_queue_name(queue_name, fifo))

            if not fifo and topic_name:
                self._remove_subscription(topic_name, queue_url)

            self.transport.delete_queue(queue_url)
            qj_logger.info(
                "Queue deleted", service="sqs", operation="delete_queue", queue=queue_name
            )
            return True
        except QueuejackError as e:
            qj_logger.error(
                f"Failed to delete queue: {e}",
                service="sqs",
                operation="delete_queue",
                queue=queue_name,
                topic=topic_name,
            )
            return False

    def _remove_subscription(self, topic_name: str, queue_url: str) -> None:
        topic_arn = self.transport.find_topic(topic_name)
        if not topic_arn:
            return
        queue_arn = self.queue_arn(queue_url) or ""
        for subscription in self.transport.list_subscriptions_by_topic(topic_arn):
            if is_queue_subscription(subscription, queue_arn):
                self.transport.unsubscribe(subscription["subscription_arn"])
                qj_logger.info(
                    "Subscription removed",
                    service="sns",
                    operation="unsubscribe",
                    topic=topic_name,
                )
                return

    # --- Topics ---

    def get_or_create_topic_arn(self, topic_name: str) -> str | None:
        """Resolve a topic ARN, creating the topic on first reference.

        Returns:
            The topic ARN, or ``None`` if it could not be found or created.
        """
        try:
            topic_arn = self.transport.find_topic(topic_name)
            if not topic_arn:
                topic_arn = self.transport.create_topic(topic_name)
                qj_logger.info("Topic created", service="sns", operation="create_topic", topic=topic_name)
            return topic_arn
        except QueuejackError as e:
            qj_logger.error(
                f"Failed to resolve topic: {e}",
                service="sns",
                operation="create_topic",
                topic=topic_name,
            )
            return None

    def delete_topic(self, topic_name: str) -> None:
        """Delete a topic by name; a topic that does not exist is left alone."""
        topic_arn = self.transport.find_topic(topic_name)
        if not topic_arn:
            qj_logger.warning("Topic already gone", service="sns", operation="delete_topic", topic=topic_name)
            return
        self.transport.delete_topic(topic_arn)
        qj_logger.info("Topic deleted", service="sns", operation="delete_topic", topic=topic_name)


def is_queue_subscription(subscription: dict[str, str], queue_arn: str) -> bool:
    """True when *subscription* delivers to *queue_arn* over the queue protocol."""
    return (
        bool(queue_arn)
        and subscription.get("endpoint", "").lower() == queue_arn.lower()
        and subscription.get("protocol", "").lower() == SUBSCRIPTION_PROTOCOL
    )
