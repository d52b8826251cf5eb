"""AWS SQS + SNS implementation of the transport blueprint."""

from __future__ import annotations

from typing import Any, Callable, NoReturn

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from queuejack.base.transport import TransportBlueprint
from queuejack.base.exceptions import (
    QueuejackError,
    TransportError,
    QueueError,
    QueueNotFoundError,
    QueueAlreadyExistsError,
    MessageError,
    TopicError,
    TopicNotFoundError,
    SubscriptionError,
)
from queuejack.base.config import QueueConfig
from queuejack.base.retry import retry

_ERROR_MAP: dict[str, type[QueuejackError]] = {
    "AWS.SimpleQueueService.NonExistentQueue": QueueNotFoundError,
    "QueueDoesNotExist": QueueNotFoundError,
    "QueueAlreadyExists": QueueAlreadyExistsError,
    "QueueNameExists": QueueAlreadyExistsError,
    "NotFound": TopicNotFoundError,
}


def _handle(e: ClientError, msg: str, default: type[QueuejackError]) -> NoReturn:
    exc = _ERROR_MAP.get(e.response["Error"]["Code"])
    raise (exc or default)(msg) from e


def _ensure_success(resp: Any, msg: str) -> None:
    """Raise when a response carries a 4xx/5xx status code."""
    if not isinstance(resp, dict):
        return
    status = resp.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if isinstance(status, int) and status >= 400:
        raise TransportError(f"{msg} (HTTP {status})")


@retry()
def _call(fn: Callable[..., Any], **params: Any) -> Any:
    return fn(**params)


class Transport(TransportBlueprint):
    """AWS SQS / SNS transport.

    Attributes:
        sqs: boto3 SQS client.
        sns: boto3 SNS client.
    """

    def __init__(self, config: QueueConfig) -> None:
        """Create the SQS and SNS clients.

        Args:
            config: Validated queue configuration. ``endpoint_url`` points
                both clients at an emulator when set.
        """
        client_kwargs: dict[str, Any] = {
            "aws_access_key_id": config.aws_access_key_id,
            "aws_secret_access_key": config.aws_secret_access_key,
            "aws_session_token": config.aws_session_token,
            "region_name": config.region_name,
            "endpoint_url": config.endpoint_url,
        }
        self.sqs = boto3.client("sqs", **client_kwargs)
        self.sns = boto3.client("sns", **client_kwargs)

    def _invoke(
        self,
        fn: Callable[..., Any],
        msg: str,
        default: type[QueuejackError],
        **params: Any,
    ) -> Any:
        try:
            resp = _call(fn, **params)
        except ClientError as e:
            _handle(e, msg, default)
        except BotoCoreError as e:
            raise TransportError(msg) from e
        _ensure_success(resp, msg)
        return resp

    # --- Queue lifecycle ---

    def create_queue(self, queue_name: str, attributes: dict[str, str] | None = None) -> str:
        """Create an SQS queue.

        Returns:
            Queue URL.
        """
        resp = self._invoke(
            self.sqs.create_queue,
            f"Failed to create queue '{queue_name}'",
            QueueError,
            QueueName=queue_name,
            Attributes=attributes or {},
        )
        return resp["QueueUrl"]  # type: ignore[no-any-return]

    def delete_queue(self, queue_url: str) -> None:
        """Delete an SQS queue.

        Raises:
            QueueNotFoundError: If the queue does not exist.
            QueueError: On any other SQS error.
        """
        self._invoke(
            self.sqs.delete_queue,
            f"Failed to delete queue '{queue_url}'",
            QueueError,
            QueueUrl=queue_url,
        )

    def get_queue_url(self, queue_name: str) -> str:
        resp = self._invoke(
            self.sqs.get_queue_url,
            f"Failed to look up queue '{queue_name}'",
            QueueError,
            QueueName=queue_name,
        )
        return resp["QueueUrl"]  # type: ignore[no-any-return]

    def get_queue_attributes(self, queue_url: str, attribute_names: list[str]) -> dict[str, str]:
        resp = self._invoke(
            self.sqs.get_queue_attributes,
            f"Failed to read attributes of '{queue_url}'",
            QueueError,
            QueueUrl=queue_url,
            AttributeNames=attribute_names,
        )
        return resp.get("Attributes", {})  # type: ignore[no-any-return]

    def set_queue_attributes(self, queue_url: str, attributes: dict[str, str]) -> None:
        self._invoke(
            self.sqs.set_queue_attributes,
            f"Failed to set attributes on '{queue_url}'",
            QueueError,
            QueueUrl=queue_url,
            Attributes=attributes,
        )

    # --- Messaging ---

    def send_message(
        self,
        queue_url: str,
        body: str,
        *,
        message_attributes: dict[str, dict[str, str]] | None = None,
        group_id: str | None = None,
        deduplication_id: str | None = None,
    ) -> str:
        """Send a message to an SQS queue.

        Returns:
            SQS-assigned message ID.

        Raises:
            MessageError: If the send fails.
        """
        params: dict[str, Any] = {"QueueUrl": queue_url, "MessageBody": body}
        if message_attributes:
            params["MessageAttributes"] = message_attributes
        if group_id is not None:
            params["MessageGroupId"] = group_id
        if deduplication_id is not None:
            params["MessageDeduplicationId"] = deduplication_id
        resp = self._invoke(
            self.sqs.send_message,
            f"Failed to send message to '{queue_url}'",
            MessageError,
            **params,
        )
        return resp.get("MessageId", "")  # type: ignore[no-any-return]

    def receive_messages(
        self,
        queue_url: str,
        max_messages: int = 10,
        *,
        wait_time_seconds: int | None = None,
    ) -> list[dict[str, Any]]:
        """Receive one batch from an SQS queue.

        Args:
            queue_url: Queue URL.
            max_messages: Max messages to receive (capped at 10 by SQS).
            wait_time_seconds: Long-poll wait, omitted when ``None``.

        Returns:
            List of dicts with ``message_id``, ``body``, ``receipt_handle``
            and ``attributes``.

        Raises:
            MessageError: If the receive fails.
        """
        params: dict[str, Any] = {
            "QueueUrl": queue_url,
            "MaxNumberOfMessages": min(max_messages, 10),
            "MessageAttributeNames": ["All"],
        }
        if wait_time_seconds is not None:
            params["WaitTimeSeconds"] = wait_time_seconds
        resp = self._invoke(
            self.sqs.receive_message,
            f"Failed to receive messages from '{queue_url}'",
            MessageError,
            **params,
        )
        return [
            {
                "message_id": m["MessageId"],
                "body": m["Body"],
                "receipt_handle": m["ReceiptHandle"],
                "attributes": {
                    name: value["StringValue"]
                    for name, value in m.get("MessageAttributes", {}).items()
                    if "StringValue" in value
                },
            }
            for m in resp.get("Messages", [])
        ]

    def delete_message(self, queue_url: str, receipt_handle: str) -> None:
        """Delete (acknowledge) a message from an SQS queue.

        Raises:
            MessageError: If the delete fails.
        """
        self._invoke(
            self.sqs.delete_message,
            f"Failed to delete message from '{queue_url}'",
            MessageError,
            QueueUrl=queue_url,
            ReceiptHandle=receipt_handle,
        )

    # --- Topics ---

    def find_topic(self, topic_name: str) -> str | None:
        """Scan every page of ``ListTopics`` for an ARN ending in ``:<topic_name>``."""
        params: dict[str, Any] = {}
        while True:
            resp = self._invoke(
                self.sns.list_topics, "Failed to list topics", TopicError, **params
            )
            for topic in resp.get("Topics", []):
                arn = topic["TopicArn"]
                if arn.rsplit(":", 1)[-1] == topic_name:
                    return arn  # type: ignore[no-any-return]
            token = resp.get("NextToken")
            if not token:
                return None
            params["NextToken"] = token

    def create_topic(self, topic_name: str) -> str:
        resp = self._invoke(
            self.sns.create_topic,
            f"Failed to create topic '{topic_name}'",
            TopicError,
            Name=topic_name,
        )
        return resp["TopicArn"]  # type: ignore[no-any-return]

    def delete_topic(self, topic_arn: str) -> None:
        self._invoke(
            self.sns.delete_topic,
            f"Failed to delete topic '{topic_arn}'",
            TopicError,
            TopicArn=topic_arn,
        )

    def publish(
        self,
        topic_arn: str,
        message: str,
        *,
        message_attributes: dict[str, dict[str, str]] | None = None,
    ) -> str:
        params: dict[str, Any] = {"TopicArn": topic_arn, "Message": message}
        if message_attributes:
            params["MessageAttributes"] = message_attributes
        resp = self._invoke(
            self.sns.publish,
            f"Failed to publish to '{topic_arn}'",
            MessageError,
            **params,
        )
        return resp.get("MessageId", "")  # type: ignore[no-any-return]

    # --- Subscriptions ---

    def list_subscriptions_by_topic(self, topic_arn: str) -> list[dict[str, str]]:
        subscriptions: list[dict[str, str]] = []
        params: dict[str, Any] = {"TopicArn": topic_arn}
        while True:
            resp = self._invoke(
                self.sns.list_subscriptions_by_topic,
                f"Failed to list subscriptions of '{topic_arn}'",
                SubscriptionError,
                **params,
            )
            subscriptions.extend(
                {
                    "subscription_arn": s.get("SubscriptionArn", ""),
                    "protocol": s.get("Protocol", ""),
                    "endpoint": s.get("Endpoint", ""),
                }
                for s in resp.get("Subscriptions", [])
            )
            token = resp.get("NextToken")
            if not token:
                return subscriptions
            params["NextToken"] = token

    def subscribe(self, topic_arn: str, protocol: str, endpoint: str) -> str:
        resp = self._invoke(
            self.sns.subscribe,
            f"Failed to subscribe '{endpoint}' to '{topic_arn}'",
            SubscriptionError,
            TopicArn=topic_arn,
            Protocol=protocol,
            Endpoint=endpoint,
            ReturnSubscriptionArn=True,
        )
        return resp["SubscriptionArn"]  # type: ignore[no-any-return]

    def unsubscribe(self, subscription_arn: str) -> None:
        self._invoke(
            self.sns.unsubscribe,
            f"Failed to remove subscription '{subscription_arn}'",
            SubscriptionError,
            SubscriptionArn=subscription_arn,
        )

    def set_subscription_attributes(
        self, subscription_arn: str, attribute_name: str, attribute_value: str
    ) -> None:
        self._invoke(
            self.sns.set_subscription_attributes,
            f"Failed to set {attribute_name} on '{subscription_arn}'",
            SubscriptionError,
            SubscriptionArn=subscription_arn,
            AttributeName=attribute_name,
            AttributeValue=attribute_value,
        )

    # --- Resources ---

    def close(self) -> None:
        self.sqs.close()
        self.sns.close()
