"""
MessageQueue — the public face of Queuejack.

Combines the codec, provisioner, subscription reconciler and dispatcher
behind broadcast / enqueue / dequeue / admin operations::

    from queuejack import MessageQueue

    with MessageQueue({"region_name": "eu-central-1"}) as mq:
        mq.broadcast("orders", "created", {"id": 7})
        mq.dequeue_topic("billing", "orders", "created", lambda order, key, attrs: True)

Error contract:
    * send and admin operations never raise on transport or serialization
      failure; they return a falsy :class:`OperationResult` (or ``None`` for
      :meth:`MessageQueue.create_queue_with_dead_letter`);
    * dequeue operations raise, after making sure the message in flight is
      left unacknowledged so that it redelivers.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence

from queuejack import codec
from queuejack.aws.transport import Transport
from queuejack.base.async_support import async_wrap
from queuejack.base.config import QueueConfig, validate_config
from queuejack.base.constants import META_KEY_NAME, ROUTING_KEY_NAME
from queuejack.base.exceptions import MessageError, QueueError, QueuejackError, TopicError
from queuejack.base.logger import qj_logger
from queuejack.base.results import OperationResult
from queuejack.base.subscription_cache import SubscriptionCache
from queuejack.base.transport import TransportBlueprint
from queuejack.dispatcher import Decoder, Dispatcher
from queuejack.handlers import bind_handler
from queuejack.provisioner import Provisioner
from queuejack.subscriptions import SubscriptionReconciler

Handler = Callable[..., bool]


# --- Decoders ---

def _with_native_attributes(message: dict[str, Any], attributes: dict[str, str]) -> dict[str, str]:
    return {**message.get("attributes", {}), **attributes}


def _typed_decoder(model: Any, via_topic: bool) -> Decoder:
    def decode(message: dict[str, Any]) -> tuple[Any, dict[str, str]]:
        text, attributes = codec.decode_envelope(message["body"], via_topic)
        payload = codec.decode_typed(text if via_topic else message["body"], model)
        return payload, _with_native_attributes(message, attributes)

    return decode


def _raw_decoder(via_topic: bool) -> Decoder:
    def decode(message: dict[str, Any]) -> tuple[Any, dict[str, str]]:
        text, attributes = codec.decode_envelope(message["body"], via_topic)
        payload = codec.decode_raw(text if via_topic else message["body"])
        return payload, _with_native_attributes(message, attributes)

    return decode


class MessageQueue:
    """Queue + topic messaging with dead-lettering and filtered fan-out.

    Attributes:
        config: Validated :class:`QueueConfig`.
        transport: Transport driving SQS / SNS.
        cache: Reconciled (topic, queue) pairs, cleared by :meth:`close`.
    """

    def __init__(
        self,
        config: QueueConfig | dict | None = None,
        *,
        transport: TransportBlueprint | None = None,
        cache: SubscriptionCache | None = None,
    ) -> None:
        """Validate *config* and acquire the transport clients.

        Args:
            config: Queue configuration (model, dict, or ``None`` for
                environment-only configuration).
            transport: Transport to use instead of a boto3 one built from
                *config*. It is closed together with this instance.
            cache: Subscription cache to share; a private one by default.
        """
        self.config = validate_config(config)
        self.transport = transport or Transport(self.config)
        self.cache = cache if cache is not None else SubscriptionCache()
        self.provisioner = Provisioner(self.transport)
        self.subscriptions = SubscriptionReconciler(self.transport, self.provisioner, self.cache)
        self.dispatcher = Dispatcher(self.transport, self.config.max_messages)

    def close(self) -> None:
        """Forget reconciled subscriptions and release the transport clients."""
        self.cache.clear()
        self.transport.close()

    def __enter__(self) -> MessageQueue:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # --- Sending ---

    def _best_effort(
        self,
        operation: str,
        fn: Callable[[], Any],
        *,
        queue: str | None = None,
        topic: str | None = None,
    ) -> OperationResult:
        try:
            return OperationResult.ok(fn())
        except (QueuejackError, TypeError, ValueError) as e:
            qj_logger.error(f"{operation} failed: {e}", operation=operation, queue=queue, topic=topic)
            return OperationResult.failed(e)

    def _publish(
        self,
        topic_name: str,
        key: str,
        body: str,
        custom_attributes: dict[str, str] | None,
        meta_key: str | None,
    ) -> str:
        if not key or not key.strip():
            raise ValueError("A routing key must be provided")
        topic_arn = self.provisioner.get_or_create_topic_arn(topic_name)
        if not topic_arn:
            raise TopicError(f"Cannot find or create topic '{topic_name}'")

        attributes = {ROUTING_KEY_NAME: codec.string_attribute(key)}
        if meta_key and meta_key.strip():
            attributes[META_KEY_NAME] = codec.string_attribute(meta_key)
        for name, value in codec.build_custom_attributes(custom_attributes).items():
            if name in attributes:
                qj_logger.warning(
                    f"Custom attribute '{name}' collides with a reserved name, dropped",
                    operation="broadcast",
                    topic=topic_name,
                )
                continue
            attributes[name] = value

        message_id = self.transport.publish(topic_arn, body, message_attributes=attributes)
        if not message_id:
            raise MessageError(f"Publish to '{topic_name}' returned no message ID")
        return message_id

    def _send(
        self,
        queue_name: str,
        body: str,
        custom_attributes: dict[str, str] | None,
        *,
        fifo: bool = False,
        group_id: str | None = None,
        deduplication_id: str | None = None,
    ) -> str:
        queue_url = self.provisioner.get_or_create_queue_url(queue_name, fifo)
        if not queue_url:
            raise QueueError(f"Cannot find or create queue '{queue_name}'")
        message_id = self.transport.send_message(
            queue_url,
            body,
            message_attributes=codec.build_custom_attributes(custom_attributes),
            group_id=group_id,
            deduplication_id=deduplication_id,
        )
        if not message_id:
            raise MessageError(f"Send to '{queue_name}' returned no message ID")
        return message_id

    def broadcast(
        self,
        topic_name: str,
        key: str,
        obj: Any,
        custom_attributes: dict[str, str] | None = None,
        meta_key: str | None = None,
    ) -> OperationResult:
        """Publish a typed object to every queue subscribed to *key* on the topic.

        Args:
            topic_name: Topic name; the topic is created on first use.
            key: Routing key the subscriptions filter on.
            obj: Pydantic model, dataclass or JSON-serializable value.
            custom_attributes: Extra attributes; keys and values are reduced
                to letters, blank ones are dropped.
            meta_key: Optional secondary filter value.

        Returns:
            Result holding the provider message ID on success.
        """
        return self._best_effort(
            "broadcast",
            lambda: self._publish(topic_name, key, codec.encode_typed(obj), custom_attributes, meta_key),
            topic=topic_name,
        )

    def broadcast_string(
        self,
        topic_name: str,
        key: str,
        text: str,
        custom_attributes: dict[str, str] | None = None,
        meta_key: str | None = None,
    ) -> OperationResult:
        """Publish a string (sent base64-encoded); see :meth:`broadcast`."""
        return self._best_effort(
            "broadcast",
            lambda: self._publish(topic_name, key, codec.encode_raw(text), custom_attributes, meta_key),
            topic=topic_name,
        )

    def enqueue(
        self, queue_name: str, obj: Any, custom_attributes: dict[str, str] | None = None
    ) -> OperationResult:
        """Send a typed object straight to a standard queue."""
        return self._best_effort(
            "enqueue",
            lambda: self._send(queue_name, codec.encode_typed(obj), custom_attributes),
            queue=queue_name,
        )

    def enqueue_string(
        self, queue_name: str, text: str, custom_attributes: dict[str, str] | None = None
    ) -> OperationResult:
        return self._best_effort(
            "enqueue",
            lambda: self._send(queue_name, codec.encode_raw(text), custom_attributes),
            queue=queue_name,
        )

    def enqueue_fifo(
        self,
        queue_name: str,
        group_id: str,
        deduplication_id: str,
        obj: Any,
        custom_attributes: dict[str, str] | None = None,
    ) -> OperationResult:
        """Send a typed object to a FIFO queue.

        *group_id* and *deduplication_id* reach the transport unchanged; a
        repeated deduplication ID inside the transport's deduplication
        window is accepted but not delivered twice.
        """
        return self._best_effort(
            "enqueue_fifo",
            lambda: self._send(
                queue_name,
                codec.encode_typed(obj),
                custom_attributes,
                fifo=True,
                group_id=group_id,
                deduplication_id=deduplication_id,
            ),
            queue=queue_name,
        )

    def enqueue_string_fifo(
        self,
        queue_name: str,
        group_id: str,
        deduplication_id: str,
        text: str,
        custom_attributes: dict[str, str] | None = None,
    ) -> OperationResult:
        return self._best_effort(
            "enqueue_fifo",
            lambda: self._send(
                queue_name,
                codec.encode_raw(text),
                custom_attributes,
                fifo=True,
                group_id=group_id,
                deduplication_id=deduplication_id,
            ),
            queue=queue_name,
        )

    # --- Receiving ---

    def _dispatch(self, queue_name: str, handler: Any, decode: Decoder, *, fifo: bool = False) -> str:
        queue_url = self.provisioner.get_or_create_queue_url(queue_name, fifo)
        if not queue_url:
            raise QueueError(f"Cannot find or create queue '{queue_name}'")
        wait_time_seconds = None if fifo else self.config.wait_time_seconds
        message_ids = self.dispatcher.dispatch(
            queue_url, handler, decode, wait_time_seconds=wait_time_seconds
        )
        if message_ids:
            qj_logger.info(
                f"Processed {message_ids.count(',') + 1} message(s)",
                service="sqs",
                operation="dequeue",
                queue=queue_name,
                topic=handler.topic,
            )
        return message_ids

    def dequeue(
        self,
        queue_name: str,
        handler: Handler,
        *,
        model: Any = None,
        with_origin_topic: bool = False,
    ) -> str:
        """Receive one batch of typed messages enqueued directly on a queue.

        Args:
            queue_name: Queue name; created (with dead-letter queue) if absent.
            handler: ``handler(payload, key, attributes) -> bool`` (``key``
                is ``None`` here), or ``handler(payload, topic, key,
                attributes)`` with *with_origin_topic*.
            model: Type to decode payloads into; plain JSON when omitted.
            with_origin_topic: Use the origin-topic handler shape.

        Returns:
            Comma-joined message IDs of the batch ("" if none arrived).
        """
        bound = bind_handler(handler, with_origin_topic=with_origin_topic)
        return self._dispatch(queue_name, bound, _typed_decoder(model, via_topic=False))

    def dequeue_string(
        self, queue_name: str, handler: Handler, *, with_origin_topic: bool = False
    ) -> str:
        bound = bind_handler(handler, with_origin_topic=with_origin_topic)
        return self._dispatch(queue_name, bound, _raw_decoder(via_topic=False))

    def dequeue_topic(
        self,
        queue_name: str,
        topic_name: str,
        key: str,
        handler: Handler,
        *,
        meta_key: str | None = None,
        model: Any = None,
        with_origin_topic: bool = False,
    ) -> str:
        """Receive one batch of typed broadcasts routed to *queue_name*.

        The queue is subscribed to the topic under a ``key`` (and
        ``meta_key``) filter first; this happens once per facade.
        """
        bound = bind_handler(handler, topic=topic_name, key=key, with_origin_topic=with_origin_topic)
        self.subscriptions.ensure_subscribed(topic_name, queue_name, key, meta_key)
        return self._dispatch(queue_name, bound, _typed_decoder(model, via_topic=True))

    def dequeue_string_topic(
        self,
        queue_name: str,
        topic_name: str,
        key: str,
        handler: Handler,
        *,
        meta_key: str | None = None,
        with_origin_topic: bool = False,
    ) -> str:
        bound = bind_handler(handler, topic=topic_name, key=key, with_origin_topic=with_origin_topic)
        self.subscriptions.ensure_subscribed(topic_name, queue_name, key, meta_key)
        return self._dispatch(queue_name, bound, _raw_decoder(via_topic=True))

    def dequeue_topic_multi(
        self,
        queue_name: str,
        topic_name: str,
        keys: Sequence[str],
        handler: Handler,
        *,
        meta_key: str | None = None,
        model: Any = None,
        with_origin_topic: bool = False,
    ) -> str:
        """Receive typed broadcasts matching any of *keys*.

        The handler gets the whole key list. The subscription check is not
        memoized for key lists and runs on every call.
        """
        bound = bind_handler(handler, topic=topic_name, keys=keys, with_origin_topic=with_origin_topic)
        self.subscriptions.ensure_subscribed_multi(topic_name, queue_name, keys, meta_key)
        return self._dispatch(queue_name, bound, _typed_decoder(model, via_topic=True))

    def dequeue_string_topic_multi(
        self,
        queue_name: str,
        topic_name: str,
        keys: Sequence[str],
        handler: Handler,
        *,
        meta_key: str | None = None,
        with_origin_topic: bool = False,
    ) -> str:
        bound = bind_handler(handler, topic=topic_name, keys=keys, with_origin_topic=with_origin_topic)
        self.subscriptions.ensure_subscribed_multi(topic_name, queue_name, keys, meta_key)
        return self._dispatch(queue_name, bound, _raw_decoder(via_topic=True))

    def dequeue_fifo(self, queue_name: str, handler: Handler, *, model: Any = None) -> str:
        """Receive one batch from a FIFO queue, without a long-poll wait."""
        bound = bind_handler(handler)
        return self._dispatch(queue_name, bound, _typed_decoder(model, via_topic=False), fifo=True)

    def dequeue_string_fifo(self, queue_name: str, handler: Handler) -> str:
        bound = bind_handler(handler)
        return self._dispatch(queue_name, bound, _raw_decoder(via_topic=False), fifo=True)

    # --- Administration ---

    def create_queue_with_dead_letter(self, queue_name: str, fifo: bool = False) -> str | None:
        """Create a queue with its dead-letter queue; ``None`` on failure."""
        return self.provisioner.create_queue_with_dead_letter(queue_name, fifo)

    def delete_queue_with_dead_letter(
        self, queue_name: str, topic_name: str | None = None, fifo: bool = False
    ) -> OperationResult:
        """Delete a queue, its dead-letter queue and its subscription to *topic_name*."""
        self.cache.evict(queue_name=queue_name)
        if self.provisioner.delete_queue_with_dead_letter(queue_name, topic_name, fifo):
            return OperationResult.ok()
        return OperationResult.failed()

    def ensure_queue_is_subscribed_to_topic(
        self,
        topic_name: str,
        queue_name: str,
        key: str,
        meta_key: str | None = None,
    ) -> OperationResult:
        """Subscribe a queue to a topic ahead of the first dequeue."""
        return self._best_effort(
            "ensure_subscribed",
            lambda: self.subscriptions.ensure_subscribed(topic_name, queue_name, key, meta_key),
            queue=queue_name,
            topic=topic_name,
        )

    def delete_topic(self, topic_name: str) -> OperationResult:
        self.cache.evict(topic_name=topic_name)
        return self._best_effort(
            "delete_topic", lambda: self.provisioner.delete_topic(topic_name), topic=topic_name
        )

    # --- Async twins (standard queues only) ---

    abroadcast = async_wrap(broadcast)
    abroadcast_string = async_wrap(broadcast_string)
    aenqueue = async_wrap(enqueue)
    aenqueue_string = async_wrap(enqueue_string)
    adequeue = async_wrap(dequeue)
    adequeue_string = async_wrap(dequeue_string)
    adequeue_topic = async_wrap(dequeue_topic)
    adequeue_string_topic = async_wrap(dequeue_string_topic)
    adequeue_topic_multi = async_wrap(dequeue_topic_multi)
    adequeue_string_topic_multi = async_wrap(dequeue_string_topic_multi)
    acreate_queue_with_dead_letter = async_wrap(create_queue_with_dead_letter)
    adelete_queue_with_dead_letter = async_wrap(delete_queue_with_dead_letter)
    aensure_queue_is_subscribed_to_topic = async_wrap(ensure_queue_is_subscribed_to_topic)
    adelete_topic = async_wrap(delete_topic)
