"""
Receive -> decode -> handle -> acknowledge.

One dispatch issues exactly one batched receive and walks the batch in
receive order. Each message is settled on its own:

* handler returned ``True`` → the message is deleted;
* handler returned ``False`` → nothing is done; the message reappears once
  the queue's visibility timeout lapses, until the redrive policy moves it
  to the dead-letter queue;
* decoding or the handler raised → the message is left as for ``False``
  and the exception propagates to the caller. Messages later in the batch
  are not processed and redeliver the same way.
"""

from __future__ import annotations

from typing import Any, Callable

from queuejack.base.logger import qj_logger
from queuejack.base.transport import TransportBlueprint
from queuejack.handlers import BoundHandler

Decoder = Callable[[dict[str, Any]], tuple[Any, dict[str, str]]]


class AckController:
    """Turns a handler outcome into delete-or-abstain."""

    def __init__(self, transport: TransportBlueprint) -> None:
        self.transport = transport

    def resolve(self, queue_url: str, message: dict[str, Any], succeeded: bool) -> None:
        if succeeded:
            self.transport.delete_message(queue_url, message["receipt_handle"])
            qj_logger.debug(
                "Message acknowledged",
                service="sqs",
                operation="delete_message",
                message_id=message["message_id"],
            )
        else:
            # Left for redelivery after the visibility timeout.
            qj_logger.info(
                "Message left for redelivery",
                service="sqs",
                operation="abstain",
                message_id=message["message_id"],
            )


class Dispatcher:
    """Runs one receive batch through a bound handler."""

    def __init__(self, transport: TransportBlueprint, max_messages: int = 10) -> None:
        self.transport = transport
        self.max_messages = max_messages
        self.acks = AckController(transport)

    def dispatch(
        self,
        queue_url: str,
        handler: BoundHandler,
        decode: Decoder,
        *,
        wait_time_seconds: int | None = None,
    ) -> str:
        """Receive one batch from *queue_url* and settle every message.

        Args:
            queue_url: Queue to receive from.
            handler: Bound caller handler.
            decode: Turns a received message into ``(payload, attributes)``.
            wait_time_seconds: Long-poll wait; ``None`` for FIFO queues.

        Returns:
            Comma-joined provider message IDs of the batch, ``""`` when the
            receive came back empty.
        """
        messages = self.transport.receive_messages(
            queue_url, self.max_messages, wait_time_seconds=wait_time_seconds
        )
        message_ids: list[str] = []
        for message in messages:
            message_ids.append(message["message_id"])
            try:
                payload, attributes = decode(message)
                succeeded = handler(payload, attributes)
            except Exception:
                self.acks.resolve(queue_url, message, succeeded=False)
                qj_logger.error(
                    "Message processing failed",
                    service="sqs",
                    operation="dispatch",
                    topic=handler.topic,
                    message_id=message["message_id"],
                    exc_info=True,
                )
                raise
            self.acks.resolve(queue_url, message, succeeded)
        return ",".join(message_ids)
