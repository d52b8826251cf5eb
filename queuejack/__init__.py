"""Queuejack — reliable topic/queue messaging on AWS SQS and SNS.

Entry point for the library. Import :class:`MessageQueue` to broadcast,
enqueue and consume with dead-lettering and filtered fan-out::

    from queuejack import MessageQueue

    mq = MessageQueue({"region_name": "us-east-1"})
    mq.broadcast("orders", "created", {"id": 1})
"""

from .base import (
    TransportBlueprint,
    QueueConfig,
    OperationResult,
    SubscriptionCache,
)
from .handlers import HandlerKind
from .subscriptions import FilterPolicy
from .message_queue import MessageQueue

__all__ = [
    "TransportBlueprint",
    "QueueConfig",
    "OperationResult",
    "SubscriptionCache",
    "HandlerKind",
    "FilterPolicy",
    "MessageQueue",
]
