"""
Topic -> queue subscription reconciliation.

A queue receives broadcasts only through a subscription whose filter
policy matches the message's routing key (and meta key, when one is used).
Reconciliation creates that subscription once and never duplicates it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Sequence

from queuejack.base.constants import (
    META_KEY_NAME,
    ROUTING_KEY_NAME,
    SUBSCRIPTION_PROTOCOL,
)
from queuejack.base.exceptions import SubscriptionError
from queuejack.base.logger import qj_logger
from queuejack.base.subscription_cache import SubscriptionCache
from queuejack.base.transport import TransportBlueprint
from queuejack.provisioner import Provisioner, is_queue_subscription


@dataclass(frozen=True)
class FilterPolicy:
    """Subscription filter over the routing key and the optional meta key.

    Serializes to ``{"routingKey": [...]}`` or
    ``{"routingKey": [...], "metaKey": ["..."]}``: routing key first, every
    clause an array of literal values. Receivers rely on exactly this
    shape.
    """

    routing_keys: tuple[str, ...]
    meta_key: str | None = None

    def to_dict(self) -> dict[str, list[str]]:
        policy = {ROUTING_KEY_NAME: list(self.routing_keys)}
        # Broadcasts omit a blank meta key, so the filter must too.
        if self.meta_key and self.meta_key.strip():
            policy[META_KEY_NAME] = [self.meta_key]
        return policy

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class SubscriptionReconciler:
    """Ensures a queue is subscribed to a topic under a filter policy."""

    def __init__(
        self,
        transport: TransportBlueprint,
        provisioner: Provisioner,
        cache: SubscriptionCache,
    ) -> None:
        self.transport = transport
        self.provisioner = provisioner
        self.cache = cache

    def ensure_subscribed(
        self,
        topic_name: str,
        queue_name: str,
        routing_key: str,
        meta_key: str | None = None,
    ) -> None:
        """Subscribe *queue_name* to *topic_name* filtered on *routing_key*.

        A pair already reconciled by this instance returns immediately,
        without touching the transport.

        Raises:
            SubscriptionError: The routing key is empty, or the topic or
                queue could not be found or created.
            QueuejackError: Any transport failure while reconciling.
        """
        if self.cache.is_subscribed(topic_name, queue_name):
            return
        if not routing_key or not routing_key.strip():
            raise SubscriptionError("A routing key must be provided")
        self._reconcile(topic_name, queue_name, FilterPolicy((routing_key,), meta_key))
        self.cache.mark(topic_name, queue_name)

    def ensure_subscribed_multi(
        self,
        topic_name: str,
        queue_name: str,
        routing_keys: Sequence[str],
        meta_key: str | None = None,
    ) -> None:
        """Like :meth:`ensure_subscribed`, matching any of *routing_keys*.

        Not memoized: every call re-checks the topic's subscriptions.
        """
        if not routing_keys:
            raise SubscriptionError("At least one routing key must be provided")
        self._reconcile(topic_name, queue_name, FilterPolicy(tuple(routing_keys), meta_key))

    def _reconcile(self, topic_name: str, queue_name: str, policy: FilterPolicy) -> None:
        topic_arn = self.provisioner.get_or_create_topic_arn(topic_name)
        queue_url = self.provisioner.get_or_create_queue_url(queue_name)
        if not topic_arn:
            raise SubscriptionError(f"Cannot find or create topic '{topic_name}'")
        if not queue_url:
            raise SubscriptionError(f"Cannot find or create queue '{queue_name}'")
        queue_arn = self.provisioner.queue_arn(queue_url)
        if not queue_arn:
            raise SubscriptionError(f"Cannot resolve the ARN of queue '{queue_name}'")

        subscriptions = self.transport.list_subscriptions_by_topic(topic_arn)
        if any(is_queue_subscription(s, queue_arn) for s in subscriptions):
            return

        self.provisioner.grant_topic_delivery(queue_url, queue_arn, topic_arn)
        subscription_arn = self.transport.subscribe(topic_arn, SUBSCRIPTION_PROTOCOL, queue_arn)
        self.transport.set_subscription_attributes(subscription_arn, "FilterPolicy", policy.to_json())
        qj_logger.info(
            f"Subscribed with filter {policy.to_json()}",
            service="sns",
            operation="subscribe",
            topic=topic_name,
            queue=queue_name,
        )
