"""Tests for topic -> queue subscription reconciliation."""

from unittest.mock import MagicMock
import json
import pytest

from queuejack.base.exceptions import SubscriptionError, QueueError
from queuejack.base.subscription_cache import SubscriptionCache
from queuejack.base.transport import TransportBlueprint
from queuejack.provisioner import Provisioner
from queuejack.subscriptions import FilterPolicy, SubscriptionReconciler


@pytest.fixture
def svc():
    transport = MagicMock(spec=TransportBlueprint)
    transport.find_topic.return_value = "arn:t:orders"
    transport.get_queue_url.return_value = "url/billing"
    transport.get_queue_attributes.side_effect = lambda url, names: (
        {"QueueArn": "arn:q:billing"} if names == ["QueueArn"] else {}
    )
    transport.list_subscriptions_by_topic.return_value = []
    transport.subscribe.return_value = "arn:sub"
    cache = SubscriptionCache()
    inst = SubscriptionReconciler(transport, Provisioner(transport), cache)
    yield inst, transport, cache


class TestFilterPolicy:
    def test_routing_key_only(self):
        assert FilterPolicy(("created",)).to_json() == '{"routingKey": ["created"]}'

    def test_with_meta_key(self):
        policy = FilterPolicy(("created", "updated"), "eu")
        assert policy.to_json() == '{"routingKey": ["created", "updated"], "metaKey": ["eu"]}'

    @pytest.mark.parametrize("meta_key", ["", "   ", None])
    def test_blank_meta_key_omitted(self, meta_key):
        assert FilterPolicy(("a",), meta_key).to_dict() == {"routingKey": ["a"]}


class TestEnsureSubscribed:
    def test_subscribes_with_filter(self, svc):
        inst, transport, cache = svc
        inst.ensure_subscribed("orders", "billing", "created", "eu")

        transport.subscribe.assert_called_once_with("arn:t:orders", "sqs", "arn:q:billing")
        transport.set_subscription_attributes.assert_called_once_with(
            "arn:sub", "FilterPolicy", '{"routingKey": ["created"], "metaKey": ["eu"]}'
        )
        assert cache.is_subscribed("orders", "billing")

    def test_whitespace_meta_key_not_in_filter(self, svc):
        inst, transport, _ = svc
        inst.ensure_subscribed("orders", "billing", "created", "  ")
        transport.set_subscription_attributes.assert_called_once_with(
            "arn:sub", "FilterPolicy", '{"routingKey": ["created"]}'
        )

    def test_grants_topic_delivery_first(self, svc):
        inst, transport, _ = svc
        inst.ensure_subscribed("orders", "billing", "created")

        url, attributes = transport.set_queue_attributes.call_args[0]
        assert url == "url/billing"
        statement = json.loads(attributes["Policy"])["Statement"][0]
        assert statement["Condition"]["ArnEquals"]["aws:SourceArn"] == "arn:t:orders"
        names = [c[0] for c in transport.method_calls]
        assert names.index("set_queue_attributes") < names.index("subscribe")

    def test_existing_subscription_not_duplicated(self, svc):
        inst, transport, cache = svc
        transport.list_subscriptions_by_topic.return_value = [
            {"subscription_arn": "arn:sub", "protocol": "sqs", "endpoint": "arn:q:billing"},
        ]
        inst.ensure_subscribed("orders", "billing", "created")
        transport.subscribe.assert_not_called()
        assert cache.is_subscribed("orders", "billing")

    def test_cached_pair_skips_transport(self, svc):
        inst, transport, _ = svc
        inst.ensure_subscribed("orders", "billing", "created")
        transport.reset_mock()
        inst.ensure_subscribed("orders", "billing", "created")
        assert transport.method_calls == []

    @pytest.mark.parametrize("key", ["", "   ", None])
    def test_blank_key_rejected_before_transport(self, svc, key):
        inst, transport, cache = svc
        with pytest.raises(SubscriptionError):
            inst.ensure_subscribed("orders", "billing", key)
        assert transport.method_calls == []
        assert len(cache) == 0

    def test_topic_unavailable(self, svc):
        inst, transport, cache = svc
        transport.find_topic.return_value = None
        transport.create_topic.side_effect = SubscriptionError("denied")
        with pytest.raises(SubscriptionError):
            inst.ensure_subscribed("orders", "billing", "created")
        assert not cache.is_subscribed("orders", "billing")

    def test_transport_failure_not_cached(self, svc):
        inst, transport, cache = svc
        transport.subscribe.side_effect = SubscriptionError("boom")
        with pytest.raises(SubscriptionError):
            inst.ensure_subscribed("orders", "billing", "created")
        assert not cache.is_subscribed("orders", "billing")

    def test_queue_lookup_error_propagates(self, svc):
        inst, transport, _ = svc
        transport.get_queue_url.side_effect = QueueError("denied")
        with pytest.raises(QueueError):
            inst.ensure_subscribed("orders", "billing", "created")


class TestEnsureSubscribedMulti:
    def test_subscribes_with_all_keys(self, svc):
        inst, transport, _ = svc
        inst.ensure_subscribed_multi("orders", "billing", ["created", "updated"])
        transport.set_subscription_attributes.assert_called_once_with(
            "arn:sub", "FilterPolicy", '{"routingKey": ["created", "updated"]}'
        )

    def test_not_memoized(self, svc):
        inst, transport, cache = svc
        inst.ensure_subscribed_multi("orders", "billing", ["created"])
        inst.ensure_subscribed_multi("orders", "billing", ["created"])
        assert transport.list_subscriptions_by_topic.call_count == 2
        assert len(cache) == 0

    def test_empty_keys(self, svc):
        inst, transport, _ = svc
        with pytest.raises(SubscriptionError):
            inst.ensure_subscribed_multi("orders", "billing", [])
        assert transport.method_calls == []
