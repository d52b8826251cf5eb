"""Tests for the payload and envelope codec."""

import json
from dataclasses import dataclass

import pytest
from pydantic import BaseModel, ValidationError

from queuejack import codec
from queuejack.base.exceptions import MessageDecodeError


class Order(BaseModel):
    id: int
    sku: str


@dataclass
class Ping:
    seq: int


class TestTyped:
    def test_encode_model(self):
        assert json.loads(codec.encode_typed(Order(id=1, sku="A"))) == {"id": 1, "sku": "A"}

    def test_encode_dataclass(self):
        assert json.loads(codec.encode_typed(Ping(seq=4))) == {"seq": 4}

    def test_encode_plain(self):
        assert json.loads(codec.encode_typed({"a": [1, 2]})) == {"a": [1, 2]}

    def test_encode_unserializable(self):
        with pytest.raises(TypeError):
            codec.encode_typed(object())

    def test_decode_plain(self):
        assert codec.decode_typed('{"a": 1}') == {"a": 1}

    def test_decode_model(self):
        order = codec.decode_typed('{"id": 2, "sku": "B"}', Order)
        assert order == Order(id=2, sku="B")

    def test_decode_type_adapter(self):
        assert codec.decode_typed("[1, 2, 3]", list[int]) == [1, 2, 3]
        assert codec.decode_typed('{"seq": 9}', Ping) == Ping(seq=9)

    def test_decode_invalid(self):
        with pytest.raises(ValidationError):
            codec.decode_typed('{"id": "x"}', Order)


class TestRaw:
    def test_encode(self):
        assert codec.encode_raw("hello") == "aGVsbG8="

    def test_decode(self):
        assert codec.decode_raw("aGVsbG8=") == "hello"

    def test_unicode(self):
        assert codec.decode_raw(codec.encode_raw("grüße ✓")) == "grüße ✓"

    @pytest.mark.parametrize("text", ["hello world", "abc", "not base64!"])
    def test_not_base64_passes_through(self, text):
        assert codec.decode_raw(text) == text

    def test_undecodable_bytes_pass_through(self):
        # valid base64 of bytes that are not UTF-8
        assert codec.decode_raw("//79") == "//79"

    def test_is_base64(self):
        assert codec.is_base64("aGVsbG8=")
        assert codec.is_base64("")
        assert not codec.is_base64("aGVsbG8")
        assert not codec.is_base64("a-b_")


class TestEnvelope:
    def _notification(self, message, attributes=None):
        body = {"Type": "Notification", "Message": message}
        if attributes is not None:
            body["MessageAttributes"] = attributes
        return json.dumps(body)

    def test_unwrap(self):
        body = self._notification(
            '{"id": 1}',
            {
                "routingKey": {"Type": "String", "Value": "created"},
                "tenant": {"Type": "String", "Value": "acme"},
            },
        )
        payload, attrs = codec.decode_envelope(body, True)
        assert payload == '{"id": 1}'
        assert attrs == {"routingKey": "created", "tenant": "acme"}

    def test_unwrap_without_attributes(self):
        payload, attrs = codec.decode_envelope(self._notification("aGk="), True)
        assert payload == "aGk="
        assert attrs == {}

    @pytest.mark.parametrize("body", ["not json", '"a string"', '{"id": 1}', '{"Message": 5}'])
    def test_unwrap_rejects_non_envelope(self, body):
        with pytest.raises(MessageDecodeError):
            codec.decode_envelope(body, True)

    def test_direct_body(self):
        payload, attrs = codec.decode_envelope('{"id": 1}', False)
        assert payload is None
        assert attrs == {}

    def test_direct_non_json(self):
        assert codec.decode_envelope("aGVsbG8=", False) == (None, {})


class TestAttributes:
    def test_sanitize(self):
        assert codec.sanitize_attribute("tenant-id_2") == "tenantid"

    def test_build(self):
        wire = codec.build_custom_attributes({"tenant id": "acme-1", "region": "eu"})
        assert wire == {
            "tenantid": {"DataType": "String", "StringValue": "acme"},
            "region": {"DataType": "String", "StringValue": "eu"},
        }

    def test_blank_dropped(self):
        wire = codec.build_custom_attributes({"": "x", "a": " ", "b": None, "123": "x", "c": "42"})
        assert wire == {}

    def test_colliding_keys_keep_first(self):
        wire = codec.build_custom_attributes({"a1": "first", "a2": "second"})
        assert wire == {"a": {"DataType": "String", "StringValue": "first"}}

    def test_none(self):
        assert codec.build_custom_attributes(None) == {}
