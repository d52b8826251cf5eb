"""
Payload and envelope codec.

Two payload encodings travel over the transport:

* **typed** — a JSON document, produced from a pydantic model, a dataclass
  or any JSON-serializable value.
* **raw** — an arbitrary string, base64-encoded so it survives the
  transport as an opaque, text-safe token.

Messages delivered through a topic arrive wrapped in an SNS notification
envelope; :func:`decode_envelope` unwraps it and reduces its message
attributes to a plain ``name -> value`` map for handlers.
"""

from __future__ import annotations

import base64
import binascii
import dataclasses
import json
import re
from typing import Any

from pydantic import BaseModel, TypeAdapter

from queuejack.base.constants import STRING_DATA_TYPE
from queuejack.base.exceptions import MessageDecodeError
from queuejack.base.logger import qj_logger

_BASE64_RE = re.compile(r"^[a-zA-Z0-9+/]*={0,3}$")
_NON_ALPHA_RE = re.compile(r"[^a-zA-Z]")


# --- Typed payloads ---

def encode_typed(obj: Any) -> str:
    """JSON-serialize a typed payload."""
    if isinstance(obj, BaseModel):
        return obj.model_dump_json()
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return json.dumps(dataclasses.asdict(obj))
    return json.dumps(obj)


def decode_typed(text: str, model: Any = None) -> Any:
    """Deserialize a typed payload.

    Args:
        text: JSON document.
        model: Optional target type. Pydantic models are validated directly,
            any other type goes through a :class:`pydantic.TypeAdapter`.
            Without a model the plain JSON value is returned.
    """
    if model is None:
        return json.loads(text)
    if isinstance(model, type) and issubclass(model, BaseModel):
        return model.model_validate_json(text)
    return TypeAdapter(model).validate_json(text)


# --- Raw payloads ---

def encode_raw(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def is_base64(text: str) -> bool:
    text = text.strip()
    return len(text) % 4 == 0 and _BASE64_RE.match(text) is not None


def decode_raw(text: str) -> str:
    """Reverse :func:`encode_raw`.

    Input that is not well-formed base64 (or does not decode to UTF-8) was
    never encoded and is returned unchanged.
    """
    if not is_base64(text):
        return text
    try:
        return base64.b64decode(text.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return text


# --- Envelopes ---

def _reduce_attributes(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    attributes: dict[str, str] = {}
    for name, attr in raw.items():
        if isinstance(attr, dict) and "Value" in attr:
            attributes[name] = str(attr["Value"])
    return attributes


def decode_envelope(body: str, unwrap_topic_envelope: bool) -> tuple[str | None, dict[str, str]]:
    """Split a received body into (topic payload, attributes).

    Args:
        body: Raw SQS message body.
        unwrap_topic_envelope: The body is an SNS notification; extract
            its ``Message`` as the payload.

    Returns:
        The inner payload text (``None`` when not unwrapping) and the
        ``MessageAttributes`` of the body reduced to ``name -> value``.

    Raises:
        MessageDecodeError: *unwrap_topic_envelope* is set and the body is
            not an SNS notification.
    """
    try:
        document = json.loads(body)
    except ValueError:
        document = None

    if not unwrap_topic_envelope:
        if isinstance(document, dict):
            return None, _reduce_attributes(document.get("MessageAttributes"))
        return None, {}

    if not isinstance(document, dict) or not isinstance(document.get("Message"), str):
        raise MessageDecodeError("Message body is not a topic notification envelope")
    return document["Message"], _reduce_attributes(document.get("MessageAttributes"))


# --- Attributes ---

def sanitize_attribute(text: str) -> str:
    """Strip every character outside ``[A-Za-z]``."""
    return _NON_ALPHA_RE.sub("", text)


def build_custom_attributes(
    custom_attributes: dict[str, str] | None,
) -> dict[str, dict[str, str]]:
    """Sanitize caller attributes into the SQS / SNS wire shape.

    An attribute whose key or value is blank, before or after sanitizing,
    is dropped and never sent. When two keys sanitize to the same name the
    first one is kept.
    """
    wire: dict[str, dict[str, str]] = {}
    for key, value in (custom_attributes or {}).items():
        if not key or not key.strip() or value is None or not str(value).strip():
            continue
        clean_key = sanitize_attribute(key)
        clean_value = sanitize_attribute(str(value))
        if not clean_key or not clean_value:
            continue
        if clean_key in wire:
            qj_logger.warning(
                f"Custom attribute '{key}' collides with '{clean_key}' after sanitizing, dropped",
                operation="build_attributes",
            )
            continue
        wire[clean_key] = string_attribute(clean_value)
    return wire


def string_attribute(value: str) -> dict[str, str]:
    return {"DataType": STRING_DATA_TYPE, "StringValue": value}
