"""
Message handler shapes.

A handler returns ``True`` to acknowledge (delete) a message and ``False``
to leave it on the queue for redelivery. Four call shapes exist; which one
applies is decided by the dequeue operation the caller picked, never by
inspecting the callable:

- ``SINGLE_KEY`` → ``fn(payload, key, attributes)``
- ``MULTI_KEY`` → ``fn(payload, keys, attributes)``
- ``SINGLE_KEY_WITH_ORIGIN_TOPIC`` → ``fn(payload, topic, key, attributes)``
- ``MULTI_KEY_WITH_ORIGIN_TOPIC`` → ``fn(payload, topic, keys, attributes)``

``key`` and ``topic`` are ``None`` for messages dequeued directly from a
queue rather than through a topic.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Sequence


class HandlerKind(enum.Enum):
    SINGLE_KEY = "single_key"
    MULTI_KEY = "multi_key"
    SINGLE_KEY_WITH_ORIGIN_TOPIC = "single_key_with_origin_topic"
    MULTI_KEY_WITH_ORIGIN_TOPIC = "multi_key_with_origin_topic"

    @classmethod
    def select(cls, *, multi_key: bool, with_origin_topic: bool) -> HandlerKind:
        if multi_key:
            return cls.MULTI_KEY_WITH_ORIGIN_TOPIC if with_origin_topic else cls.MULTI_KEY
        return cls.SINGLE_KEY_WITH_ORIGIN_TOPIC if with_origin_topic else cls.SINGLE_KEY


@dataclass(frozen=True)
class BoundHandler:
    """A caller handler bound to the topic and routing key(s) of one dequeue call."""

    kind: HandlerKind
    fn: Callable[..., Any]
    topic: str | None = None
    key: str | None = None
    keys: Sequence[str] = ()

    def __call__(self, payload: Any, attributes: dict[str, str]) -> bool:
        if self.kind is HandlerKind.SINGLE_KEY:
            result = self.fn(payload, self.key, attributes)
        elif self.kind is HandlerKind.MULTI_KEY:
            result = self.fn(payload, list(self.keys), attributes)
        elif self.kind is HandlerKind.SINGLE_KEY_WITH_ORIGIN_TOPIC:
            result = self.fn(payload, self.topic, self.key, attributes)
        elif self.kind is HandlerKind.MULTI_KEY_WITH_ORIGIN_TOPIC:
            result = self.fn(payload, self.topic, list(self.keys), attributes)
        else:
            return False
        return bool(result)


def bind_handler(
    fn: Callable[..., Any],
    *,
    topic: str | None = None,
    key: str | None = None,
    keys: Sequence[str] | None = None,
    with_origin_topic: bool = False,
) -> BoundHandler:
    """Bind *fn* for a dequeue call; passing *keys* selects a multi-key kind."""
    if fn is None:
        raise TypeError("handler must not be None")
    kind = HandlerKind.select(multi_key=keys is not None, with_origin_topic=with_origin_topic)
    return BoundHandler(kind=kind, fn=fn, topic=topic, key=key, keys=tuple(keys or ()))
