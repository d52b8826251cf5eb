"""
Queuejack exception hierarchy.

Every transport concern has a top-level error that inherits from
:class:`QueuejackError` and specific sub-exceptions for the failure modes
the engine branches on (not-found, already-exists, undecodable bodies).
"""


# ── Base ──────────────────────────────────────────────────────────────
class QueuejackError(Exception):
    """Root exception for all Queuejack errors."""


class TransportError(QueuejackError):
    """The transport could not be reached or returned a failure status."""


# ── Queue / Messaging ────────────────────────────────────────────────
class QueueError(QueuejackError):
    """Base exception for queue operations."""


class QueueNotFoundError(QueueError):
    """Queue does not exist."""


class QueueAlreadyExistsError(QueueError):
    """Queue already exists with different attributes."""


class MessageError(QueueError):
    """Failed to send, receive, or delete a message."""


class MessageDecodeError(MessageError):
    """A received message body could not be decoded."""


# ── Topics / Subscriptions ────────────────────────────────────────────
class TopicError(QueuejackError):
    """Base exception for topic operations."""


class TopicNotFoundError(TopicError):
    """Topic does not exist."""


class SubscriptionError(QueuejackError):
    """A topic -> queue subscription could not be reconciled."""
