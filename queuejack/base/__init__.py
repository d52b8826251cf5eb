"""Transport blueprint and core utilities.

The engine talks to its transport only through
:class:`TransportBlueprint`. Import it to type-hint your own code or to
plug in a custom transport.
"""

from .transport import TransportBlueprint
from .config import QueueConfig, validate_config
from .results import OperationResult
from .subscription_cache import SubscriptionCache


__all__ = [
    "TransportBlueprint",
    "QueueConfig",
    "validate_config",
    "OperationResult",
    "SubscriptionCache",
]
