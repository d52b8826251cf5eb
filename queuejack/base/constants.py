"""Wire-level names shared by every Queuejack component."""

DEAD_LETTER_SUFFIX = "-dl"
FIFO_QUEUE_SUFFIX = ".fifo"

ROUTING_KEY_NAME = "routingKey"
META_KEY_NAME = "metaKey"

MAX_RECEIVE_COUNT = 3

SUBSCRIPTION_PROTOCOL = "sqs"
STRING_DATA_TYPE = "String"


def physical_queue_name(queue_name: str, fifo: bool = False) -> str:
    """Return the name the transport knows the queue by."""
    return f"{queue_name}{FIFO_QUEUE_SUFFIX}" if fifo else queue_name


def dead_letter_queue_name(queue_name: str, fifo: bool = False) -> str:
    """Return the physical name of *queue_name*'s dead-letter queue.

    The FIFO suffix is always outermost: ``orders`` -> ``orders-dl.fifo``.
    """
    return physical_queue_name(f"{queue_name}{DEAD_LETTER_SUFFIX}", fifo)


def is_dead_letter_queue(queue_name: str) -> bool:
    if queue_name.endswith(FIFO_QUEUE_SUFFIX):
        queue_name = queue_name[: -len(FIFO_QUEUE_SUFFIX)]
    return queue_name.endswith(DEAD_LETTER_SUFFIX)
