"""AWS (SQS + SNS) transport."""

from queuejack.aws.transport import Transport

__all__ = ["Transport"]
