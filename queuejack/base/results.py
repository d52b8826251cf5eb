"""Result shape for send and provisioning operations."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a best-effort operation.

    Send-style operations never raise on transport failure; they hand the
    failure back here instead. The result is truthy exactly when the
    operation succeeded, so ``if mq.enqueue(...):`` reads naturally.

    Attributes:
        succeeded: Whether every step of the operation completed.
        value: Operation output, e.g. the provider message ID.
        error: The exception that made the operation fail, if any.
    """

    succeeded: bool
    value: str | None = None
    error: Exception | None = None

    def __bool__(self) -> bool:
        return self.succeeded

    @classmethod
    def ok(cls, value: str | None = None) -> OperationResult:
        return cls(succeeded=True, value=value)

    @classmethod
    def failed(cls, error: Exception | None = None) -> OperationResult:
        return cls(succeeded=False, error=error)
