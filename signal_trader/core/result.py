"""
Value-or-error return type used by the provider clients and the publisher.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .exceptions import SignalTraderError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a call to an external collaborator.

    Exactly one of ``value`` / ``error`` is meaningful: check ``success``
    first. ``unwrap()`` re-raises the carried error for callers that prefer
    exceptions.
    """

    value: Optional[T] = None
    error: Optional[SignalTraderError] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: SignalTraderError) -> "Result[T]":
        return cls(error=error)

    @property
    def success(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value

    def __repr__(self):
        if self.success:
            return f"Result.ok({self.value!r})"
        return f"Result.fail({self.error!r})"
