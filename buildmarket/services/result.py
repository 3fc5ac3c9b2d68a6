"""
BuildMarket Backend: Service Result Type
=========================================

What:  Explicit success/failure value returned by every service operation.
Why:   "Not found", "forbidden", "conflict" and "invalid" are expected
       outcomes of marketplace actions, not exceptional ones. Returning them
       forces each caller to decide what they mean instead of relying on a
       try/except far up the stack.
How:   Routes call `unwrap()` (routes/deps.py) to turn a failure into the
       matching BuildMarketError for the global handlers.

Unexpected infrastructure failures (DatabaseError) are still raised.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INVALID = "invalid"


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""
    context: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ServiceResult[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        error: ErrorKind,
        message: str = "",
        context: Optional[Dict[str, Any]] = None,
    ) -> "ServiceResult[T]":
        return cls(error=error, message=message, context=context)

    @classmethod
    def not_found(cls, resource: str, resource_id: Any) -> "ServiceResult[T]":
        return cls.failure(
            ErrorKind.NOT_FOUND,
            context={"resource": resource, "resource_id": str(resource_id)},
        )
