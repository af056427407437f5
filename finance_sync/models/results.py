"""
Tagged Results

Every public repository and sync operation returns one of two variants:

    Success(value=...)          the operation went through
    Failure(error=..., kind=)   it did not, and here is why

Callers branch on `result.ok` or with `isinstance` / `match`.
Store, network and validation problems are never raised past this point.
"""

from enum import Enum
from typing import Any, Generic, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why an operation failed."""
    VALIDATION = "validation"   # Rejected before any network call
    STORE = "store"             # The store or the network said no
    NOT_READY = "not_ready"     # No user yet, or collection not loaded
    SUPERSEDED = "superseded"   # A newer call of the same kind replaced this one


class Success(BaseModel, Generic[T]):
    """The operation succeeded; `value` is the canonical result."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ok: Literal[True] = True
    value: T = None


class Failure(BaseModel):
    """The operation failed; `error` is safe to show to the user."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    error: str
    kind: ErrorKind = ErrorKind.STORE
    details: list[str] = Field(default_factory=list)

    @classmethod
    def from_validation(cls, exc: ValidationError) -> "Failure":
        """Build a validation failure with one 'field: message' line per problem."""
        details = []
        for err in exc.errors():
            location = ".".join(str(part) for part in err.get("loc", ()))
            message = err.get("msg", "invalid value")
            # Custom validators raise "Value error, <message>"
            message = message.removeprefix("Value error, ")
            details.append(f"{location}: {message}" if location else message)
        summary = details[0] if details else "Validation failed"
        return cls(error=summary, kind=ErrorKind.VALIDATION, details=details)


Result = Union[Success[Any], Failure]


def success(value: Any = None) -> Success[Any]:
    return Success(value=value)


def failure(
    error: str,
    kind: ErrorKind = ErrorKind.STORE,
    details: list[str] | None = None,
) -> Failure:
    return Failure(error=error, kind=kind, details=details or [])
