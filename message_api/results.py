"""
Outcome types returned by every MessageService operation.

The set is closed: the HTTP layer maps each variant to a status code
and treats anything else as an internal error.
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


class Result:
    """Base class for service outcomes."""


@dataclass(frozen=True)
class Success(Result, Generic[T]):
    value: T


@dataclass(frozen=True)
class Created(Result, Generic[T]):
    value: T


@dataclass(frozen=True)
class Updated(Result):
    pass


@dataclass(frozen=True)
class Deleted(Result):
    pass


@dataclass(frozen=True)
class NotFound(Result):
    message: str


@dataclass(frozen=True)
class Conflict(Result):
    message: str


@dataclass(frozen=True)
class ValidationError(Result):
    """Field name -> non-empty list of human-readable violations."""
    errors: dict[str, list[str]] = field(default_factory=dict)
