"""Result types shared by orchestrators.

``Outcome`` carries a value that was persisted together with an advisory
warning about a follow-up step that failed (e.g. a payment saved but not
allocated). ``Ok``/``Err`` model lookups that may fail without raising, such
as resolving the caller's identity.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from strata.errors import AppError

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Persisted value plus optional warning about a failed follow-up step."""

    value: T
    warning: str | None = None

    @property
    def ok(self) -> bool:
        return self.warning is None


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: AppError


Result = Union[Ok[T], Err]


def unwrap(result: "Result[T]") -> T:
    """Return the Ok value or raise the carried AppError."""
    if isinstance(result, Err):
        raise result.error
    return result.value


__all__ = ["Outcome", "Ok", "Err", "Result", "unwrap"]
