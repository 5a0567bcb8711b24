"""
Result monad — the core of Railway-Oriented Programming.

A Result[T] is either Success(value: T) or Failure(error: FailureDescription).
Expected outcomes (invalid records, missing certificates, conflicts) travel on
the failure track instead of being raised:

    ingest ──Success──▶ validate ──Success──▶ persist ──▶ Result[Submission]
       │ Failure          │ Failure             │ Failure
       └──────────────────┴─────────────────────┴───────▶ first Failure wins

Each track implements the operators itself: Success applies the function,
Failure hands itself back untouched. Both are frozen and support match/case:

    match verifier.verify(number):
        case Success(result): ...
        case Failure(error): ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from railway.failure import ErrorCode, FailureDescription

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")


class Result(ABC, Generic[T]):
    """Base of the two tracks. Build instances through the static factories."""

    __slots__ = ()

    # ──────────────────────── Factories ────────────────────────

    @staticmethod
    def success(value: T) -> Result[T]:
        return Success(value)

    @staticmethod
    def failure(
        code: ErrorCode,
        message: str,
        exception: BaseException | None = None,
        details: tuple[Any, ...] = (),
    ) -> Result[T]:
        """
        Failure from its parts.

            Result.failure(ErrorCode.CONFLICT, "Only draft submissions can be submitted")
            Result.failure(ErrorCode.VALIDATION_ERROR, "Invalid OSI data format", details=report.errors)
        """
        return Failure(FailureDescription(code=code, message=message, exception=exception, details=details))

    @staticmethod
    def failure_from(error: FailureDescription) -> Result[T]:
        """Re-emit an existing failure, e.g. after switching value types."""
        return Failure(error)

    @staticmethod
    def from_optional(
        value: T | None,
        error_message: str,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
    ) -> Result[T]:
        """A row that may be absent: None becomes NOT_FOUND unless told otherwise."""
        if value is None:
            return Result.failure(error_code, error_message)
        return Success(value)

    # ──────────────────────── Introspection ────────────────────────

    @abstractmethod
    def is_success(self) -> bool: ...

    def is_failure(self) -> bool:
        return not self.is_success()

    @abstractmethod
    def value(self) -> T:
        """Success value. Raises ValueError on a Failure; prefer match/case or .either()."""

    @abstractmethod
    def error(self) -> FailureDescription:
        """Failure description. Raises ValueError on a Success."""

    # ──────────────────────── Operators ────────────────────────

    @abstractmethod
    def either(
        self,
        on_success: Callable[[T], R],
        on_failure: Callable[[FailureDescription], R],
    ) -> R:
        """Fold both tracks into one value (used to build HTTP responses)."""

    @abstractmethod
    def map(self, mapper: Callable[[T], U]) -> Result[U]: ...

    @abstractmethod
    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        """Chain a Result-returning step. The key railway operator."""

    @abstractmethod
    def map_failure(self, mapper: Callable[[FailureDescription], FailureDescription]) -> Result[T]: ...

    def ensure(
        self,
        predicate: Callable[[T], bool],
        error: FailureDescription | ErrorCode,
        message: str = "",
    ) -> Result[T]:
        """
        Keep the success value only if `predicate` holds.

            repository.get(submission_id).ensure(
                lambda s: s.status is SubmissionStatus.DRAFT,
                ErrorCode.CONFLICT, "Only draft submissions can be submitted",
            )
        """
        failure = error if isinstance(error, FailureDescription) else FailureDescription(error, message)
        return self.flat_map(lambda v: Success(v) if predicate(v) else Failure(failure))

    @abstractmethod
    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        """Side effect (usually logging) on the success value; the Result passes through."""

    @abstractmethod
    def peek_failure(self, action: Callable[[FailureDescription], Any]) -> Result[T]: ...


@dataclass(frozen=True, slots=True, init=False)
class Success(Result[T]):
    """The success track. Never wraps None: absence is a Failure."""

    _value: T

    __match_args__ = ("_value",)

    def __init__(self, value: T) -> None:
        if value is None:
            raise TypeError("Success value must not be None")
        object.__setattr__(self, "_value", value)

    def is_success(self) -> bool:
        return True

    def value(self) -> T:
        return self._value

    def error(self) -> FailureDescription:
        raise ValueError(f"Cannot get error from a Success: {self._value!r}")

    def either(self, on_success, on_failure):
        return on_success(self._value)

    def map(self, mapper):
        return Success(mapper(self._value))

    def flat_map(self, mapper):
        return mapper(self._value)

    def map_failure(self, mapper):
        return self

    def peek(self, action):
        action(self._value)
        return self

    def peek_failure(self, action):
        return self

    def __repr__(self) -> str:
        return f"Success({self._value!r})"


@dataclass(frozen=True, slots=True, init=False, eq=False)
class Failure(Result[T]):
    """
    The failure track.

    Two failures are equal when code and message match; timestamp, exception
    and details are ignored.
    """

    _error: FailureDescription

    __match_args__ = ("_error",)

    def __init__(self, error: FailureDescription) -> None:
        if error is None:
            raise TypeError("Failure error must not be None")
        object.__setattr__(self, "_error", error)

    def is_success(self) -> bool:
        return False

    def value(self) -> T:
        raise ValueError(f"Cannot get value from a Failure: {self._error.message}")

    def error(self) -> FailureDescription:
        return self._error

    def either(self, on_success, on_failure):
        return on_failure(self._error)

    def map(self, mapper):
        return self

    def flat_map(self, mapper):
        return self

    def map_failure(self, mapper):
        return Failure(mapper(self._error))

    def peek(self, action):
        return self

    def peek_failure(self, action):
        action(self._error)
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Failure):
            return NotImplemented
        return (self._error.code, self._error.message) == (other._error.code, other._error.message)

    def __hash__(self) -> int:
        return hash((self._error.code, self._error.message))

    def __repr__(self) -> str:
        return f"Failure({self._error.code.value}: {self._error.message!r})"
