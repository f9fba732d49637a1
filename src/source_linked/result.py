"""Success/failure container for chaining fallible operations.

Expected failures (a missing source file, an unbound root, a failed copy)
are returned as `Fail` values instead of being raised, so a pipeline like
resolve -> check existence -> hash -> decide reads left to right and stops
at the first failure:

    result = (
        resolve_external_path(registry, link)
        .ensure(lambda p: p.exists_as_file(), lambda p: f"Source file not found: {p}")
        .bind(compute_sha256_hex)
    )

`Result` itself is abstract. Only `Ok(...)` and `Fail(...)` are valid
results; instantiating `Result` directly raises `UninitializedResultError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Never

from source_linked.exceptions import ResultUnwrapError, UninitializedResultError


if TYPE_CHECKING:
    from collections.abc import Callable


class FailureKind(StrEnum):
    """Category of an expected failure."""

    ERROR = "error"
    INVALID_PATH = "invalid_path"
    NOT_IN_MANAGED_TREE = "not_in_managed_tree"
    NO_ROOT_MATCH = "no_root_match"
    UNRESOLVABLE_LINK = "unresolvable_link"
    SOURCE_FILE_NOT_FOUND = "source_file_not_found"
    HASH_COMPUTATION_FAILED = "hash_computation_failed"
    COPY_FAILED = "copy_failed"
    INVALID_ROOT_ID = "invalid_root_id"
    LINK_NOT_FOUND = "link_not_found"
    SETTINGS_ERROR = "settings_error"


class Result[T](ABC):
    """Outcome of an operation: either `Ok(value)` or `Fail(reason)`."""

    __slots__ = ()

    def __new__(cls, *args: Any, **kwargs: Any):
        if cls is Result:
            raise UninitializedResultError
        return super().__new__(cls)

    @property
    @abstractmethod
    def is_ok(self) -> bool:
        """Whether this is a successful result."""

    @property
    def is_fail(self) -> bool:
        """Whether this is a failed result."""
        return not self.is_ok

    @property
    @abstractmethod
    def fail_reason(self) -> str | None:
        """Failure reason, None for successful results."""

    @abstractmethod
    def map[U](self, func: Callable[[T], U]) -> Result[U]:
        """Transform the success value, pass failures through unchanged."""

    @abstractmethod
    def bind[U](self, func: Callable[[T], Result[U]]) -> Result[U]:
        """Chain an operation that may itself fail."""

    def and_then[U](self, func: Callable[[T], Result[U]]) -> Result[U]:
        """Alias for `bind`."""
        return self.bind(func)

    @abstractmethod
    def tap(self, func: Callable[[T], object]) -> Result[T]:
        """Run a side effect on the success value, return self unchanged."""

    @abstractmethod
    def tap_fail(self, func: Callable[[str], object]) -> Result[T]:
        """Run a side effect on the failure reason, return self unchanged."""

    def inspect(
        self,
        ok: Callable[[T], object],
        fail: Callable[[str], object],
    ) -> Result[T]:
        """Run one of two side effects depending on the state."""
        return self.tap(ok).tap_fail(fail)

    @abstractmethod
    def ensure(
        self,
        predicate: Callable[[T], bool],
        reason: Callable[[T], str],
        kind: FailureKind = FailureKind.ERROR,
    ) -> Result[T]:
        """Turn a success into a failure when the predicate does not hold."""

    @abstractmethod
    def with_context(self, context: str) -> Result[T]:
        """Prefix the failure reason with context. No-op for successes."""

    @abstractmethod
    def match[U](self, ok: Callable[[T], U], fail: Callable[[Fail], U]) -> U:
        """Collapse the result into a single value."""

    @abstractmethod
    def unwrap(self) -> T:
        """Return the success value or raise `ResultUnwrapError`."""

    @abstractmethod
    def unwrap_or(self, default: T) -> T:
        """Return the success value or the given default."""


@dataclass(frozen=True)
class Ok[T](Result[T]):
    """Successful result carrying a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def fail_reason(self) -> None:
        return None

    def map[U](self, func: Callable[[T], U]) -> Result[U]:
        return Ok(func(self.value))

    def bind[U](self, func: Callable[[T], Result[U]]) -> Result[U]:
        return ensure_result(func(self.value))

    def tap(self, func: Callable[[T], object]) -> Result[T]:
        func(self.value)
        return self

    def tap_fail(self, func: Callable[[str], object]) -> Result[T]:
        return self

    def ensure(
        self,
        predicate: Callable[[T], bool],
        reason: Callable[[T], str],
        kind: FailureKind = FailureKind.ERROR,
    ) -> Result[T]:
        if predicate(self.value):
            return self
        return Fail(reason(self.value) or "Predicate returned false.", kind)

    def with_context(self, context: str) -> Result[T]:
        return self

    def match[U](self, ok: Callable[[T], U], fail: Callable[[Fail], U]) -> U:
        return ok(self.value)

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def __str__(self) -> str:
        return f"Ok({self.value})"


@dataclass(frozen=True)
class Fail(Result[Never]):
    """Failed result carrying a human-readable reason."""

    reason: str
    kind: FailureKind = FailureKind.ERROR

    def __post_init__(self) -> None:
        if not self.reason:
            msg = "Fail requires a non-empty reason"
            raise ValueError(msg)

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def fail_reason(self) -> str:
        return self.reason

    def map(self, func: Callable[[Any], Any]) -> Fail:
        return self

    def bind(self, func: Callable[[Any], Result[Any]]) -> Fail:
        return self

    def tap(self, func: Callable[[Any], object]) -> Fail:
        return self

    def tap_fail(self, func: Callable[[str], object]) -> Fail:
        func(self.reason)
        return self

    def ensure(
        self,
        predicate: Callable[[Any], bool],
        reason: Callable[[Any], str],
        kind: FailureKind = FailureKind.ERROR,
    ) -> Fail:
        return self

    def with_context(self, context: str) -> Fail:
        return Fail(f"{context}: {self.reason}", self.kind)

    def match[U](self, ok: Callable[[Any], U], fail: Callable[[Fail], U]) -> U:
        return fail(self)

    def unwrap(self) -> Never:
        raise ResultUnwrapError(self.reason)

    def unwrap_or[U](self, default: U) -> U:
        return default

    def __str__(self) -> str:
        return f"Fail({self.kind}: {self.reason})"


def ensure_result[T](obj: Result[T] | Any) -> Result[T]:
    """Reject anything that is not a constructed `Ok` or `Fail`."""
    if not isinstance(obj, Ok | Fail):
        raise UninitializedResultError(obj)
    return obj
