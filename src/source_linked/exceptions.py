"""Exceptions for programming errors around result handling."""

from __future__ import annotations


class UninitializedResultError(TypeError):
    """Raised when something that is not a constructed Ok/Fail is used as a result."""

    def __init__(self, obj: object = None):
        if obj is None:
            msg = "Result is uninitialized - construct results via Ok(...) or Fail(...)"
        else:
            msg = f"Expected an Ok or Fail result, got {type(obj).__name__}"
        super().__init__(msg)


class ResultUnwrapError(RuntimeError):
    """Raised when unwrapping the value of a failed result."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Result is Fail: {reason}")
