"""Custom exceptions for the acl_store package."""

from __future__ import annotations


class StoreError(Exception):
    """Base exception for all store errors."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        msg = f"Store error during '{operation}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class InvalidArgumentError(StoreError, ValueError):
    """Raised for malformed or empty input, before any backend call."""


class BackendError(StoreError):
    """Raised when the underlying driver reports a failure.

    The driver's exception is available as ``__cause__``.
    """


class InvalidStateError(StoreError):
    """Raised when a transaction is misused (double commit, mutation after commit)."""


class StoreConfigError(StoreError):
    """Raised when a store cannot be built from its configuration."""

    def __init__(self, detail: str) -> None:
        super().__init__("configure", detail)
