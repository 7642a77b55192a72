"""Foreman API error types."""

from __future__ import annotations


class ForemanError(Exception):
    """Base exception for Foreman API errors."""


class RequestConstructionError(ForemanError):
    """Raised when a request cannot be built (bad endpoint or payload)."""


class TransportError(ForemanError):
    """Raised on network failures and non-2xx responses."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DecodeError(ForemanError):
    """Raised when a response body does not match the expected shape."""


class DomainError(ForemanError):
    """Raised when a well-formed response violates the caller's contract."""


class NotFoundError(DomainError):
    """Raised when the requested object does not exist on the Foreman server."""

    def __init__(self, endpoint: str) -> None:
        super().__init__(f"Not found: {endpoint}")
        self.endpoint = endpoint
