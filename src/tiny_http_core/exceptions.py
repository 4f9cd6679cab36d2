"""
Custom exceptions for tiny_http_core.

This module defines the exception hierarchy used throughout
the library. Every error raised while running a transaction
derives from HTTPCoreError and is converted into a 599 response
by the client before it reaches the caller.
"""

from typing import Optional


class HTTPCoreError(Exception):
    """Base exception for all tiny_http_core errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause


class ConnectionError(HTTPCoreError):
    """Raised on DNS, connect, TLS handshake or socket I/O failures."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Connection error: {message}", cause)


class ProtocolError(HTTPCoreError):
    """Raised when the peer sends a malformed or truncated HTTP message."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Protocol error: {message}", cause)


class TimeoutError(HTTPCoreError):
    """Raised when an operation misses its deadline."""

    def __init__(self, message: str, timeout: Optional[float] = None) -> None:
        if timeout is not None:
            message = f"{message} (timeout: {timeout}s)"
        super().__init__(f"Timeout error: {message}")
        self.timeout = timeout


class SizeLimitError(HTTPCoreError):
    """Raised when a response body grows beyond the configured max_size."""

    def __init__(self, message: str, limit: Optional[int] = None) -> None:
        if limit is not None:
            message = f"{message} (max_size: {limit} bytes)"
        super().__init__(f"Size limit error: {message}")
        self.limit = limit


class RedirectLimitError(HTTPCoreError):
    """Raised when following another redirect would exceed max_redirect."""

    def __init__(self, message: str, max_redirect: Optional[int] = None) -> None:
        if max_redirect is not None:
            message = f"{message} (max_redirect: {max_redirect})"
        super().__init__(f"Redirect limit error: {message}")
        self.max_redirect = max_redirect


class RequestError(HTTPCoreError):
    """Raised when the request itself is invalid and cannot be sent."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Request error: {message}", cause)
