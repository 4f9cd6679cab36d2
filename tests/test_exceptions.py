"""
Unit tests for custom exceptions.

Tests the exception hierarchy to ensure proper error handling
and cause tracking.
"""

import pytest

from tiny_http_core.exceptions import (
    HTTPCoreError,
    ConnectionError,
    ProtocolError,
    TimeoutError,
    SizeLimitError,
    RedirectLimitError,
    RequestError,
)


class TestHTTPCoreError:
    """Test base HTTPCoreError class."""

    def test_basic_creation(self) -> None:
        error = HTTPCoreError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.cause is None

    def test_with_cause(self) -> None:
        original_error = ValueError("Original error")
        error = HTTPCoreError("Test error message", cause=original_error)
        assert str(error) == "Test error message"
        assert error.cause == original_error


class TestConnectionError:
    """Test ConnectionError class."""

    def test_basic_creation(self) -> None:
        error = ConnectionError("Connection failed")
        assert str(error) == "Connection error: Connection failed"
        assert error.cause is None

    def test_with_cause(self) -> None:
        original_error = OSError("Network unreachable")
        error = ConnectionError("Connection failed", cause=original_error)
        assert error.cause == original_error


class TestProtocolError:
    """Test ProtocolError class."""

    def test_basic_creation(self) -> None:
        error = ProtocolError("illegal status line")
        assert error.message == "Protocol error: illegal status line"


class TestTimeoutError:
    """Test TimeoutError class."""

    def test_basic_creation(self) -> None:
        error = TimeoutError("Request timed out")
        assert error.message == "Timeout error: Request timed out"
        assert error.timeout is None

    def test_with_timeout_value(self) -> None:
        error = TimeoutError("Request timed out", timeout=30.0)
        assert str(error) == "Timeout error: Request timed out (timeout: 30.0s)"
        assert error.timeout == 30.0


class TestSizeLimitError:
    """Test SizeLimitError class."""

    def test_with_limit(self) -> None:
        error = SizeLimitError("Response body is too large", limit=1024)
        assert str(error) == "Size limit error: Response body is too large (max_size: 1024 bytes)"
        assert error.limit == 1024


class TestRedirectLimitError:
    """Test RedirectLimitError class."""

    def test_with_max_redirect(self) -> None:
        error = RedirectLimitError("Too many redirects", max_redirect=5)
        assert str(error) == "Redirect limit error: Too many redirects (max_redirect: 5)"
        assert error.max_redirect == 5


class TestExceptionHierarchy:
    """Test exception hierarchy and inheritance."""

    @pytest.mark.parametrize(
        "exc_class",
        [ConnectionError, ProtocolError, TimeoutError, SizeLimitError,
         RedirectLimitError, RequestError],
    )
    def test_inheritance(self, exc_class) -> None:
        assert issubclass(exc_class, HTTPCoreError)

    def test_does_not_shadow_builtins_when_caught(self) -> None:
        # The library's TimeoutError and ConnectionError are not OSErrors
        assert not issubclass(TimeoutError, OSError)
        assert not issubclass(ConnectionError, OSError)

    def test_exception_raising(self) -> None:
        with pytest.raises(RequestError) as exc_info:
            raise RequestError("Invalid request method")

        assert "Request error: Invalid request method" in str(exc_info.value)
