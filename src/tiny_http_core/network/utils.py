"""
Network utilities for tiny_http_core.

This module provides the deadline bookkeeping shared by every blocking
call of a transaction attempt, SSL context setup, and small host helpers.
"""

import socket
import ssl
import time
from typing import Callable, Optional

from ..exceptions import TimeoutError


class Deadline:
    """
    Absolute point in time by which an attempt's I/O must complete.

    The expiry is computed once, when the deadline is created. Retrying an
    interrupted call asks for the remaining time again, so the budget is
    shared by all retries instead of being restarted by each one.
    """

    def __init__(
        self,
        timeout: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the deadline.

        Args:
            timeout: Budget in seconds, starting now
            clock: Monotonic clock, replaceable for tests
        """
        self._timeout = timeout
        self._clock = clock
        self._expires_at = clock() + timeout

    @property
    def timeout(self) -> float:
        """The full budget this deadline was created with."""
        return self._timeout

    @property
    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def remaining(self) -> float:
        """
        Get the time left before the deadline.

        Returns:
            Remaining seconds, always positive

        Raises:
            TimeoutError: If the deadline has already passed
        """
        left = self._expires_at - self._clock()
        if left <= 0:
            raise TimeoutError("Deadline exceeded", timeout=self._timeout)
        return left


def create_ssl_context(verify: bool = True) -> ssl.SSLContext:
    """
    Create an SSL context for client connections.

    Args:
        verify: Whether to verify the peer certificate and hostname

    Returns:
        Configured SSL context
    """
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE

    context.options |= ssl.OP_NO_COMPRESSION
    context.minimum_version = ssl.TLSVersion.TLSv1_2

    return context


def is_ipv6_address(host: str) -> bool:
    """
    Check if a host string is an IPv6 address.

    Args:
        host: Host string to check

    Returns:
        True if the host is an IPv6 address
    """
    try:
        socket.inet_pton(socket.AF_INET6, host)
        return True
    except (OSError, ValueError):
        return False


def format_host_header(host: str, port: int, scheme: str) -> str:
    """
    Format the Host header value for a request.

    Args:
        host: Hostname or IP address
        port: Port number
        scheme: URL scheme

    Returns:
        ``host`` or ``host:port``; IPv6 literals are bracketed
    """
    if is_ipv6_address(host):
        host = f"[{host}]"
    if (scheme == "https" and port == 443) or (scheme == "http" and port == 80):
        return host
    return f"{host}:{port}"


def normalize_host(host: str) -> str:
    """
    Normalize hostname for consistent comparison.

    Args:
        host: Hostname to normalize

    Returns:
        Normalized hostname
    """
    # Remove trailing dots (common in DNS)
    return host.rstrip(".").lower()


def host_matches(host: str, pattern: str) -> bool:
    """
    Check a host against a no_proxy style entry.

    ``example.com`` and ``.example.com`` both match ``example.com`` and any
    of its subdomains.
    """
    host = normalize_host(host)
    pattern = normalize_host(pattern).lstrip(".")
    if not pattern:
        return False
    return host == pattern or host.endswith("." + pattern)


def remaining_or_none(deadline: Optional[Deadline]) -> Optional[float]:
    """Socket timeout for the next blocking call, or None to block."""
    if deadline is None:
        return None
    return deadline.remaining()
