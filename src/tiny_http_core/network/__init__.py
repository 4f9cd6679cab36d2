"""
Network backend components for tiny_http_core.

This module provides the blocking, deadline-bounded networking
abstractions used by a single transaction attempt.
"""

from .backend import NetworkBackend, ProxyAddress
from .stream import NetworkStream
from .sync import SocketStream, SyncNetworkBackend
from .mock import MockNetworkBackend, MockNetworkStream
from .utils import (
    Deadline,
    create_ssl_context,
    format_host_header,
    host_matches,
    is_ipv6_address,
    normalize_host,
)

__all__ = [
    "NetworkBackend",
    "NetworkStream",
    "ProxyAddress",
    "SocketStream",
    "SyncNetworkBackend",
    "MockNetworkBackend",
    "MockNetworkStream",
    "Deadline",
    "create_ssl_context",
    "format_host_header",
    "host_matches",
    "is_ipv6_address",
    "normalize_host",
]
