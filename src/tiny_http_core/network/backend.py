"""
Network backend interface for tiny_http_core.

This module defines the NetworkBackend interface used to open the
connection of a single transaction attempt, either directly to the
target or to a plain HTTP proxy.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from ..exceptions import ConnectionError
from .stream import NetworkStream
from .utils import Deadline

logger = logging.getLogger(__name__)

# (host, port) of a plain HTTP proxy
ProxyAddress = Tuple[str, int]


class NetworkBackend(ABC):
    """
    Interface for network backend implementations.

    Subclasses provide the TCP and TLS primitives; the routing between
    a direct connection, a TLS connection and a proxied connection is
    shared by all backends in connect().
    """

    @abstractmethod
    def connect_tcp(
        self,
        host: str,
        port: int,
        deadline: Optional[Deadline] = None,
    ) -> NetworkStream:
        """
        Connect to a TCP endpoint.

        Args:
            host: The hostname or IP address to connect to.
            port: The port number to connect to.
            deadline: Deadline of the current attempt.

        Returns:
            A NetworkStream representing the TCP connection.

        Raises:
            ConnectionError: If name resolution or the connection fails.
            TimeoutError: If the deadline passes while connecting.
        """
        pass

    @abstractmethod
    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        deadline: Optional[Deadline] = None,
    ) -> NetworkStream:
        """
        Upgrade a TCP stream to TLS.

        Args:
            stream: The existing TCP NetworkStream to upgrade.
            host: The hostname for SNI and certificate verification.
            deadline: Deadline of the current attempt.

        Returns:
            A NetworkStream representing the TLS connection.

        Raises:
            ConnectionError: If the TLS handshake fails.
            TimeoutError: If the deadline passes during the handshake.
        """
        pass

    def connect(
        self,
        host: str,
        port: int,
        secure: bool,
        proxy: Optional[ProxyAddress] = None,
        deadline: Optional[Deadline] = None,
    ) -> NetworkStream:
        """
        Open the connection for one transaction attempt.

        Plain requests go to the proxy endpoint when a proxy is given.
        Secure requests are only supported directly: the TCP stream to the
        target is wrapped in TLS. Asking for a secure connection through a
        proxy fails before any socket is opened.

        Args:
            host: Target host.
            port: Target port.
            secure: Whether the target URL is https.
            proxy: Optional (host, port) of a plain HTTP proxy.
            deadline: Deadline of the current attempt.

        Returns:
            A connected NetworkStream.
        """
        if secure and proxy is not None:
            raise ConnectionError("HTTPS via proxy is not supported")

        if proxy is not None:
            logger.debug(f"Connecting to {host}:{port} via proxy {proxy[0]}:{proxy[1]}")
            return self.connect_tcp(proxy[0], proxy[1], deadline)

        logger.debug(f"Connecting to {host}:{port} (tls={secure})")
        stream = self.connect_tcp(host, port, deadline)
        if not secure:
            return stream

        try:
            return self.connect_tls(stream, host, deadline)
        except BaseException:
            stream.close()
            raise
