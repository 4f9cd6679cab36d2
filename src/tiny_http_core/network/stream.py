"""
Network stream interface for tiny_http_core.

This module defines the NetworkStream interface that all network stream
implementations must follow for consistent behavior across the library.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from .utils import Deadline


class NetworkStream(ABC):
    """
    Interface for blocking, deadline-bounded byte streams.

    Every blocking operation accepts the Deadline of the current
    transaction attempt. Implementations must re-apply the remaining
    time before each blocking call and must never restart the budget.
    """

    @abstractmethod
    def read(self, max_bytes: int, deadline: Optional[Deadline] = None) -> bytes:
        """
        Read data from the stream.

        Args:
            max_bytes: Maximum number of bytes to read.
            deadline: Deadline of the current attempt, None blocks forever.

        Returns:
            The data read from the stream, b"" once the peer has closed.

        Raises:
            TimeoutError: If the deadline passes before data arrives.
            ConnectionError: If a network error occurs.
        """
        pass

    @abstractmethod
    def write(self, data: bytes, deadline: Optional[Deadline] = None) -> None:
        """
        Write all of ``data`` to the stream.

        Args:
            data: The data to write to the stream.
            deadline: Deadline of the current attempt, None blocks forever.

        Raises:
            TimeoutError: If the deadline passes before the data is sent.
            ConnectionError: If a network error occurs.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close the stream and release the socket or TLS session.

        Closing an already closed stream is a no-op.
        """
        pass

    @abstractmethod
    def get_extra_info(self, name: str) -> Optional[Any]:
        """
        Get extra information about the stream.

        Args:
            name: The name of the information to retrieve. Common values include:
                 - "socket": The underlying socket object
                 - "peername": The remote endpoint address
                 - "ssl_object": The SSL object when the stream is encrypted

        Returns:
            The requested information or None if not available.
        """
        pass

    @property
    @abstractmethod
    def is_closed(self) -> bool:
        """
        Check if the stream is closed.

        Returns:
            True if the stream is closed, False otherwise.
        """
        pass
