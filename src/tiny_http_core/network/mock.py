"""
Mock network implementations for testing.

This module provides mock implementations of NetworkStream and NetworkBackend
that can be used for unit testing without requiring actual network connections.
Responses are scripted per (host, port): each connection opened to an
endpoint consumes the next scripted payload.
"""

from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional, Tuple, Union

from ..exceptions import ConnectionError
from .backend import NetworkBackend
from .stream import NetworkStream
from .utils import Deadline

Script = Union[bytes, Exception]


class MockNetworkStream(NetworkStream):
    """
    Mock network stream for testing.

    This implementation simulates a network stream in memory,
    allowing tests to verify network behavior without actual I/O.
    """

    def __init__(
        self,
        data: bytes = b"",
        max_read: Optional[int] = None,
        error: Optional[Exception] = None,
    ) -> None:
        """
        Initialize the mock stream.

        Args:
            data: Data to be available for reading.
            max_read: Cap on the bytes returned by a single read.
            error: Raised by read() once ``data`` is exhausted, instead of EOF.
        """
        self._data = data
        self._position = 0
        self._max_read = max_read
        self._error = error
        self._closed = False
        self._extra_info: Dict[str, Any] = {}
        self._write_buffer: List[bytes] = []
        self.read_calls = 0

    def read(self, max_bytes: int, deadline: Optional[Deadline] = None) -> bytes:
        if self._closed:
            raise ConnectionError("Stream is closed")

        self.read_calls += 1
        if self._position >= len(self._data):
            if self._error is not None:
                raise self._error
            return b""

        if self._max_read is not None:
            max_bytes = min(max_bytes, self._max_read)
        end = min(self._position + max_bytes, len(self._data))
        result = self._data[self._position:end]
        self._position = end
        return result

    def write(self, data: bytes, deadline: Optional[Deadline] = None) -> None:
        if self._closed:
            raise ConnectionError("Stream is closed")

        self._write_buffer.append(bytes(data))

    def close(self) -> None:
        self._closed = True

    def get_extra_info(self, name: str) -> Optional[Any]:
        return self._extra_info.get(name)

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def written_data(self) -> bytes:
        """Get all data that was written to the stream."""
        return b"".join(self._write_buffer)

    def set_extra_info(self, name: str, value: Any) -> None:
        self._extra_info[name] = value

    def add_data(self, data: bytes) -> None:
        """
        Add data to be available for reading.

        Args:
            data: The data to add.
        """
        self._data += data


class MockNetworkBackend(NetworkBackend):
    """
    Mock network backend for testing.

    Connecting to an endpoint with nothing scripted behaves like a
    refused connection.
    """

    def __init__(self, max_read: Optional[int] = None) -> None:
        """
        Initialize the mock backend.

        Args:
            max_read: Passed to every MockNetworkStream created.
        """
        self._scripts: Dict[Tuple[str, int], Deque[Script]] = defaultdict(deque)
        self._max_read = max_read
        self.connections: List[Tuple[str, int, MockNetworkStream]] = []
        self.tls_hosts: List[str] = []

    def add_response(self, host: str, port: int, data: bytes) -> None:
        """Queue raw response bytes for the next connection to host:port."""
        self._scripts[(host, port)].append(data)

    def add_failure(self, host: str, port: int, error: Exception) -> None:
        """Make the next connection to host:port raise ``error``."""
        self._scripts[(host, port)].append(error)

    def connect_tcp(
        self,
        host: str,
        port: int,
        deadline: Optional[Deadline] = None,
    ) -> MockNetworkStream:
        queue = self._scripts.get((host, port))
        if not queue:
            raise ConnectionError(f"Could not connect to '{host}:{port}': Connection refused")

        script = queue.popleft()
        if isinstance(script, Exception):
            raise script

        stream = MockNetworkStream(script, max_read=self._max_read)
        stream.set_extra_info("peername", (host, port))
        self.connections.append((host, port, stream))
        return stream

    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        deadline: Optional[Deadline] = None,
    ) -> NetworkStream:
        if isinstance(stream, MockNetworkStream):
            stream.set_extra_info("ssl_object", True)
        self.tls_hosts.append(host)
        return stream

    def get_connection(self, index: int = -1) -> MockNetworkStream:
        """Get a stream opened by this backend, the latest by default."""
        return self.connections[index][2]

    @property
    def requests_written(self) -> List[bytes]:
        """Raw bytes written on each connection, in connection order."""
        return [stream.written_data for _, _, stream in self.connections]

    def reset(self) -> None:
        self._scripts.clear()
        self.connections.clear()
        self.tls_hosts.clear()
