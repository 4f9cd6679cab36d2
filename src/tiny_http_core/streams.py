"""
Request content sources and response sinks for tiny_http_core.

A request body is either a fixed byte string or a ContentSource that is
pulled until it reports exhaustion. A response body is pushed, chunk by
chunk as it arrives, into a ResponseSink together with the in-progress
Response so the sink can look at the status and headers already parsed.
"""

from abc import ABC, abstractmethod
from typing import (
    IO,
    TYPE_CHECKING,
    Any,
    Callable,
    Iterable,
    Iterator,
    Optional,
    Union,
)

from .exceptions import RequestError

if TYPE_CHECKING:
    from .http_primitives import Response  # Forward reference

DataCallback = Callable[[bytes, "Response"], Any]


def _to_bytes(chunk: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    if isinstance(chunk, (bytes, bytearray, memoryview)):
        return bytes(chunk)
    raise RequestError(f"Request content must produce bytes, got {type(chunk).__name__}")


class ContentSource(ABC):
    """
    Pull-based producer of request body chunks.

    next_chunk() is called repeatedly while the body is written; None
    or an empty chunk means the body is complete.
    """

    @abstractmethod
    def next_chunk(self) -> Optional[bytes]:
        """Get the next chunk of the body, None when exhausted."""
        pass


class CallableSource(ContentSource):
    """Content source pulling from a zero-argument function."""

    def __init__(self, producer: Callable[[], Optional[Union[bytes, str]]]) -> None:
        self._producer = producer
        self._exhausted = False

    def next_chunk(self) -> Optional[bytes]:
        if self._exhausted:
            return None
        chunk = self._producer()
        if not chunk:
            self._exhausted = True
            return None
        return _to_bytes(chunk)


class IterableSource(ContentSource):
    """Content source over any iterable of bytes (or str) chunks."""

    def __init__(self, chunks: Iterable[Union[bytes, str]]) -> None:
        self._iterator: Optional[Iterator[Union[bytes, str]]] = iter(chunks)

    def next_chunk(self) -> Optional[bytes]:
        while self._iterator is not None:
            chunk = next(self._iterator, None)
            if chunk is None:
                self._iterator = None
                break
            # Skip empty chunks, only the end of iteration ends the body
            if chunk:
                return _to_bytes(chunk)
        return None


def create_request_content(
    data: Any,
) -> Optional[Union[bytes, ContentSource]]:
    """
    Factory function to turn caller content into a request body.

    Args:
        data: None, bytes, str, a ContentSource, a callable producer,
              or an iterable of chunks

    Returns:
        Fixed bytes (sent with Content-Length), a ContentSource
        (sent chunked), or None for no body
    """
    if data is None or isinstance(data, ContentSource):
        return data
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    if callable(data):
        return CallableSource(data)
    if isinstance(data, Iterable):
        return IterableSource(data)
    raise RequestError(f"Unsupported request content type: {type(data).__name__}")


class ResponseSink(ABC):
    """Push-based consumer of response body chunks."""

    @abstractmethod
    def on_chunk(self, data: bytes, response: "Response") -> None:
        """Receive one chunk of the body."""
        pass

    def getvalue(self) -> bytes:
        """Content to store on the final Response."""
        return b""


class BufferSink(ResponseSink):
    """Accumulates the body in memory."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def on_chunk(self, data: bytes, response: "Response") -> None:
        self._buffer += data

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class CallbackSink(ResponseSink):
    """Hands each chunk to a caller-supplied ``callback(data, response)``."""

    def __init__(self, callback: DataCallback) -> None:
        if not callable(callback):
            raise RequestError("data_callback must be callable")
        self._callback = callback

    def on_chunk(self, data: bytes, response: "Response") -> None:
        self._callback(data, response)


class FileSink(ResponseSink):
    """Writes the body into an open binary file."""

    def __init__(self, fileobj: IO[bytes]) -> None:
        self._fileobj = fileobj
        self.bytes_written = 0

    def on_chunk(self, data: bytes, response: "Response") -> None:
        self._fileobj.write(data)
        self.bytes_written += len(data)


class DiscardSink(ResponseSink):
    """Drops the body, used for responses that are about to be redirected."""

    def on_chunk(self, data: bytes, response: "Response") -> None:
        pass
