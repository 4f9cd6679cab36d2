"""
HTTP/1.1 connection implementation for tiny_http_core.

This module implements the HTTP11Connection class that runs exactly one
request/response exchange over a NetworkStream. The byte-level framing
(request line, header block, Content-Length and chunked bodies, trailers,
status line parsing and header folding) is done by h11; this module drives
it, applies the client's header rules and delivers the body to a sink
under the size limit.
"""

import logging
import time
from typing import Callable, Iterable, List, Optional, Tuple

import h11

from .exceptions import (
    HTTPCoreError,
    ProtocolError,
    RequestError,
    SizeLimitError,
)
from .http_primitives import (
    Request,
    Response,
    ResponseHeaders,
    header_pairs,
    normalize_headers,
)
from .network.stream import NetworkStream
from .network.utils import Deadline
from .streams import BufferSink, ContentSource, DiscardSink, ResponseSink

logger = logging.getLogger(__name__)

RawHeaders = List[Tuple[bytes, bytes]]

# Headers the connection always writes itself
_MANAGED_HEADERS = frozenset(
    ["host", "connection", "user-agent", "content-length", "transfer-encoding"]
)


def _encode_headers(pairs: Iterable[Tuple[str, str]]) -> RawHeaders:
    try:
        return [
            (name.encode("ascii"), value.encode("latin-1"))
            for name, value in pairs
        ]
    except UnicodeEncodeError as exc:
        raise RequestError(f"Header cannot be encoded: {exc}", cause=exc) from exc


def _decode_headers(headers: Iterable[Tuple[bytes, bytes]]) -> List[Tuple[str, str]]:
    return [
        (name.decode("latin-1"), value.decode("latin-1"))
        for name, value in headers
    ]


class HTTP11Connection:
    """
    Single-use HTTP/1.1 exchange over a NetworkStream.

    Every request carries ``Connection: close``; the caller owns the
    stream and closes it once handle_request() returns or raises. All
    reads and writes are bounded by the Deadline of the attempt.
    """

    # Default configuration
    DEFAULT_READ_SIZE = 65536  # 64KB reads

    def __init__(
        self,
        stream: NetworkStream,
        deadline: Optional[Deadline] = None,
        max_size: Optional[int] = None,
        read_size: Optional[int] = None,
    ):
        """
        Initialize HTTP/1.1 connection.

        Args:
            stream: The NetworkStream to use for communication
            deadline: Deadline shared by every read and write of the attempt
            max_size: Maximum number of body bytes delivered to the sink
            read_size: Maximum number of bytes requested per read
        """
        self._stream = stream
        self._deadline = deadline
        self._max_size = max_size
        self._read_size = read_size or self.DEFAULT_READ_SIZE
        self._h11_connection = h11.Connection(h11.CLIENT)

        # Metrics
        self._bytes_sent = 0
        self._bytes_received = 0

    def handle_request(
        self,
        request: Request,
        agent: str = "",
        sink: Optional[ResponseSink] = None,
        proxied: bool = False,
        discard_body: Optional[Callable[[Response], bool]] = None,
    ) -> Response:
        """
        Handle a complete HTTP request/response cycle.

        Args:
            request: The HTTP request to send
            agent: User-Agent value unless the request overrides it
            sink: Receives the response body, buffered in memory when None
            proxied: Write the absolute-form target for a proxy
            discard_body: Called with the response head; when it returns
                          True the body is read and dropped

        Returns:
            The HTTP response; ``content`` is what the sink accumulated

        Raises:
            RequestError: If the request cannot be serialized
            ProtocolError: If the response is malformed or truncated
            SizeLimitError: If the body exceeds max_size
            ConnectionError: If the stream fails
            TimeoutError: If the deadline passes
        """
        start_time = time.monotonic()
        try:
            self._send_request(request, agent, proxied)
            response = self._receive_response(
                request, sink if sink is not None else BufferSink(), discard_body
            )
        except HTTPCoreError as e:
            logger.debug(
                f"{request.method} {request.url} failed after "
                f"{time.monotonic() - start_time:.3f}s: {e}"
            )
            raise

        logger.debug(
            f"{request.method} {request.url} -> {response.status_code} "
            f"({self._bytes_sent} bytes sent, {self._bytes_received} received, "
            f"{time.monotonic() - start_time:.3f}s)"
        )
        return response

    def _build_headers(
        self, request: Request, agent: str
    ) -> Tuple[List[Tuple[str, str]], bool]:
        """
        Assemble the header block in wire order.

        Returns:
            The (name, value) lines and whether the body is sent chunked
        """
        if request.get_header("host") is not None:
            raise RequestError(
                "The 'Host' header is generated from the URL and cannot be set"
            )

        headers = [
            ("Host", request.url.host_header),
            ("Connection", "close"),
        ]

        user_agent = request.get_header("user-agent")
        if user_agent is not None:
            headers.extend(("User-Agent", value) for value in user_agent)
        elif agent:
            headers.append(("User-Agent", agent))

        headers.extend(
            (name, value)
            for name, value in header_pairs(request.headers)
            if name.lower() not in _MANAGED_HEADERS
        )

        chunked = False
        content = request.content
        if isinstance(content, bytes):
            headers.append(("Content-Length", str(len(content))))
        elif isinstance(content, ContentSource):
            declared = request.get_header("content-length")
            if declared:
                headers.append(("Content-Length", declared[0]))
            else:
                headers.append(("Transfer-Encoding", "chunked"))
                chunked = True

        return headers, chunked

    def _send_request(self, request: Request, agent: str, proxied: bool) -> None:
        """
        Send the request line, headers and body.
        """
        headers, chunked = self._build_headers(request, agent)
        target = request.url.absolute_form if proxied else request.url.origin_form

        try:
            h11_request = h11.Request(
                method=request.method.encode("ascii"),
                target=target.encode("ascii"),
                headers=_encode_headers(headers),
            )
        except (h11.LocalProtocolError, UnicodeEncodeError) as exc:
            raise RequestError(f"Invalid request: {exc}", cause=exc) from exc

        self._send_event(h11_request)

        content = request.content
        if isinstance(content, bytes):
            if content:
                self._send_event(h11.Data(data=content))
            self._send_event(h11.EndOfMessage())
        elif isinstance(content, ContentSource):
            self._send_body(content)
            trailers = self._trailers(request) if chunked else []
            self._send_event(h11.EndOfMessage(headers=trailers))
        else:
            self._send_event(h11.EndOfMessage())

    def _send_body(self, source: ContentSource) -> None:
        """
        Pull chunks from the source until it reports exhaustion.

        With chunked framing each chunk is written as its hex size line,
        the data and CRLF.
        """
        while True:
            chunk = source.next_chunk()
            if not chunk:
                return
            self._send_event(h11.Data(data=chunk))

    def _trailers(self, request: Request) -> RawHeaders:
        if request.trailer_callback is None:
            return []
        fields = normalize_headers(request.trailer_callback())
        return _encode_headers(header_pairs(fields))

    def _send_event(self, event: h11.Event) -> None:
        """
        Serialize an h11 event and write it to the network stream.

        Args:
            event: The h11 event to send
        """
        try:
            data = self._h11_connection.send(event)
        except h11.LocalProtocolError as exc:
            raise RequestError(f"Invalid request: {exc}", cause=exc) from exc
        if data:
            self._stream.write(data, self._deadline)
            self._bytes_sent += len(data)

    def _next_event(self) -> h11.Event:
        """
        Get the next event from h11, reading from the stream as needed.

        An empty read tells h11 the peer closed the connection, which ends
        close-delimited bodies and turns truncated ones into errors.
        """
        while True:
            try:
                event = self._h11_connection.next_event()
            except h11.RemoteProtocolError as exc:
                raise ProtocolError(str(exc), cause=exc) from exc

            if event is h11.NEED_DATA:
                data = self._stream.read(self._read_size, self._deadline)
                self._bytes_received += len(data)
                self._h11_connection.receive_data(data)
                continue

            if event is h11.PAUSED:
                raise ProtocolError("Peer sent data after the end of the response")

            return event

    def _receive_head(self) -> h11.Response:
        """
        Read up to the final status line and header block.

        Informational (1XX) responses are read and dropped.
        """
        while True:
            event = self._next_event()

            if isinstance(event, h11.InformationalResponse):
                logger.debug(f"Discarding informational response {event.status_code}")
                continue

            if isinstance(event, h11.Response):
                return event

            if isinstance(event, h11.ConnectionClosed):
                raise ProtocolError("Connection closed before a response was received")

            raise ProtocolError(f"Unexpected event while reading response: {event!r}")

    def _receive_response(
        self,
        request: Request,
        sink: ResponseSink,
        discard_body: Optional[Callable[[Response], bool]],
    ) -> Response:
        """
        Receive the response head and body.

        Args:
            request: The request that was sent
            sink: Receives each body chunk with the in-progress response
            discard_body: Decides from the head whether to drop the body

        Returns:
            The complete response, trailers merged into its headers
        """
        event = self._receive_head()
        response = Response.create(
            status_code=event.status_code,
            reason=event.reason.decode("latin-1"),
            headers=ResponseHeaders.from_pairs(_decode_headers(event.headers)),
            url=str(request.url),
        )

        if discard_body is not None and discard_body(response):
            sink = DiscardSink()

        received = 0
        while True:
            event = self._next_event()

            if isinstance(event, h11.Data):
                received += len(event.data)
                if self._max_size is not None and received > self._max_size:
                    raise SizeLimitError(
                        f"Response body of {request.url} is too large",
                        limit=self._max_size,
                    )
                sink.on_chunk(bytes(event.data), response)
                continue

            if isinstance(event, h11.EndOfMessage):
                if event.headers:
                    response = response.with_headers(
                        response.headers.extend(_decode_headers(event.headers))
                    )
                break

            if isinstance(event, h11.ConnectionClosed):
                raise ProtocolError("Connection closed before the response body was complete")

            raise ProtocolError(f"Unexpected event while reading body: {event!r}")

        return response.with_content(sink.getvalue())

    @property
    def bytes_sent(self) -> int:
        return self._bytes_sent

    @property
    def bytes_received(self) -> int:
        return self._bytes_received
