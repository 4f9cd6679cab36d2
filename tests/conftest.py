"""
Pytest configuration for tiny_http_core tests.

This file contains shared fixtures and configuration
for all tests in the project.
"""

from typing import Dict, List, Optional, Sequence, Tuple

import h11
import pytest

from tiny_http_core.client import HTTPClient
from tiny_http_core.network.mock import MockNetworkBackend

HeaderList = Sequence[Tuple[str, str]]


def http_response(
    status: int = 200,
    reason: str = "OK",
    headers: Optional[HeaderList] = None,
    body: bytes = b"",
    content_length: bool = True,
) -> bytes:
    """Build raw HTTP/1.1 response bytes."""
    lines = [f"HTTP/1.1 {status} {reason}"]
    header_list = list(headers or [])
    if content_length and not any(name.lower() in ("content-length", "transfer-encoding")
                                  for name, _ in header_list):
        header_list.append(("Content-Length", str(len(body))))
    lines.extend(f"{name}: {value}" for name, value in header_list)
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body


class ParsedRequest:
    """A request as an h11 server saw it."""

    def __init__(self, event: h11.Request, body: bytes, trailers: List[Tuple[bytes, bytes]]):
        self.method = event.method.decode("ascii")
        self.target = event.target.decode("ascii")
        self.raw_headers = [(name, value) for name, value in event.headers.raw_items()]
        self.headers: Dict[str, List[str]] = {}
        for name, value in event.headers:
            self.headers.setdefault(name.decode("latin-1"), []).append(value.decode("latin-1"))
        self.body = body
        self.trailers = {name.decode("latin-1"): value.decode("latin-1") for name, value in trailers}

    def header(self, name: str) -> Optional[str]:
        values = self.headers.get(name.lower())
        return values[0] if values else None


def parse_request(data: bytes) -> ParsedRequest:
    """Decode bytes written by the client with an h11 server connection."""
    server = h11.Connection(h11.SERVER)
    server.receive_data(data)
    request_event = None
    body = bytearray()
    trailers: List[Tuple[bytes, bytes]] = []
    while True:
        event = server.next_event()
        if isinstance(event, h11.Request):
            request_event = event
        elif isinstance(event, h11.Data):
            body += event.data
        elif isinstance(event, h11.EndOfMessage):
            trailers = list(event.headers)
            break
        else:
            raise AssertionError(f"Incomplete request: {event!r}")
    assert request_event is not None
    return ParsedRequest(request_event, bytes(body), trailers)


@pytest.fixture
def mock_backend() -> MockNetworkBackend:
    """Create a mock network backend."""
    return MockNetworkBackend()


@pytest.fixture
def make_client(mock_backend):
    """Create an HTTPClient on the mock backend, isolated from the environment."""
    def _create(**options) -> HTTPClient:
        options.setdefault("proxy", None)
        options.setdefault("no_proxy", ())
        options.setdefault("backend", mock_backend)
        return HTTPClient(**options)
    return _create


@pytest.fixture
def client(make_client) -> HTTPClient:
    return make_client()


@pytest.fixture
def sample_stream_data() -> List[bytes]:
    """Sample stream data for testing."""
    return [
        b"Hello",
        b", ",
        b"World",
        b"!",
    ]


@pytest.fixture
def chunked_wikipedia() -> bytes:
    return http_response(
        headers=[("Transfer-Encoding", "chunked")],
        body=b"4\r\nWiki\r\n5\r\npedia\r\n0\r\n\r\n",
    )

