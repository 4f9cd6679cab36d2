"""
tiny_http_core - Minimal blocking HTTP/1.1 client

A small, correctness-focused HTTP/1.1 client: one connection per
request, Content-Length and chunked bodies, strict redirect rules,
per-attempt deadlines, and errors returned as 599 responses.
"""

__version__ = "0.1.0"
__author__ = "Developer"
__email__ = "dev@example.com"

# Import main components for easy access
from .http_primitives import (
    HeaderValue,
    Multi,
    Request,
    Response,
    ResponseHeaders,
    Single,
    URLComponents,
)
from .http11 import HTTP11Connection
from .redirects import RedirectController, RedirectState
from .config import ClientConfig
from .client import HTTPClient, www_form_urlencode
from .exceptions import (
    HTTPCoreError,
    ConnectionError,
    ProtocolError,
    TimeoutError,
    SizeLimitError,
    RedirectLimitError,
    RequestError,
)
from .streams import (
    ContentSource,
    CallableSource,
    IterableSource,
    ResponseSink,
    BufferSink,
    CallbackSink,
    FileSink,
    create_request_content,
)

__all__ = [
    "HTTPClient",
    "ClientConfig",
    "Request",
    "Response",
    "ResponseHeaders",
    "HeaderValue",
    "Single",
    "Multi",
    "URLComponents",
    "HTTP11Connection",
    "RedirectController",
    "RedirectState",
    "HTTPCoreError",
    "ConnectionError",
    "ProtocolError",
    "TimeoutError",
    "SizeLimitError",
    "RedirectLimitError",
    "RequestError",
    "ContentSource",
    "CallableSource",
    "IterableSource",
    "ResponseSink",
    "BufferSink",
    "CallbackSink",
    "FileSink",
    "create_request_content",
    "www_form_urlencode",
]
