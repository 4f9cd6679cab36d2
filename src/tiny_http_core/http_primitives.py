"""
HTTP primitives for tiny_http_core.

This module defines the core data structures for HTTP requests and responses.
All classes are immutable to ensure thread safety and simplify reasoning:
a Response handed to a data callback is never mutated afterwards, later
stages build a new instance instead.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
    Tuple,
    Union,
)
from urllib.parse import urlsplit

from .exceptions import RequestError
from .network.utils import format_host_header
from .streams import ContentSource, create_request_content

StatusCode = int

# Caller-facing header input: name -> value or sequence of values
HeaderInput = Mapping[str, Union[str, Sequence[str]]]

# Normalized request headers: ((name, (value, ...)), ...), one entry per
# case-insensitive name, in first-seen order
HeaderFields = Tuple[Tuple[str, Tuple[str, ...]], ...]

TrailerCallback = Callable[[], Optional[HeaderInput]]

DEFAULT_PORTS = {"http": 80, "https": 443}

_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


class URLComponents(NamedTuple):
    """Immutable representation of URL components."""
    scheme: str
    host: str
    port: int
    target: str

    @classmethod
    def from_url(cls, url: str) -> "URLComponents":
        """
        Create URLComponents from an absolute URL string.

        The URL must already be ASCII and percent-escaped; it is split,
        never re-escaped. The fragment is dropped.

        Raises:
            RequestError: If the scheme is not http/https or the host is missing
        """
        try:
            parsed = urlsplit(url)
            port = parsed.port
        except ValueError as exc:
            raise RequestError(f"Cannot parse URL '{url}': {exc}", cause=exc) from exc

        scheme = parsed.scheme.lower()
        if scheme not in DEFAULT_PORTS:
            raise RequestError(f"Unsupported URL scheme '{parsed.scheme}' in '{url}'")

        host = parsed.hostname
        if not host:
            raise RequestError(f"No host found in URL '{url}'")

        target = parsed.path or "/"
        if parsed.query:
            target += "?" + parsed.query

        return cls(
            scheme=scheme,
            host=host,
            port=port or DEFAULT_PORTS[scheme],
            target=target,
        )

    @property
    def is_secure(self) -> bool:
        return self.scheme == "https"

    @property
    def host_header(self) -> str:
        """Value for the Host header: host, plus the port when not the default."""
        return format_host_header(self.host, self.port, self.scheme)

    @property
    def origin_form(self) -> str:
        """Request target for a direct connection: path and query only."""
        return self.target

    @property
    def absolute_form(self) -> str:
        """Request target for a proxied connection: the full URL."""
        return f"{self.scheme}://{self.host_header}{self.target}"

    def __str__(self) -> str:
        return self.absolute_form


class HeaderValue(ABC):
    """
    Value of a response header.

    Either Single (the header arrived once) or Multi (it arrived more than
    once). Both expose ``value`` and ``values`` so callers never need to
    check the type.
    """

    __slots__ = ()

    @property
    @abstractmethod
    def value(self) -> str:
        """The header as one field value."""
        pass

    @property
    @abstractmethod
    def values(self) -> Tuple[str, ...]:
        """Every value in arrival order."""
        pass

    def __iter__(self) -> Iterator[str]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __str__(self) -> str:
        return self.value

    def added(self, value: str) -> "Multi":
        """Return the value that results from the header arriving once more."""
        return Multi(self.values + (value,))


@dataclass(frozen=True)
class Single(HeaderValue):
    """A header that arrived exactly once."""

    __slots__ = ("_value",)
    _value: str

    @property
    def value(self) -> str:
        return self._value

    @property
    def values(self) -> Tuple[str, ...]:
        return (self._value,)

    def __repr__(self) -> str:
        return f"Single({self._value!r})"


@dataclass(frozen=True)
class Multi(HeaderValue):
    """A header that arrived more than once, values in arrival order."""

    __slots__ = ("_values",)
    _values: Tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self._values) < 2:
            raise ValueError("Multi needs at least two values, use Single")

    @property
    def value(self) -> str:
        """The values combined into one field value, as RFC 7230 allows."""
        return ", ".join(self._values)

    @property
    def values(self) -> Tuple[str, ...]:
        return self._values

    def __repr__(self) -> str:
        return f"Multi({self._values!r})"


class ResponseHeaders(Mapping[str, HeaderValue]):
    """
    Immutable, case-insensitive mapping of response headers.

    Keys are lower-cased header names. A name seen once maps to Single,
    a repeated name maps to Multi with every value in arrival order.
    """

    __slots__ = ("_fields",)

    def __init__(self, fields: Optional[Dict[str, HeaderValue]] = None) -> None:
        self._fields: Dict[str, HeaderValue] = dict(fields or {})

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, str]]) -> "ResponseHeaders":
        return cls().extend(pairs)

    def extend(self, pairs: Iterable[Tuple[str, str]]) -> "ResponseHeaders":
        """Return new headers with ``pairs`` added after the existing ones."""
        fields = dict(self._fields)
        for name, value in pairs:
            key = name.lower()
            existing = fields.get(key)
            fields[key] = Single(value) if existing is None else existing.added(value)
        return ResponseHeaders(fields)

    def get_value(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get the scalar value of a header, or ``default`` when absent."""
        header = self._fields.get(name.lower())
        return default if header is None else header.value

    def get_all(self, name: str) -> Tuple[str, ...]:
        """Get every value of a header in arrival order, () when absent."""
        header = self._fields.get(name.lower())
        return () if header is None else header.values

    def __getitem__(self, name: str) -> HeaderValue:
        return self._fields[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ResponseHeaders):
            return self._fields == other._fields
        if isinstance(other, Mapping):
            return self._fields == {k.lower(): v for k, v in other.items()}
        return NotImplemented

    def __repr__(self) -> str:
        return f"ResponseHeaders({self._fields!r})"


def normalize_headers(headers: Optional[HeaderInput]) -> HeaderFields:
    """
    Normalize caller-supplied headers.

    Args:
        headers: Mapping of name to a value or a sequence of values

    Returns:
        Tuple of (name, values) pairs, one per case-insensitive name;
        a later spelling of the same name replaces the earlier one

    Raises:
        RequestError: If names or values are not strings
    """
    if headers is None:
        return ()
    if not isinstance(headers, Mapping):
        raise RequestError("headers must be a mapping of name to value(s)")

    fields: Dict[str, Tuple[str, Tuple[str, ...]]] = {}
    for name, value in headers.items():
        if not isinstance(name, str) or not name:
            raise RequestError(f"Invalid header name: {name!r}")
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            values: Tuple[Any, ...] = (value,)
        else:
            values = tuple(value)
        fields[name.lower()] = (name, tuple(_header_str(name, v) for v in values))
    return tuple(fields.values())


def _header_str(name: str, value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("latin-1")
    if isinstance(value, (str, int, float)):
        return str(value)
    raise RequestError(f"Invalid value for header '{name}': {value!r}")


def merge_headers(defaults: HeaderFields, overrides: HeaderFields) -> HeaderFields:
    """
    Merge request-specific headers over defaults.

    A name present in ``overrides`` replaces every default value of that
    name; the position of the default is kept.
    """
    merged: Dict[str, Tuple[str, Tuple[str, ...]]] = {
        name.lower(): (name, values) for name, values in defaults
    }
    for name, values in overrides:
        merged[name.lower()] = (name, values)
    return tuple(merged.values())


def header_pairs(fields: HeaderFields) -> List[Tuple[str, str]]:
    """Flatten normalized headers into (name, value) lines, repeats kept in order."""
    return [(name, value) for name, values in fields for value in values]


def find_header(fields: HeaderFields, name: str) -> Optional[Tuple[str, ...]]:
    key = name.lower()
    for field_name, values in fields:
        if field_name.lower() == key:
            return values
    return None


@dataclass(frozen=True)
class Request:
    """
    Immutable HTTP request representation.

    This class represents an HTTP request with all its components.
    Once created, the request cannot be modified - any changes
    must create a new Request instance.
    """

    method: str
    url: URLComponents
    headers: HeaderFields = ()
    content: Optional[Union[bytes, ContentSource]] = None
    trailer_callback: Optional[TrailerCallback] = None

    def __post_init__(self) -> None:
        """Validate request data after initialization."""
        if not isinstance(self.method, str) or not _TOKEN_RE.match(self.method):
            raise RequestError(f"Invalid request method: {self.method!r}")

        if not isinstance(self.url, URLComponents):
            raise RequestError("url must be URLComponents")

    @classmethod
    def create(
        cls,
        method: str,
        url: Union[str, URLComponents],
        headers: Optional[HeaderInput] = None,
        content: Any = None,
        trailer_callback: Optional[TrailerCallback] = None,
    ) -> "Request":
        """
        Create a Request with proper type conversion.

        Args:
            method: HTTP method, case preserved
            url: Absolute URL string or URLComponents
            headers: Optional mapping of name to value(s)
            content: bytes, str, a ContentSource, a callable or an iterable
            trailer_callback: Returns trailer headers once a chunked body ends

        Returns:
            New Request instance
        """
        if isinstance(url, str):
            url = URLComponents.from_url(url)

        return cls(
            method=method,
            url=url,
            headers=normalize_headers(headers),
            content=create_request_content(content),
            trailer_callback=trailer_callback,
        )

    def with_method(self, method: str) -> "Request":
        """Create a new request with a different method."""
        return replace(self, method=method)

    def with_url(self, url: Union[str, URLComponents]) -> "Request":
        """Create a new request with a different URL."""
        if isinstance(url, str):
            url = URLComponents.from_url(url)
        return replace(self, url=url)

    def with_headers(self, headers: HeaderFields) -> "Request":
        """Create a new request with different headers."""
        return replace(self, headers=headers)

    def with_content(self, content: Optional[Union[bytes, ContentSource]]) -> "Request":
        """Create a new request with a different body."""
        return replace(self, content=content)

    def get_header(self, name: str) -> Optional[Tuple[str, ...]]:
        """Get the values of a header (case-insensitive), None when absent."""
        return find_header(self.headers, name)


@dataclass(frozen=True)
class Response:
    """
    Immutable HTTP response representation.

    ``content`` holds the accumulated body; it is empty when a data
    callback consumed the body. ``redirects`` holds the responses that
    were followed before this one, oldest first.
    """

    status_code: StatusCode
    reason: str = ""
    success: bool = False
    headers: ResponseHeaders = field(default_factory=ResponseHeaders)
    content: bytes = b""
    url: str = ""
    redirects: Tuple["Response", ...] = ()

    INTERNAL_ERROR_STATUS = 599
    INTERNAL_ERROR_REASON = "Internal Exception"

    @classmethod
    def create(
        cls,
        status_code: StatusCode,
        reason: str = "",
        headers: Optional[ResponseHeaders] = None,
        content: bytes = b"",
        url: str = "",
        success: Optional[bool] = None,
    ) -> "Response":
        """
        Create a Response; ``success`` defaults to "status is 2XX".
        """
        if success is None:
            success = 200 <= status_code < 300
        return cls(
            status_code=status_code,
            reason=reason,
            success=success,
            headers=headers if headers is not None else ResponseHeaders(),
            content=content,
            url=url,
        )

    @classmethod
    def error(cls, exc: BaseException, url: str = "") -> "Response":
        """Build the degraded response that stands in for a failed transaction."""
        content = str(exc).encode("utf-8", "replace")
        headers = ResponseHeaders.from_pairs([
            ("content-type", "text/plain"),
            ("content-length", str(len(content))),
        ])
        return cls(
            status_code=cls.INTERNAL_ERROR_STATUS,
            reason=cls.INTERNAL_ERROR_REASON,
            success=False,
            headers=headers,
            content=content,
            url=url,
        )

    def with_headers(self, headers: ResponseHeaders) -> "Response":
        """Create a new response with different headers."""
        return replace(self, headers=headers)

    def with_content(self, content: bytes) -> "Response":
        """Create a new response with a different body."""
        return replace(self, content=content)

    def with_success(self, success: bool) -> "Response":
        return replace(self, success=success)

    def with_redirects(self, redirects: Sequence["Response"]) -> "Response":
        return replace(self, redirects=tuple(redirects))

    @property
    def text(self) -> str:
        """Body decoded as UTF-8, undecodable bytes replaced."""
        return self.content.decode("utf-8", "replace")

    def get_header(self, name: str) -> Optional[str]:
        """Get a header value by name (case-insensitive)."""
        return self.headers.get_value(name)

    def has_header(self, name: str) -> bool:
        """Check if a header exists (case-insensitive)."""
        return name in self.headers
