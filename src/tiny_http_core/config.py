"""
Client configuration for tiny_http_core.

ClientConfig is built once, when a client is constructed, and is
read-only afterwards. Proxy settings are resolved from the environment
at that moment and never re-read while a transaction is running.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

from . import __version__
from .http_primitives import HeaderFields, HeaderInput, URLComponents, normalize_headers
from .network.backend import ProxyAddress
from .network.utils import host_matches

logger = logging.getLogger(__name__)

DEFAULT_AGENT = f"tiny_http_core/{__version__}"


class _UseEnvironment:
    """Marker for settings that are read from the environment."""

    def __repr__(self) -> str:
        return "USE_ENVIRONMENT"


USE_ENVIRONMENT: Any = _UseEnvironment()

_PROXY_RE = re.compile(r"^http://(?P<host>\[[^\]]+\]|[^:/@\[\]]+)(?::(?P<port>\d+))?/?$")


def parse_proxy_url(url: str) -> ProxyAddress:
    """
    Split a proxy URL into (host, port).

    Only plain HTTP proxies without credentials are supported.

    Raises:
        ValueError: If the URL is not ``http://<host>[:<port>][/]``
    """
    match = _PROXY_RE.match(url.strip())
    if match is None:
        raise ValueError(f"Proxy URL must be in format http://<host>:<port>/, got {url!r}")
    host = match["host"].strip("[]")
    port = int(match["port"]) if match["port"] else 80
    if not 1 <= port <= 65535:
        raise ValueError(f"Proxy port must be between 1 and 65535, got {port}")
    return host, port


def proxy_from_environment(environ: Mapping[str, str]) -> Optional[str]:
    """
    Find the proxy URL in the environment.

    ``http_proxy`` wins; ``HTTP_PROXY`` is ignored under CGI (when
    ``REQUEST_METHOD`` is set) since a client can set it with a
    ``Proxy:`` request header; ``all_proxy`` is the fallback.
    """
    proxy = environ.get("http_proxy")
    if not proxy and "REQUEST_METHOD" not in environ:
        proxy = environ.get("HTTP_PROXY")
    if not proxy:
        proxy = environ.get("all_proxy") or environ.get("ALL_PROXY")
    return proxy or None


def no_proxy_from_environment(environ: Mapping[str, str]) -> Tuple[str, ...]:
    value = environ.get("no_proxy") or environ.get("NO_PROXY") or ""
    return tuple(entry.strip() for entry in value.split(",") if entry.strip())


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable client configuration.

    Safe to share between threads running transactions concurrently.
    """

    agent: str = DEFAULT_AGENT
    default_headers: HeaderFields = ()
    max_redirect: int = 5
    max_size: Optional[int] = None
    timeout: float = 60.0
    proxy: Optional[str] = None
    no_proxy: Tuple[str, ...] = ()
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        if self.max_redirect < 0:
            raise ValueError("max_redirect must be zero or positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_size is not None and self.max_size <= 0:
            raise ValueError("max_size must be positive or None")
        if self.proxy is not None:
            parse_proxy_url(self.proxy)

    @classmethod
    def create(
        cls,
        agent: Optional[str] = None,
        default_headers: Optional[HeaderInput] = None,
        max_redirect: int = 5,
        max_size: Optional[int] = None,
        timeout: float = 60.0,
        proxy: Optional[str] = USE_ENVIRONMENT,
        no_proxy: Optional[Sequence[str]] = USE_ENVIRONMENT,
        verify_ssl: bool = True,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ClientConfig":
        """
        Create a configuration, resolving environment defaults once.

        Args:
            agent: User-Agent string; one ending in a space gets the
                   default agent appended
            default_headers: Headers sent with every request
            max_redirect: Number of redirects that may be followed
            max_size: Maximum response body size in bytes
            timeout: Per-attempt timeout in seconds
            proxy: Proxy URL; None disables proxying, leaving it out reads
                   the environment
            no_proxy: Host suffixes that bypass the proxy; leaving it out
                      reads the environment
            verify_ssl: Whether to verify server certificates
            environ: Environment to read, os.environ by default

        Returns:
            New ClientConfig instance
        """
        if environ is None:
            environ = os.environ

        if agent is None:
            agent = DEFAULT_AGENT
        elif agent.endswith(" "):
            agent += DEFAULT_AGENT

        if proxy is USE_ENVIRONMENT:
            proxy = proxy_from_environment(environ)
            if proxy:
                logger.debug(f"Using proxy {proxy} from the environment")

        if no_proxy is USE_ENVIRONMENT:
            no_proxy = no_proxy_from_environment(environ)

        return cls(
            agent=agent,
            default_headers=normalize_headers(default_headers),
            max_redirect=max_redirect,
            max_size=max_size,
            timeout=float(timeout),
            proxy=proxy,
            no_proxy=tuple(no_proxy or ()),
            verify_ssl=verify_ssl,
        )

    def proxy_for(self, url: URLComponents) -> Optional[ProxyAddress]:
        """
        Get the proxy endpoint for a target URL.

        Returns:
            (host, port) of the proxy, or None to connect directly
        """
        if self.proxy is None:
            return None
        if any(host_matches(url.host, entry) for entry in self.no_proxy):
            return None
        return parse_proxy_url(self.proxy)
