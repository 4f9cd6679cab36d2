"""
Blocking HTTP/1.1 client for tiny_http_core.

HTTPClient is the public entry point. Each call to request() opens its
own connection (one per redirect hop), writes one request, reads one
response and closes the connection again. Nothing is shared between
calls except the immutable ClientConfig, so one client can be used from
several threads at once.
"""

import logging
import os
from email.utils import formatdate, parsedate_to_datetime
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import quote_plus

from .config import USE_ENVIRONMENT, ClientConfig
from .exceptions import HTTPCoreError, RequestError
from .http11 import HTTP11Connection
from .http_primitives import (
    HeaderInput,
    Request,
    Response,
    TrailerCallback,
    merge_headers,
    normalize_headers,
)
from .network.backend import NetworkBackend
from .network.sync import SyncNetworkBackend
from .network.utils import Deadline
from .redirects import RedirectController
from .streams import BufferSink, CallbackSink, DataCallback, FileSink, ResponseSink

logger = logging.getLogger(__name__)

FormData = Union[Mapping[str, Any], Sequence[Tuple[str, Any]]]


def www_form_urlencode(data: FormData) -> str:
    """
    Encode form data as application/x-www-form-urlencoded.

    A mapping is encoded sorted by key, a sequence of pairs in the order
    given. A sequence value expands to one pair per element.

    Args:
        data: Mapping or sequence of (key, value) pairs

    Returns:
        The encoded body
    """
    if isinstance(data, Mapping):
        items: Iterable[Tuple[Any, Any]] = sorted(data.items(), key=lambda kv: str(kv[0]))
    elif isinstance(data, (list, tuple)):
        items = data
    else:
        raise RequestError("form data must be a mapping or a sequence of (key, value) pairs")

    terms = []
    for key, value in items:
        if isinstance(value, (list, tuple)):
            values: Sequence[Any] = value
        else:
            values = [value]
        for item in values:
            item = "" if item is None else str(item)
            terms.append(f"{quote_plus(str(key))}={quote_plus(item)}")
    return "&".join(terms)


class HTTPClient:
    """
    Minimal, blocking HTTP/1.1 client.

    request() never raises for transport or protocol failures: any error
    is returned as a Response with status 599, reason "Internal Exception",
    and the error text as content.
    """

    def __init__(
        self,
        agent: Optional[str] = None,
        default_headers: Optional[HeaderInput] = None,
        max_redirect: int = 5,
        max_size: Optional[int] = None,
        timeout: float = 60.0,
        proxy: Optional[str] = USE_ENVIRONMENT,
        no_proxy: Optional[Sequence[str]] = USE_ENVIRONMENT,
        verify_ssl: bool = True,
        backend: Optional[NetworkBackend] = None,
        config: Optional[ClientConfig] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            agent: User-Agent string; one ending in a space gets the
                   default agent appended
            default_headers: Headers sent with every request
            max_redirect: Number of redirects that may be followed
            max_size: Maximum response body size in bytes
            timeout: Per-attempt timeout in seconds
            proxy: Proxy URL; None disables proxying, leaving it out reads
                   ``http_proxy`` from the environment
            no_proxy: Host suffixes that bypass the proxy
            verify_ssl: Whether to verify server certificates
            backend: Network backend, blocking sockets by default
            config: Ready-made configuration, overrides the arguments above
        """
        if config is None:
            config = ClientConfig.create(
                agent=agent,
                default_headers=default_headers,
                max_redirect=max_redirect,
                max_size=max_size,
                timeout=timeout,
                proxy=proxy,
                no_proxy=no_proxy,
                verify_ssl=verify_ssl,
            )
        self._config = config
        self._backend = backend or SyncNetworkBackend(verify_ssl=config.verify_ssl)

    @property
    def config(self) -> ClientConfig:
        return self._config

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[HeaderInput] = None,
        content: Any = None,
        data_callback: Optional[DataCallback] = None,
        trailer_callback: Optional[TrailerCallback] = None,
    ) -> Response:
        """
        Run a request, following redirects, and return the final response.

        Args:
            method: HTTP method, case preserved
            url: Absolute http or https URL, already escaped
            headers: Request headers, override default headers by name
            content: Body: bytes/str (Content-Length), or a callable,
                     iterable or ContentSource pulled until exhausted
                     (chunked)
            data_callback: Called as ``callback(data, response)`` for every
                           body chunk instead of buffering the body
            trailer_callback: Returns trailer headers for a chunked body

        Returns:
            The final Response; a 599 Response if the transaction failed
        """
        try:
            caller = Request.create(
                method,
                url,
                headers=headers,
                content=content,
                trailer_callback=trailer_callback,
            )
            prepared = caller.with_headers(
                merge_headers(self._config.default_headers, caller.headers)
            )
            controller = RedirectController(
                lambda hop: self._issue(hop, controller, data_callback),
                self._config.max_redirect,
            )
            return controller.run(prepared)
        except HTTPCoreError as exc:
            logger.error(f"Request {method} {url} failed: {exc}")
            return Response.error(exc, url)
        except Exception as exc:
            logger.exception(f"Request {method} {url} failed with an unexpected error")
            return Response.error(exc, url)

    def _issue(
        self,
        request: Request,
        controller: RedirectController,
        data_callback: Optional[DataCallback],
    ) -> Response:
        """
        Run one transaction attempt on its own connection.

        The attempt gets a fresh deadline; the connection is closed on
        every exit path.
        """
        deadline = Deadline(self._config.timeout)
        proxy = self._config.proxy_for(request.url)
        sink: ResponseSink = (
            CallbackSink(data_callback) if data_callback is not None else BufferSink()
        )

        stream = self._backend.connect(
            request.url.host,
            request.url.port,
            request.url.is_secure,
            proxy=proxy,
            deadline=deadline,
        )
        try:
            connection = HTTP11Connection(
                stream, deadline=deadline, max_size=self._config.max_size
            )
            return connection.handle_request(
                request,
                agent=self._config.agent,
                sink=sink,
                proxied=proxy is not None,
                discard_body=lambda head: controller.will_follow(request, head),
            )
        finally:
            stream.close()

    def get(self, url: str, **kwargs: Any) -> Response:
        """Run a GET request."""
        return self.request("GET", url, **kwargs)

    def head(self, url: str, **kwargs: Any) -> Response:
        """Run a HEAD request."""
        return self.request("HEAD", url, **kwargs)

    def put(self, url: str, **kwargs: Any) -> Response:
        """Run a PUT request."""
        return self.request("PUT", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> Response:
        """Run a POST request."""
        return self.request("POST", url, **kwargs)

    def delete(self, url: str, **kwargs: Any) -> Response:
        """Run a DELETE request."""
        return self.request("DELETE", url, **kwargs)

    def post_form(
        self,
        url: str,
        data: FormData,
        headers: Optional[HeaderInput] = None,
    ) -> Response:
        """
        POST form data as application/x-www-form-urlencoded.

        Any Content-Type given in ``headers`` is replaced.

        Args:
            url: Target URL
            data: Mapping (sent sorted by key) or sequence of (key, value)
                  pairs; sequence values repeat the key
            headers: Extra request headers

        Returns:
            The final Response
        """
        try:
            body = www_form_urlencode(data)
            fields = [
                (name, values)
                for name, values in normalize_headers(headers)
                if name.lower() != "content-type"
            ]
        except HTTPCoreError as exc:
            return Response.error(exc, url)

        form_headers = {name: list(values) for name, values in fields}
        form_headers["Content-Type"] = "application/x-www-form-urlencoded"
        return self.request("POST", url, headers=form_headers, content=body)

    def mirror(
        self,
        url: str,
        path: Union[str, "os.PathLike[str]"],
        headers: Optional[HeaderInput] = None,
    ) -> Response:
        """
        Download ``url`` into ``path`` unless the local copy is current.

        When ``path`` exists its modification time is sent as
        If-Modified-Since. The body is written to a temporary file next to
        ``path`` and moved into place only on success; the file's
        modification time is then set from Last-Modified. A 304 response
        counts as success and leaves the file alone.

        Args:
            url: Target URL
            path: Local file to update
            headers: Extra request headers

        Returns:
            The final Response, with an empty body

        Raises:
            OSError: If the temporary file cannot be created or moved
        """
        path = os.fspath(path)
        fields = {name.lower(): (name, values) for name, values in normalize_headers(headers)}
        request_headers = {name: list(values) for name, values in fields.values()}

        if os.path.exists(path) and "if-modified-since" not in fields:
            mtime = os.stat(path).st_mtime
            request_headers["If-Modified-Since"] = formatdate(mtime, usegmt=True)

        tempfile = f"{path}-{os.getpid()}"
        with open(tempfile, "wb") as fh:
            sink = FileSink(fh)
            response = self.request(
                "GET", url, headers=request_headers, data_callback=sink.on_chunk
            )

        if response.success:
            os.replace(tempfile, path)
            self._set_mtime(path, response.headers.get_value("last-modified"))
        else:
            os.unlink(tempfile)

        if response.status_code == 304:
            response = response.with_success(True)
        return response

    @staticmethod
    def _set_mtime(path: str, last_modified: Optional[str]) -> None:
        if not last_modified:
            return
        try:
            mtime = parsedate_to_datetime(last_modified).timestamp()
        except (TypeError, ValueError):
            logger.debug(f"Ignoring unparseable Last-Modified {last_modified!r}")
            return
        os.utime(path, (mtime, mtime))
