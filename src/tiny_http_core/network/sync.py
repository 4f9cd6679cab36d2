"""
Blocking socket implementation of the network interfaces.

Every blocking call re-applies the time left on the attempt's Deadline
as the socket timeout. A call interrupted by a signal is resumed with
whatever time is left, so interruptions can never extend the budget.
"""

import logging
import socket
import ssl
from typing import Any, Optional

from ..exceptions import ConnectionError, TimeoutError
from .backend import NetworkBackend
from .stream import NetworkStream
from .utils import Deadline, create_ssl_context, remaining_or_none

logger = logging.getLogger(__name__)


def _timeout_value(deadline: Optional[Deadline]) -> Optional[float]:
    return deadline.timeout if deadline is not None else None


class SocketStream(NetworkStream):
    """NetworkStream over a connected (optionally TLS-wrapped) socket."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._closed = False

    def read(self, max_bytes: int, deadline: Optional[Deadline] = None) -> bytes:
        if self._closed:
            raise ConnectionError("Stream is closed")

        while True:
            self._sock.settimeout(remaining_or_none(deadline))
            try:
                return self._sock.recv(max_bytes)
            except InterruptedError:
                logger.debug("recv() interrupted, resuming against the same deadline")
                continue
            except socket.timeout as exc:
                raise TimeoutError(
                    "Timed out while waiting for socket to become ready for reading",
                    timeout=_timeout_value(deadline),
                ) from exc
            except OSError as exc:
                raise ConnectionError(f"Could not read from socket: {exc}", cause=exc) from exc

    def write(self, data: bytes, deadline: Optional[Deadline] = None) -> None:
        if self._closed:
            raise ConnectionError("Stream is closed")

        view = memoryview(data)
        while view:
            self._sock.settimeout(remaining_or_none(deadline))
            try:
                sent = self._sock.send(view)
            except InterruptedError:
                logger.debug("send() interrupted, resuming against the same deadline")
                continue
            except socket.timeout as exc:
                raise TimeoutError(
                    "Timed out while waiting for socket to become ready for writing",
                    timeout=_timeout_value(deadline),
                ) from exc
            except OSError as exc:
                raise ConnectionError(f"Could not write to socket: {exc}", cause=exc) from exc
            view = view[sent:]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._sock.close()
        except OSError as exc:
            logger.debug(f"Error while closing socket: {exc}")

    def get_extra_info(self, name: str) -> Optional[Any]:
        if name == "socket":
            return self._sock
        if name == "ssl_object":
            return self._sock if isinstance(self._sock, ssl.SSLSocket) else None
        if name == "peername":
            try:
                return self._sock.getpeername()
            except OSError:
                return None
        return None

    @property
    def is_closed(self) -> bool:
        return self._closed


class SyncNetworkBackend(NetworkBackend):
    """
    Network backend built on blocking sockets and the ssl module.

    Certificate policy belongs to the SSL context: pass one explicitly,
    or let the backend build a default one from ``verify_ssl``.
    """

    def __init__(
        self,
        verify_ssl: bool = True,
        ssl_context: Optional[ssl.SSLContext] = None,
    ) -> None:
        self._ssl_context = ssl_context
        self._verify_ssl = verify_ssl

    @property
    def ssl_context(self) -> ssl.SSLContext:
        if self._ssl_context is None:
            self._ssl_context = create_ssl_context(verify=self._verify_ssl)
        return self._ssl_context

    def connect_tcp(
        self,
        host: str,
        port: int,
        deadline: Optional[Deadline] = None,
    ) -> SocketStream:
        while True:
            try:
                sock = socket.create_connection(
                    (host, port), timeout=remaining_or_none(deadline)
                )
            except InterruptedError:
                logger.debug(f"connect() to {host}:{port} interrupted, retrying")
                continue
            except socket.timeout as exc:
                raise TimeoutError(
                    f"Timed out while connecting to '{host}:{port}'",
                    timeout=_timeout_value(deadline),
                ) from exc
            except OSError as exc:
                raise ConnectionError(
                    f"Could not connect to '{host}:{port}': {exc}", cause=exc
                ) from exc

            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            return SocketStream(sock)

    def connect_tls(
        self,
        stream: NetworkStream,
        host: str,
        deadline: Optional[Deadline] = None,
    ) -> SocketStream:
        sock = stream.get_extra_info("socket")
        if sock is None:
            raise ConnectionError("Stream has no underlying socket to wrap in TLS")

        try:
            tls_sock = self.ssl_context.wrap_socket(
                sock, server_hostname=host, do_handshake_on_connect=False
            )
        except (ssl.SSLError, OSError) as exc:
            raise ConnectionError(f"TLS setup for '{host}' failed: {exc}", cause=exc) from exc

        try:
            self._handshake(tls_sock, host, deadline)
        except BaseException:
            tls_sock.close()
            raise

        return SocketStream(tls_sock)

    def _handshake(
        self,
        tls_sock: ssl.SSLSocket,
        host: str,
        deadline: Optional[Deadline],
    ) -> None:
        while True:
            tls_sock.settimeout(remaining_or_none(deadline))
            try:
                tls_sock.do_handshake()
                return
            except InterruptedError:
                logger.debug(f"TLS handshake with {host} interrupted, resuming")
                continue
            except socket.timeout as exc:
                raise TimeoutError(
                    f"Timed out during TLS handshake with '{host}'",
                    timeout=_timeout_value(deadline),
                ) from exc
            except (ssl.SSLError, OSError) as exc:
                raise ConnectionError(
                    f"TLS handshake with '{host}' failed: {exc}", cause=exc
                ) from exc
