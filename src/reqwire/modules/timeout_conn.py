"""Timeout-Enforcing Connection.

Wraps the network streams httpcore dials so that every read and write gets
its own deadline, while an absolute maximum lifetime window is refreshed
after each operation. A chunked download made of many small reads is
therefore still bounded: each read must finish within ``read_timeout`` and
the gap between operations can never exceed ``max_timeout``.
"""

import logging
import ssl
import time
import typing
from collections.abc import Callable, Iterable

import httpcore

from reqwire.types import HTTPTimeout


logger = logging.getLogger("reqwire.timeout_conn")

Clock = Callable[[], float]


class TimeoutStream(httpcore.NetworkStream):
    """A network stream applying per-phase deadlines to the stream it wraps.

    Deadlines are instants on ``clock`` (monotonic seconds). ``None`` means
    no deadline for that direction.
    """

    def __init__(
        self,
        stream: httpcore.NetworkStream,
        timeout: HTTPTimeout,
        clock: Clock = time.monotonic,
    ) -> None:
        self._stream = stream
        self._timeout = timeout
        self._clock = clock
        self._read_deadline: float | None = None
        self._write_deadline: float | None = None
        if timeout.max_timeout > 0:
            self.set_deadline(clock() + timeout.max_timeout)

    @property
    def read_deadline(self) -> float | None:
        return self._read_deadline

    @property
    def write_deadline(self) -> float | None:
        return self._write_deadline

    def read(self, max_bytes: int, timeout: float | None = None) -> bytes:
        if self._timeout.read_timeout > 0:
            self.set_read_deadline(self._clock() + self._timeout.read_timeout)
        try:
            remaining = self._remaining(self._read_deadline, timeout)
            if remaining is not None and remaining <= 0:
                raise httpcore.ReadTimeout("read deadline exceeded")
            return self._stream.read(max_bytes, timeout=remaining)
        finally:
            if self._timeout.max_timeout > 0:
                self.set_read_deadline(self._clock() + self._timeout.max_timeout)

    def write(self, buffer: bytes, timeout: float | None = None) -> None:
        if self._timeout.write_timeout > 0:
            self.set_write_deadline(self._clock() + self._timeout.write_timeout)
        try:
            remaining = self._remaining(self._write_deadline, timeout)
            if remaining is not None and remaining <= 0:
                raise httpcore.WriteTimeout("write deadline exceeded")
            self._stream.write(buffer, timeout=remaining)
        finally:
            if self._timeout.max_timeout > 0:
                self.set_write_deadline(self._clock() + self._timeout.max_timeout)

    def close(self) -> None:
        self._stream.close()

    def start_tls(
        self,
        ssl_context: ssl.SSLContext,
        server_hostname: str | None = None,
        timeout: float | None = None,
    ) -> "TimeoutStream":
        remaining = self._remaining(self._read_deadline, timeout)
        if remaining is not None and remaining <= 0:
            raise httpcore.ConnectTimeout("deadline exceeded before TLS handshake")
        tls_stream = self._stream.start_tls(
            ssl_context, server_hostname=server_hostname, timeout=remaining
        )
        wrapped = TimeoutStream(tls_stream, self._timeout, clock=self._clock)
        wrapped.set_read_deadline(self._read_deadline)
        wrapped.set_write_deadline(self._write_deadline)
        return wrapped

    def get_extra_info(self, info: str) -> typing.Any:
        return self._stream.get_extra_info(info)

    @property
    def local_addr(self) -> typing.Any:
        return self._stream.get_extra_info("client_addr")

    @property
    def remote_addr(self) -> typing.Any:
        return self._stream.get_extra_info("server_addr")

    def set_deadline(self, deadline: float | None) -> None:
        self._read_deadline = deadline
        self._write_deadline = deadline

    def set_read_deadline(self, deadline: float | None) -> None:
        self._read_deadline = deadline

    def set_write_deadline(self, deadline: float | None) -> None:
        self._write_deadline = deadline

    def _remaining(self, deadline: float | None, timeout: float | None) -> float | None:
        """Seconds left until ``deadline``, capped by the caller's timeout."""
        if deadline is None:
            return timeout
        remaining = deadline - self._clock()
        if timeout is not None:
            remaining = min(remaining, timeout)
        return remaining


class TimeoutBackend(httpcore.NetworkBackend):
    """Network backend that dials with the connect timeout and wraps each stream."""

    def __init__(
        self,
        timeout: HTTPTimeout,
        backend: httpcore.NetworkBackend | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self._timeout = timeout
        self._backend = backend if backend is not None else httpcore.SyncBackend()
        self._clock = clock

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: float | None = None,
        local_address: str | None = None,
        socket_options: Iterable[typing.Any] | None = None,
    ) -> TimeoutStream:
        logger.debug(f"Dialing {host}:{port}")
        stream = self._backend.connect_tcp(
            host,
            port,
            timeout=self._connect_timeout(timeout),
            local_address=local_address,
            socket_options=socket_options,
        )
        return TimeoutStream(stream, self._timeout, clock=self._clock)

    def connect_unix_socket(
        self,
        path: str,
        timeout: float | None = None,
        socket_options: Iterable[typing.Any] | None = None,
    ) -> TimeoutStream:
        logger.debug(f"Dialing unix socket {path}")
        stream = self._backend.connect_unix_socket(
            path,
            timeout=self._connect_timeout(timeout),
            socket_options=socket_options,
        )
        return TimeoutStream(stream, self._timeout, clock=self._clock)

    def sleep(self, seconds: float) -> None:
        self._backend.sleep(seconds)

    def _connect_timeout(self, timeout: float | None) -> float | None:
        if self._timeout.connect_timeout > 0:
            return self._timeout.connect_timeout
        return timeout
