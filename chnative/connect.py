"""TCP connections to the server, with host selection and timeouts."""

from __future__ import annotations

import itertools
import logging
import socket
import ssl
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

_RECV_SIZE = 65536
_MIN_TIMEOUT = 1e-6

_tick = itertools.count(1)

_log = logging.getLogger(__name__)


class BadConnectionError(ConnectionError):
    """The connection is unusable and must be discarded."""


class OpenStrategy(Enum):
    """How the host to connect to is chosen among several."""

    RANDOM = 1
    IN_ORDER = 2
    TIME_RANDOM = 3

    def __str__(self) -> str:
        return {
            OpenStrategy.IN_ORDER: "in_order",
            OpenStrategy.TIME_RANDOM: "time_random",
        }.get(self, "random")


@dataclass
class ConnOptions:
    hosts: list[str]
    secure: bool = False
    skip_verify: bool = False
    tls_context: ssl.SSLContext | None = None
    conn_timeout: float = 5.0
    read_timeout: float = 60.0
    write_timeout: float = 60.0
    no_delay: bool = True
    open_strategy: OpenStrategy = OpenStrategy.RANDOM
    logf: Callable[[str], None] = field(default=_log.debug)


@dataclass
class _Deadline:
    """An absolute deadline refreshed after a quarter of its timeout."""

    timeout: float
    set_at: float | None = None
    expires: float | None = None

    def arm(self) -> None:
        if not self.timeout:
            return
        now = time.monotonic()
        if self.set_at is None or now - self.set_at > self.timeout / 4:
            self.set_at = now
            self.expires = now + self.timeout

    def left(self) -> float | None:
        if not self.timeout or self.expires is None:
            return None
        return max(self.expires - time.monotonic(), _MIN_TIMEOUT)

    def reset(self) -> None:
        self.set_at = None
        self.expires = None


class Connection:
    """A socket that reads and writes whole buffers and fails as a bad connection."""

    def __init__(
        self,
        sock: socket.socket,
        ident: int,
        read_timeout: float = 0.0,
        write_timeout: float = 0.0,
        logf: Callable[[str], None] | None = None,
    ) -> None:
        self._sock = sock
        self.ident = ident
        self.closed = False
        self._logf = logf or _log.debug
        self._buffer = bytearray()
        self._read_deadline = _Deadline(read_timeout)
        self._write_deadline = _Deadline(write_timeout)

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def read(self, size: int) -> bytes:
        """Read exactly ``size`` bytes."""
        self._read_deadline.arm()
        try:
            while len(self._buffer) < size:
                self._sock.settimeout(self._read_deadline.left())
                chunk = self._sock.recv(max(size - len(self._buffer), _RECV_SIZE))
                if not chunk:
                    raise EOFError("connection closed by peer")
                self._buffer += chunk
        except (OSError, EOFError) as exc:
            self._logf(f"[connect] read error: {exc}")
            self.close()
            raise BadConnectionError(f"read failed: {exc}") from exc
        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data

    def write(self, data: bytes) -> int:
        """Write all of ``data`` and return its length."""
        self._write_deadline.arm()
        try:
            self._sock.settimeout(self._write_deadline.left())
            self._sock.sendall(data)
        except OSError as exc:
            self._logf(f"[connect] write error: {exc}")
            self.close()
            raise BadConnectionError(f"write failed: {exc}") from exc
        return len(data)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._sock.close()

    def check(self) -> None:
        """Check that an idle connection is still alive, without blocking.

        Raises EOFError if the peer closed it and ConnectionError if
        unexpected data is waiting on it.
        """
        peek = getattr(socket, "MSG_PEEK", None)
        if peek is None or isinstance(self._sock, ssl.SSLSocket):
            return
        self._read_deadline.reset()
        previous = self._sock.gettimeout()
        self._sock.setblocking(False)
        try:
            data = self._sock.recv(1, peek)
        except (BlockingIOError, InterruptedError):
            return
        finally:
            self._sock.settimeout(previous)
        if not data:
            raise EOFError("connection closed by peer")
        raise ConnectionError("unexpected read from socket")


def _next_ident() -> int:
    value = next(_tick)
    wrapped = (value + 2**31) % 2**32 - 2**31
    return abs(wrapped)


def _split_host_port(address: str) -> tuple[str, int | str]:
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address}: missing port in address")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    elif ":" in host:
        raise ValueError(f"address {address}: too many colons in address")
    return host, int(port) if port.isdigit() else port


def _choose(
    strategy: OpenStrategy, index: int, ident: int, count: int, checked: set[int]
) -> int:
    if strategy is OpenStrategy.IN_ORDER:
        return index
    if strategy is OpenStrategy.RANDOM:
        return (ident + index) % count
    num = (time.time_ns() // 1000 % 1000) % count
    while num in checked:
        num = time.time_ns() % count
    checked.add(num)
    return num


def _open_socket(
    address: str, options: ConnOptions, context: ssl.SSLContext | None
) -> socket.socket:
    host, port = _split_host_port(address)
    sock = socket.create_connection((host, port), timeout=options.conn_timeout or None)
    try:
        if context is not None:
            sock = context.wrap_socket(sock, server_hostname=host)
        else:
            sock.setsockopt(
                socket.IPPROTO_TCP, socket.TCP_NODELAY, int(options.no_delay)
            )
        sock.settimeout(None)
    except BaseException:
        sock.close()
        raise
    return sock


def dial(options: ConnOptions) -> Connection:
    """Connect to the first reachable host, chosen by the open strategy."""
    hosts = options.hosts
    if not hosts:
        raise ValueError("no hosts to connect to")
    ident = _next_ident()
    context = None
    if options.secure:
        context = options.tls_context or ssl.create_default_context()
        if options.skip_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

    checked: set[int] = set()
    error: Exception | None = None
    for index in range(len(hosts)):
        num = _choose(options.open_strategy, index, ident, len(hosts), checked)
        try:
            sock = _open_socket(hosts[num], options, context)
        except (OSError, ValueError) as exc:
            error = exc
            options.logf(
                f"[dial err] secure={options.secure}, skip_verify={options.skip_verify}, "
                f"strategy={options.open_strategy}, ident={ident}, addr={hosts[num]}\n{exc!r}"
            )
            continue
        options.logf(
            f"[dial] secure={options.secure}, skip_verify={options.skip_verify}, "
            f"strategy={options.open_strategy}, ident={ident}, server={num} -> "
            f"{sock.getpeername()}"
        )
        return Connection(
            sock, ident, options.read_timeout, options.write_timeout, options.logf
        )
    assert error is not None
    raise error