"""Copy data between remote network connections and local unix sockets."""

from __future__ import annotations

import queue
import socket
import ssl
import sys
import threading
from collections.abc import Callable

_BUFSIZE = 65536
_POLL_INTERVAL = 0.05

_KEEPALIVE_IDLE = 3
_KEEPALIVE_INTERVAL = 3
_KEEPALIVE_PROBES = 3
_USER_TIMEOUT_MS = 30000

if sys.platform == "darwin":
    _TCP_KEEPIDLE = getattr(socket, "TCP_KEEPALIVE", 0x10)
    _TCP_KEEPINTVL = 0x101
    _TCP_KEEPCNT = 0x102
else:
    _TCP_KEEPIDLE = getattr(socket, "TCP_KEEPIDLE", None)
    _TCP_KEEPINTVL = getattr(socket, "TCP_KEEPINTVL", None)
    _TCP_KEEPCNT = getattr(socket, "TCP_KEEPCNT", None)
_TCP_USER_TIMEOUT = getattr(socket, "TCP_USER_TIMEOUT", None)

_REMOTE_TO_LOCAL = "remote -> local"
_LOCAL_TO_REMOTE = "local -> remote"

DialFunc = Callable[[str], socket.socket]


class ProxyError(Exception):
    """Errors hit while copying data in each direction."""

    def __init__(self, first: str | None = None, second: str | None = None) -> None:
        self.first = first
        self.second = second
        super().__init__(self._message())

    def _message(self) -> str:
        parts = []
        if self.first is not None:
            parts.append(f"first: {self.first}")
        if self.second is not None:
            parts.append(f"second: {self.second}")
        return " ".join(parts)


def set_keepalive(sock: socket.socket) -> None:
    """Enable TCP keepalive (3s idle, 3s interval, 3 probes) and a user timeout."""
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
    settings = (
        (_TCP_KEEPIDLE, _KEEPALIVE_IDLE),
        (_TCP_KEEPINTVL, _KEEPALIVE_INTERVAL),
        (_TCP_KEEPCNT, _KEEPALIVE_PROBES),
        (_TCP_USER_TIMEOUT, _USER_TIMEOUT_MS),
    )
    for option, value in settings:
        if option is not None:
            sock.setsockopt(socket.IPPROTO_TCP, option, value)


def socketpair() -> tuple[socket.socket, socket.socket]:
    """Return a pair of connected unix stream sockets."""
    return socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)


def _is_tcp(sock: socket.socket) -> bool:
    return sock.family in (socket.AF_INET, socket.AF_INET6) and sock.type == socket.SOCK_STREAM


def _shutdown(sock: socket.socket, how: int) -> None:
    try:
        # Bypass SSLSocket.shutdown, which would tear down the TLS layer.
        socket.socket.shutdown(sock, how)
    except OSError:
        pass


def _force_close(sock: socket.socket) -> None:
    _shutdown(sock, socket.SHUT_RDWR)
    try:
        sock.close()
    except OSError:
        pass


def _wrap(
    remote: socket.socket, context: ssl.SSLContext, server_hostname: str | None
) -> socket.socket:
    if context.protocol == ssl.PROTOCOL_TLS_SERVER:
        return context.wrap_socket(remote, server_side=True)
    hostname = getattr(context, "server_name", None) or server_hostname
    if not hostname and _is_tcp(remote):
        hostname = remote.getpeername()[0]
    return context.wrap_socket(remote, server_hostname=hostname or None)


def _pump(src: socket.socket, dst: socket.socket, label: str, results: queue.Queue) -> None:
    try:
        while True:
            data = src.recv(_BUFSIZE)
            if not data:
                break
            dst.sendall(data)
    except (OSError, ValueError) as exc:
        results.put((label, exc))
        return
    results.put((label, None))


def _wait_first(results: queue.Queue, stop: threading.Event | None):
    while True:
        try:
            return results.get(timeout=_POLL_INTERVAL)
        except queue.Empty:
            if stop is not None and stop.is_set():
                return None


def _proxy(
    remote: socket.socket,
    local: socket.socket,
    stop: threading.Event | None,
    context: ssl.SSLContext | None,
    server_hostname: str | None,
) -> None:
    tcp = _is_tcp(remote)
    if tcp:
        set_keepalive(remote)

    if context is not None:
        try:
            remote = _wrap(remote, context, server_hostname)
        except (OSError, ValueError) as exc:
            _force_close(remote)
            _force_close(local)
            raise ProxyError(first=f"{_REMOTE_TO_LOCAL}: {exc}") from exc

    results: queue.Queue = queue.Queue()
    for src, dst, label in (
        (remote, local, _REMOTE_TO_LOCAL),
        (local, remote, _LOCAL_TO_REMOTE),
    ):
        threading.Thread(target=_pump, args=(src, dst, label, results), daemon=True).start()

    first = _wait_first(results, stop)
    if first is None:
        _force_close(remote)
        _force_close(local)
        results.get()
        results.get()
        return

    label, err = first
    errors = [f"{label}: {err}" if err is not None else None]
    if label == _REMOTE_TO_LOCAL:
        _shutdown(local, socket.SHUT_RD)
    elif tcp:
        _shutdown(remote, socket.SHUT_RD)

    label, err = results.get()
    errors.append(f"{label}: {err}" if err is not None else None)
    _force_close(remote)
    _force_close(local)

    if any(error is not None for error in errors):
        raise ProxyError(*errors)


def proxy(
    remote: socket.socket,
    local: socket.socket,
    stop: threading.Event | None = None,
    context: ssl.SSLContext | None = None,
) -> None:
    """Copy data between a remote connection and a local unix socket.

    Returns when either side closes its connection or ``stop`` is set, and
    raises ProxyError when copying failed in either direction. When
    ``context`` is given the remote connection is wrapped in TLS, on the
    server side for a server context and on the client side otherwise.
    """
    _proxy(remote, local, stop, context, None)


def _spawn_proxy(
    remote: socket.socket,
    local: socket.socket,
    stop: threading.Event | None,
    context: ssl.SSLContext | None,
    server_hostname: str | None,
) -> None:
    def run() -> None:
        try:
            _proxy(remote, local, stop, context, server_hostname)
        except (ProxyError, OSError):
            pass

    threading.Thread(target=run, daemon=True).start()


def _split_host_port(address: str) -> tuple[str, str]:
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"address {address}: missing ']' in address")
        host, rest = address[1:end], address[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"address {address}: missing port in address")
        return host, rest[1:]
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"address {address}: missing port in address")
    if ":" in host:
        raise ValueError(f"address {address}: too many colons in address")
    return host, port


def _pair_or_raise() -> tuple[socket.socket, socket.socket]:
    try:
        return socketpair()
    except OSError as exc:
        raise OSError(f"create pair of Unix sockets: {exc}") from exc


def make_node_dial_func(stop: threading.Event | None, context: ssl.SSLContext) -> DialFunc:
    """Return a dial function that connects over TLS and hands back a unix socket.

    The expected server name is the context's ``server_name`` attribute if it
    has one, otherwise the host part of the dialed address.
    """

    def dial(address: str) -> socket.socket:
        host, port = _split_host_port(address)
        server_name = getattr(context, "server_name", None) or host
        conn = socket.create_connection((host, port))
        try:
            go_unix, c_unix = _pair_or_raise()
        except OSError:
            conn.close()
            raise
        _spawn_proxy(conn, go_unix, stop, context, server_name)
        return c_unix

    return dial


def ext_dial_func_with_proxy(stop: threading.Event | None, dial_func: DialFunc) -> DialFunc:
    """Wrap a dial function so that its connection is proxied to a unix socket."""

    def dial(address: str) -> socket.socket:
        go_unix, c_unix = _pair_or_raise()
        try:
            conn = dial_func(address)
        except BaseException:
            go_unix.close()
            c_unix.close()
            raise
        _spawn_proxy(conn, go_unix, stop, None, None)
        return c_unix

    return dial