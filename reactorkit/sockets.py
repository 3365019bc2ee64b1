"""Thin helpers around TCP sockets and an owning socket wrapper."""

from __future__ import annotations

import errno
import socket
import struct

from reactorkit.inet_address import InetAddress
from reactorkit.logger import log_error, log_fatal

_EXPECTED_ACCEPT_ERRORS = frozenset({
    errno.EAGAIN,
    errno.EWOULDBLOCK,
    errno.ECONNABORTED,
    errno.EINTR,
    errno.EPROTO,
    errno.EPERM,
    errno.EMFILE,
})

_UNEXPECTED_ACCEPT_ERRORS = frozenset({
    errno.EBADF,
    errno.EFAULT,
    errno.EINVAL,
    errno.ENFILE,
    errno.ENOBUFS,
    errno.ENOMEM,
    errno.ENOTSOCK,
    errno.EOPNOTSUPP,
})

# struct tcp_info: eight one-byte fields followed by 32-bit counters.
_TCP_INFO = struct.Struct("8B24I")


def create_nonblocking(family: int) -> socket.socket:
    """Create a non-blocking, non-inheritable TCP socket of ``family``."""
    try:
        sock = socket.socket(family, socket.SOCK_STREAM, socket.IPPROTO_TCP)
    except OSError:
        log_fatal("sockets::createNonblockingOrDie")
    sock.setblocking(False)
    return sock


def bind(sock: socket.socket, address: InetAddress) -> None:
    """Bind ``sock`` to ``address``; failure is fatal."""
    try:
        sock.bind(address.sockaddr())
    except OSError as exc:
        log_fatal("sockets::bindOrDie ", str(exc))


def listen(sock: socket.socket) -> None:
    """Start listening with the system's maximum backlog; failure is fatal."""
    try:
        sock.listen(socket.SOMAXCONN)
    except OSError as exc:
        log_fatal("sockets::listenOrDie ", str(exc))


def accept(sock: socket.socket) -> tuple[socket.socket, InetAddress]:
    """Accept one connection and return it, non-blocking, with the peer address.

    Transient errors (EAGAIN, ECONNABORTED, EINTR, EPROTO, EPERM, EMFILE) are
    logged and re-raised as OSError; any other failure is fatal.
    """
    try:
        conn, raw = sock.accept()
    except OSError as exc:
        log_error("Socket::accept")
        if exc.errno in _EXPECTED_ACCEPT_ERRORS:
            raise
        if exc.errno in _UNEXPECTED_ACCEPT_ERRORS:
            log_fatal("unexpected error of ::accept ", exc.errno)
        log_fatal("unknown error of ::accept ", exc.errno)
    conn.setblocking(False)
    return conn, InetAddress.from_sockaddr(conn.family, raw)


def connect(sock: socket.socket, address: InetAddress) -> int:
    """Start connecting to ``address``; return 0 or the errno of the attempt."""
    return sock.connect_ex(address.sockaddr())


def read(sock: socket.socket, size: int) -> bytes:
    """Receive up to ``size`` bytes; OSError propagates."""
    return sock.recv(size)


def write(sock: socket.socket, data) -> int:
    """Send what the kernel accepts of ``data`` and return the count sent."""
    return sock.send(data)


def close(sock: socket.socket) -> None:
    try:
        sock.close()
    except OSError:
        log_error("sockets::close")


def shutdown_write(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_WR)
    except OSError:
        log_error("sockets::shutdownWrite")


def get_socket_error(sock: socket.socket) -> int:
    """Return the pending SO_ERROR of ``sock``, or the errno of querying it."""
    try:
        return sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    except OSError as exc:
        return exc.errno or 0


def _address_of(sock: socket.socket, getter, what: str) -> InetAddress:
    try:
        return InetAddress.from_sockaddr(sock.family, getter())
    except OSError:
        log_error(what)
        return InetAddress(0, ipv6=sock.family == socket.AF_INET6)


def get_local_addr(sock: socket.socket) -> InetAddress:
    return _address_of(sock, sock.getsockname, "sockets::getLocalAddr")


def get_peer_addr(sock: socket.socket) -> InetAddress:
    return _address_of(sock, sock.getpeername, "sockets::getPeerAddr")


def is_self_connect(sock: socket.socket) -> bool:
    """Return True when the socket's local and peer endpoints are the same."""
    local = get_local_addr(sock)
    peer = get_peer_addr(sock)
    if local.family() not in (socket.AF_INET, socket.AF_INET6):
        return False
    return local.port() == peer.port() and local.to_ip() == peer.to_ip()


class Socket:
    """Owns a socket and closes it on ``close`` or on leaving a ``with`` block."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock

    def fd(self) -> int:
        return self.sock.fileno()

    def bind_address(self, address: InetAddress) -> None:
        bind(self.sock, address)

    def listen(self) -> None:
        listen(self.sock)

    def accept(self) -> tuple[socket.socket, InetAddress]:
        return accept(self.sock)

    def shutdown_write(self) -> None:
        shutdown_write(self.sock)

    def _set_flag(self, level: int, option: int, on: bool) -> None:
        self.sock.setsockopt(level, option, 1 if on else 0)

    def set_tcp_no_delay(self, on: bool) -> None:
        self._set_flag(socket.IPPROTO_TCP, socket.TCP_NODELAY, on)

    def set_reuse_addr(self, on: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_REUSEADDR, on)

    def set_reuse_port(self, on: bool) -> None:
        option = getattr(socket, "SO_REUSEPORT", None)
        if option is None:
            if on:
                log_error("SO_REUSEPORT is not supported.")
            return
        try:
            self._set_flag(socket.SOL_SOCKET, option, on)
        except OSError:
            if on:
                log_error("SO_REUSEPORT failed.")

    def set_keep_alive(self, on: bool) -> None:
        self._set_flag(socket.SOL_SOCKET, socket.SO_KEEPALIVE, on)

    def _tcp_info(self) -> tuple | None:
        option = getattr(socket, "TCP_INFO", None)
        if option is None:
            return None
        try:
            raw = self.sock.getsockopt(socket.IPPROTO_TCP, option, _TCP_INFO.size)
        except OSError:
            return None
        return _TCP_INFO.unpack(raw[:_TCP_INFO.size].ljust(_TCP_INFO.size, b"\0"))

    def get_tcp_info_string(self) -> str | None:
        """Return a summary of the kernel's TCP statistics, or None if unavailable."""
        info = self._tcp_info()
        if info is None:
            return None
        retransmits = info[2]
        counters = info[8:]
        return (
            f"unrecovered={retransmits} "
            f"rto={counters[0]} ato={counters[1]} snd_mss={counters[2]} rcv_mss={counters[3]} "
            f"lost={counters[6]} retrans={counters[7]} rtt={counters[15]} rttvar={counters[16]} "
            f"sshthresh={counters[17]} cwnd={counters[18]} total_retrans={counters[23]}"
        )

    def close(self) -> None:
        close(self.sock)

    def __enter__(self) -> Socket:
        return self

    def __exit__(self, *args) -> bool:
        self.close()
        return False