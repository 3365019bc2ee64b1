import errno
import select
import socket

import pytest

from reactorkit import sockets
from reactorkit.inet_address import InetAddress
from reactorkit.logger import FatalError
from reactorkit.sockets import Socket


@pytest.fixture
def listener():
    sock = sockets.create_nonblocking(socket.AF_INET)
    sockets.bind(sock, InetAddress(0, loopback_only=True))
    sockets.listen(sock)
    yield sock
    sock.close()


@pytest.fixture
def pair(listener):
    client = socket.create_connection(listener.getsockname())
    select.select([listener], [], [], 2)
    conn, peer = sockets.accept(listener)
    yield conn, peer, client
    conn.close()
    client.close()


def _wait_readable(sock):
    ready, _, _ = select.select([sock], [], [], 2)
    return ready


def test_create_nonblocking_is_nonblocking_tcp():
    sock = sockets.create_nonblocking(socket.AF_INET)
    try:
        assert sock.getblocking() is False
        assert sock.type == socket.SOCK_STREAM
        assert sock.family == socket.AF_INET
    finally:
        sock.close()


def test_accept_returns_nonblocking_connection_and_peer(pair):
    conn, peer, client = pair
    assert conn.getblocking() is False
    assert peer.port() == client.getsockname()[1]
    assert peer.to_ip() == "127.0.0.1"


def test_accept_without_pending_connection_raises(listener):
    with pytest.raises(BlockingIOError):
        sockets.accept(listener)


def test_bind_address_in_use_is_fatal(listener):
    port = listener.getsockname()[1]
    second = sockets.create_nonblocking(socket.AF_INET)
    try:
        with pytest.raises(FatalError):
            sockets.bind(second, InetAddress.from_ip_port("127.0.0.1", port))
    finally:
        second.close()


def test_connect_starts_connection(listener):
    client = sockets.create_nonblocking(socket.AF_INET)
    try:
        port = listener.getsockname()[1]
        code = sockets.connect(client, InetAddress.from_ip_port("127.0.0.1", port))
        assert code in (0, errno.EINPROGRESS)
        assert _wait_readable(listener)
        conn, peer = sockets.accept(listener)
        conn.close()
        assert peer.port() == client.getsockname()[1]
    finally:
        client.close()


def test_write_and_read_round_trip(pair):
    conn, _, client = pair
    assert sockets.write(conn, b"hello") == 5
    assert client.recv(16) == b"hello"
    client.sendall(b"world")
    assert _wait_readable(conn)
    assert sockets.read(conn, 16) == b"world"


def test_shutdown_write_signals_end_of_stream(pair):
    conn, _, client = pair
    sockets.shutdown_write(conn)
    assert client.recv(16) == b""


def test_close_releases_descriptor():
    sock = sockets.create_nonblocking(socket.AF_INET)
    sockets.close(sock)
    assert sock.fileno() == -1


def test_get_socket_error_on_fresh_socket_is_zero():
    sock = sockets.create_nonblocking(socket.AF_INET)
    try:
        assert sockets.get_socket_error(sock) == 0
    finally:
        sock.close()


def test_local_and_peer_addresses_match_across_connection(pair):
    conn, _, client = pair
    assert sockets.get_local_addr(conn).port() == client.getpeername()[1]
    assert sockets.get_peer_addr(conn).port() == client.getsockname()[1]
    assert sockets.get_local_addr(conn) == sockets.get_peer_addr(client)


def test_regular_connection_is_not_self_connect(pair):
    conn, _, _ = pair
    assert sockets.is_self_connect(conn) is False


def test_self_connect_detected():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind(("127.0.0.1", 0))
        sock.connect(sock.getsockname())
        assert sockets.is_self_connect(sock) is True
    finally:
        sock.close()


def test_socket_fd_matches_underlying():
    raw = sockets.create_nonblocking(socket.AF_INET)
    with Socket(raw) as wrapped:
        assert wrapped.fd() == raw.fileno()
    assert raw.fileno() == -1


def test_socket_options_are_applied():
    with Socket(sockets.create_nonblocking(socket.AF_INET)) as wrapped:
        wrapped.set_reuse_addr(True)
        wrapped.set_keep_alive(True)
        wrapped.set_tcp_no_delay(True)
        raw = wrapped.sock
        assert raw.getsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR) != 0
        assert raw.getsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE) != 0
        assert raw.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) != 0
        wrapped.set_tcp_no_delay(False)
        assert raw.getsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY) == 0


def test_socket_bind_listen_accept():
    with Socket(sockets.create_nonblocking(socket.AF_INET)) as server:
        server.bind_address(InetAddress(0, loopback_only=True))
        server.listen()
        client = socket.create_connection(server.sock.getsockname())
        try:
            assert _wait_readable(server.sock)
            conn, peer = server.accept()
            conn.close()
            assert peer.port() == client.getsockname()[1]
        finally:
            client.close()


def test_tcp_info_string_on_connection(pair):
    conn, _, _ = pair
    text = Socket(conn).get_tcp_info_string()
    assert text.startswith("unrecovered=")
    assert "total_retrans=" in text