import socket

import pytest

from reactorkit.acceptor import Acceptor
from reactorkit.event_loop import EventLoop
from reactorkit.inet_address import InetAddress


@pytest.fixture
def loop():
    with EventLoop() as ev:
        yield ev


@pytest.fixture
def acceptor(loop):
    acc = Acceptor(loop, InetAddress(0, loopback_only=True), False)
    yield acc
    acc.close()


def run_loop(loop, timeout=5.0):
    guard = loop.run_after(timeout, loop.quit)
    loop.loop()
    loop.cancel(guard)


def port_of(acceptor):
    return acceptor.socket.sock.getsockname()[1]


def test_listening_becomes_true_after_listen(acceptor):
    assert acceptor.listening() is False
    acceptor.listen()
    assert acceptor.listening() is True


def test_bound_to_loopback(acceptor):
    assert acceptor.socket.sock.getsockname()[0] == "127.0.0.1"


def test_accepted_connection_is_handed_to_callback(loop, acceptor):
    accepted = []

    def on_connection(conn, peer):
        accepted.append((conn, peer))
        loop.quit()

    acceptor.new_connection_callback = on_connection
    acceptor.listen()
    with socket.create_connection(("127.0.0.1", port_of(acceptor)), timeout=5) as client:
        run_loop(loop)
        assert len(accepted) == 1
        conn, peer = accepted[0]
        try:
            assert peer.port() == client.getsockname()[1]
            assert peer.to_ip() == client.getsockname()[0]
            assert conn.getblocking() is False
        finally:
            conn.close()


def test_connection_without_callback_is_closed(loop, acceptor):
    acceptor.listen()
    with socket.create_connection(("127.0.0.1", port_of(acceptor)), timeout=5) as client:
        run_loop(loop, 0.2)
        assert client.recv(1) == b""


def test_close_releases_socket(acceptor):
    acceptor.listen()
    acceptor.close()
    assert acceptor.socket.sock.fileno() == -1