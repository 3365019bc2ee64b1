"""Accepts incoming TCP connections on a listening socket driven by an event loop."""

from __future__ import annotations

import errno
import os
from typing import Callable

from reactorkit.channel import Channel
from reactorkit.inet_address import InetAddress
from reactorkit.logger import log_error
from reactorkit.sockets import Socket, close, create_nonblocking
from reactorkit.timestamp import Timestamp

NewConnectionCallback = Callable[[object, InetAddress], None]


class Acceptor:
    """Owns a listening socket and hands each accepted connection to a callback.

    ``new_connection_callback`` receives the accepted socket and the peer
    address; without one, accepted connections are closed at once. A spare
    descriptor is kept open so that connections can still be accepted and
    dropped when the process runs out of descriptors.
    """

    def __init__(self, loop, listen_addr: InetAddress, reuseport: bool = False) -> None:
        self._loop = loop
        self.socket = Socket(create_nonblocking(listen_addr.family()))
        self._channel = Channel(loop, self.socket.fd())
        self._listening = False
        self._closed = False
        self._idle = open(os.devnull, "rb")
        self.new_connection_callback: NewConnectionCallback | None = None
        self.socket.set_reuse_addr(True)
        self.socket.set_reuse_port(reuseport)
        self.socket.bind_address(listen_addr)
        self._channel.read_callback = self._handle_read

    def listen(self) -> None:
        """Start listening and watching the socket for incoming connections."""
        self._listening = True
        self.socket.listen()
        self._channel.enable_reading()

    def listening(self) -> bool:
        return self._listening

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            conn, peer_addr = self.socket.accept()
        except OSError as exc:
            log_error("in Acceptor::handleRead")
            if exc.errno == errno.EMFILE:
                self._drop_with_idle_descriptor()
            return
        if self.new_connection_callback is not None:
            self.new_connection_callback(conn, peer_addr)
        else:
            close(conn)

    def _drop_with_idle_descriptor(self) -> None:
        self._idle.close()
        try:
            conn, _ = self.socket.sock.accept()
        except OSError:
            pass
        else:
            conn.close()
        self._idle = open(os.devnull, "rb")

    def close(self) -> None:
        """Stop watching the socket and release it and the spare descriptor."""
        if self._closed:
            return
        self._closed = True
        self._channel.disable_all()
        self._channel.remove()
        self._idle.close()
        self.socket.close()

    def __enter__(self) -> Acceptor:
        return self

    def __exit__(self, *args) -> bool:
        self.close()
        return False