"""One established TCP connection served by an event loop."""

from __future__ import annotations

import errno
import weakref
from enum import Enum
from functools import partial
from typing import Callable

from reactorkit.buffer import Buffer
from reactorkit.channel import Channel
from reactorkit.inet_address import InetAddress
from reactorkit.logger import log_debug, log_error, log_info, log_warn, strerror
from reactorkit.sockets import Socket, get_socket_error, write
from reactorkit.timestamp import Timestamp

ConnectionCallback = Callable[["TcpConnection"], None]
CloseCallback = Callable[["TcpConnection"], None]
WriteCompleteCallback = Callable[["TcpConnection"], None]
MessageCallback = Callable[["TcpConnection", Buffer, Timestamp], None]


def default_connection_callback(conn: TcpConnection) -> None:
    """Ignore connection state changes."""


def default_message_callback(conn: TcpConnection, buffer: Buffer, receive_time: Timestamp) -> None:
    """Discard everything received."""
    buffer.retrieve_all()


class ConnectionState(Enum):
    DISCONNECTED = "kDisconnected"
    CONNECTING = "kConnecting"
    CONNECTED = "kConnected"
    DISCONNECTING = "kDisconnecting"


class TcpConnection:
    """A connected socket with input and output buffers, run by one loop.

    Callbacks are plain attributes: ``connection_callback`` on establishment
    and teardown, ``message_callback`` when data arrives,
    ``write_complete_callback`` when the output buffer drains, and
    ``close_callback`` when the peer closes.
    """

    def __init__(self, loop, name: str, sock, local_addr: InetAddress,
                 peer_addr: InetAddress) -> None:
        self._loop = loop
        self._name = name
        self.state = ConnectionState.CONNECTING
        self.reading = True
        self._socket = Socket(sock)
        self._channel = Channel(loop, sock.fileno())
        self._local_addr = local_addr
        self._peer_addr = peer_addr
        self.connection_callback: ConnectionCallback = default_connection_callback
        self.message_callback: MessageCallback = default_message_callback
        self.write_complete_callback: WriteCompleteCallback | None = None
        self.close_callback: CloseCallback | None = None
        self.input_buffer = Buffer()
        self.output_buffer = Buffer()
        self._channel.read_callback = self._handle_read
        self._channel.write_callback = self._handle_write
        self._channel.close_callback = self._handle_close
        self._channel.error_callback = self._handle_error
        log_debug("TcpConnection::ctor[", name, "] fd=", self._channel.fd)
        self._socket.set_keep_alive(True)

    @property
    def loop(self):
        return self._loop

    @property
    def name(self) -> str:
        return self._name

    @property
    def local_address(self) -> InetAddress:
        return self._local_addr

    @property
    def peer_address(self) -> InetAddress:
        return self._peer_addr

    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    def disconnected(self) -> bool:
        return self.state is ConnectionState.DISCONNECTED

    def get_tcp_info_string(self) -> str:
        """Return the kernel's TCP statistics summary, or "" if unavailable."""
        return self._socket.get_tcp_info_string() or ""

    def send(self, message) -> None:
        """Send bytes, text (as UTF-8) or the readable contents of a Buffer.

        Nothing is sent unless the connection is established.
        """
        if self.state is not ConnectionState.CONNECTED:
            return
        if isinstance(message, Buffer):
            if self._loop.is_in_loop_thread():
                self._send_in_loop(message.peek())
                message.retrieve_all()
                return
            data = message.retrieve_all_as_bytes()
        elif isinstance(message, str):
            data = message.encode("utf-8")
        else:
            data = bytes(message)
        if self._loop.is_in_loop_thread():
            self._send_in_loop(data)
        else:
            self._loop.run_in_loop(partial(self._send_in_loop, data))

    def _send_in_loop(self, data: bytes) -> None:
        if self.state is ConnectionState.DISCONNECTED:
            log_warn("disconnected, give up writing")
            return
        view = memoryview(data)
        nwrote = 0
        remaining = len(view)
        fault_error = False
        if not self._channel.is_writing() and self.output_buffer.readable_bytes() == 0:
            try:
                nwrote = write(self._socket.sock, view)
            except BlockingIOError:
                nwrote = 0
            except OSError as exc:
                nwrote = 0
                log_error("TcpConnection::sendInLoop ", str(exc))
                if exc.errno in (errno.EPIPE, errno.ECONNRESET):
                    fault_error = True
            else:
                remaining = len(view) - nwrote
                if remaining == 0 and self.write_complete_callback is not None:
                    self._loop.queue_in_loop(partial(self.write_complete_callback, self))
        if not fault_error and remaining > 0:
            self.output_buffer.append(view[nwrote:])
            if not self._channel.is_writing():
                self._channel.enable_writing()

    def shutdown(self) -> None:
        """Close the writing side once all buffered output has been sent."""
        if self.state is ConnectionState.CONNECTED:
            self.state = ConnectionState.DISCONNECTING
            self._loop.run_in_loop(self._shutdown_in_loop)

    def _shutdown_in_loop(self) -> None:
        if not self._channel.is_writing():
            self._socket.shutdown_write()

    def force_close(self) -> None:
        if self.state in (ConnectionState.CONNECTED, ConnectionState.DISCONNECTING):
            self.state = ConnectionState.DISCONNECTING
            self._loop.queue_in_loop(self._force_close_in_loop)

    def force_close_with_delay(self, seconds: float) -> None:
        if self.state in (ConnectionState.CONNECTED, ConnectionState.DISCONNECTING):
            self.state = ConnectionState.DISCONNECTING
            ref = weakref.ref(self)

            def close_later() -> None:
                conn = ref()
                if conn is not None:
                    conn.force_close()

            self._loop.run_after(seconds, close_later)

    def _force_close_in_loop(self) -> None:
        if self.state in (ConnectionState.CONNECTED, ConnectionState.DISCONNECTING):
            self._handle_close()

    def set_tcp_no_delay(self, on: bool) -> None:
        self._socket.set_tcp_no_delay(on)

    def start_read(self) -> None:
        self._loop.run_in_loop(self._start_read_in_loop)

    def _start_read_in_loop(self) -> None:
        if not self.reading or not self._channel.is_reading():
            self._channel.enable_reading()
            self.reading = True

    def stop_read(self) -> None:
        self._loop.run_in_loop(self._stop_read_in_loop)

    def _stop_read_in_loop(self) -> None:
        if self.reading or self._channel.is_reading():
            self._channel.disable_reading()
            self.reading = False

    def connect_established(self) -> None:
        """Mark the connection up, start reading and notify the connection callback."""
        self.state = ConnectionState.CONNECTED
        self._channel.tie(self)
        self._channel.enable_reading()
        self.connection_callback(self)

    def connect_destroyed(self) -> None:
        """Tear the connection down and release its socket."""
        if self.state is ConnectionState.CONNECTED:
            self.state = ConnectionState.DISCONNECTED
            self._channel.disable_all()
            self.connection_callback(self)
        self._channel.remove()
        self._socket.close()

    def _handle_read(self, receive_time: Timestamp) -> None:
        try:
            n = self.input_buffer.read_fd(self._socket.sock)
        except OSError as exc:
            log_error("TcpConnection::handleRead ", str(exc))
            self._handle_error()
            return
        if n > 0:
            self.message_callback(self, self.input_buffer, receive_time)
        else:
            self._handle_close()

    def _handle_write(self) -> None:
        if not self._channel.is_writing():
            log_info("Connection fd = ", self._channel.fd, " is down, no more writing")
            return
        try:
            n = write(self._socket.sock, self.output_buffer.peek())
        except OSError as exc:
            log_error("TcpConnection::handleWrite ", str(exc))
            return
        if n <= 0:
            log_error("TcpConnection::handleWrite")
            return
        self.output_buffer.retrieve(n)
        if self.output_buffer.readable_bytes() == 0:
            self._channel.disable_writing()
            if self.write_complete_callback is not None:
                self._loop.queue_in_loop(partial(self.write_complete_callback, self))
            if self.state is ConnectionState.DISCONNECTING:
                self._shutdown_in_loop()

    def _handle_close(self) -> None:
        log_info("fd = ", self._channel.fd, " state = ", self.state.value)
        self.state = ConnectionState.DISCONNECTED
        self._channel.disable_all()
        self.connection_callback(self)
        if self.close_callback is not None:
            self.close_callback(self)

    def _handle_error(self) -> None:
        err = get_socket_error(self._socket.sock)
        log_error("TcpConnection::handleError [", self._name, "] - SO_ERROR = ",
                  err, " ", strerror(err))

    def __repr__(self) -> str:
        return f"TcpConnection({self._name!r}, {self.state.name})"