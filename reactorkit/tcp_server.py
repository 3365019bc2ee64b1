"""A TCP server: one acceptor plus a pool of loops serving connections."""

from __future__ import annotations

import threading
from enum import Enum
from functools import partial

from reactorkit.acceptor import Acceptor
from reactorkit.event_loop_thread import EventLoopThreadPool
from reactorkit.inet_address import InetAddress
from reactorkit.logger import log_info
from reactorkit.sockets import get_local_addr
from reactorkit.tcp_connection import (
    TcpConnection,
    default_connection_callback,
    default_message_callback,
)


class ServerOption(Enum):
    NO_REUSE_PORT = 0
    REUSE_PORT = 1


class TcpServer:
    """Accepts connections on ``loop`` and spreads them over the thread pool.

    Set ``connection_callback``, ``message_callback``,
    ``write_complete_callback`` and ``thread_init_callback`` before ``start``.
    """

    def __init__(self, loop, listen_addr: InetAddress, name: str,
                 option: ServerOption = ServerOption.NO_REUSE_PORT) -> None:
        self._loop = loop
        self._ip_port = listen_addr.to_ip_port()
        self._name = name
        self.acceptor = Acceptor(loop, listen_addr, option is ServerOption.REUSE_PORT)
        self.thread_pool = EventLoopThreadPool(loop, name)
        self.thread_init_callback = None
        self.connection_callback = default_connection_callback
        self.message_callback = default_message_callback
        self.write_complete_callback = None
        self._started = False
        self._start_lock = threading.Lock()
        self._closed = False
        self._next_conn_id = 1
        self.connections: dict[str, TcpConnection] = {}
        self.acceptor.new_connection_callback = self._new_connection

    @property
    def loop(self):
        return self._loop

    def ip_port(self) -> str:
        return self._ip_port

    def name(self) -> str:
        return self._name

    def set_thread_num(self, num_threads: int) -> None:
        self.thread_pool.num_threads = num_threads

    def start(self) -> None:
        """Start the worker threads and begin listening; later calls do nothing."""
        with self._start_lock:
            if self._started:
                return
            self._started = True
        self.thread_pool.start(self.thread_init_callback)
        self._loop.run_in_loop(self.acceptor.listen)

    def _new_connection(self, sock, peer_addr: InetAddress) -> None:
        io_loop = self.thread_pool.get_next_loop()
        conn_name = f"{self._name}-{self._ip_port}#{self._next_conn_id}"
        self._next_conn_id += 1
        local_addr = get_local_addr(sock)
        conn = TcpConnection(io_loop, conn_name, sock, local_addr, peer_addr)
        self.connections[conn_name] = conn
        conn.connection_callback = self.connection_callback
        conn.message_callback = self.message_callback
        conn.write_complete_callback = self.write_complete_callback
        conn.close_callback = self._remove_connection
        io_loop.run_in_loop(conn.connect_established)

    def _remove_connection(self, conn: TcpConnection) -> None:
        self._loop.run_in_loop(partial(self._remove_connection_in_loop, conn))

    def _remove_connection_in_loop(self, conn: TcpConnection) -> None:
        log_info("TcpServer::removeConnectionInLoop [", self._name,
                 "] - connection ", conn.name)
        self.connections.pop(conn.name, None)
        conn.loop.queue_in_loop(conn.connect_destroyed)

    def close(self) -> None:
        """Destroy every connection, stop accepting and stop the worker threads."""
        if self._closed:
            return
        self._closed = True
        connections = list(self.connections.values())
        self.connections.clear()
        for conn in connections:
            conn.loop.run_in_loop(conn.connect_destroyed)
        self.acceptor.close()
        self.thread_pool.stop()

    def __enter__(self) -> TcpServer:
        return self

    def __exit__(self, *args) -> bool:
        self.close()
        return False