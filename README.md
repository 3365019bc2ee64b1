# reactorkit

reactorkit is a small TCP server library in the "one loop per thread" style.
It runs on Linux only. The poller uses epoll, and loops are woken through
`os.eventfd`.

Here is how a server is put together. A base `EventLoop` owns an `Acceptor`
that listens for connections. A `TcpServer` hands each accepted connection to a
`TcpConnection`. Connections go to the loops of an `EventLoopThreadPool` in
round-robin order. With no worker threads, the base loop serves every
connection itself.

## Modules

- `reactorkit.timestamp`: `Timestamp` has microsecond precision and provides
  `now`, `to_string` and `to_format_string`. `add_time` moves a timestamp by a
  number of seconds.
- `reactorkit.buffer`: `Buffer` is a growable byte buffer with a prependable
  area. It provides `append`, `peek`, `retrieve`, `retrieve_all_as_bytes` and
  `read_fd`.
- `reactorkit.thread`: `Thread` is a named thread. `current_tid` returns the
  cached native id of the calling thread, and `tid_string` returns it as text.
- `reactorkit.logstream`: `FixedBuffer` and `LogStream`. `LogStream` formats
  values into a fixed-size buffer with `<<`.
- `reactorkit.logger`: `Logger` and `LogLevel`, plus `log`, `log_debug`,
  `log_info`, `log_warn`, `log_error` and `log_fatal`. `set_log_level`,
  `set_output` and `set_flush` configure the logger.
- `reactorkit.logfile`: `LogFile` writes log files and rolls them by size and
  at the start of each UTC day. `AppendFile` and `log_file_name` support it.
- `reactorkit.asynclogging`: `AsyncLogging` batches records and writes them to
  a `LogFile` from a background thread.
- `reactorkit.timer`, `reactorkit.timer_queue`: `Timer`, `TimerId` and
  `TimerQueue`.
- `reactorkit.inet_address`: `InetAddress` holds an IPv4 or IPv6 endpoint. The
  module also has the byte-order helpers `host_to_network16`/`32`/`64` and
  `network_to_host16`/`32`/`64`.
- `reactorkit.sockets`: socket helpers, such as `create_nonblocking`, `accept`,
  `get_local_addr` and `is_self_connect`. It also has the owning `Socket`
  wrapper.
- `reactorkit.channel`, `reactorkit.poller`: `Channel` and the epoll `Poller`.
- `reactorkit.event_loop`: `EventLoop`. It raises `EventLoopError` if a second
  loop is created in the same thread.
- `reactorkit.event_loop_thread`: `EventLoopThread` and `EventLoopThreadPool`.
- `reactorkit.acceptor`, `reactorkit.tcp_connection`, `reactorkit.tcp_server`:
  `Acceptor`, `TcpConnection` and `TcpServer`.

## Installation

```
pip install .
```

## An echo server

```python
from reactorkit.event_loop import EventLoop
from reactorkit.inet_address import InetAddress
from reactorkit.tcp_server import TcpServer


def on_message(conn, buffer, receive_time):
    conn.send(buffer.retrieve_all_as_bytes())


loop = EventLoop()
server = TcpServer(loop, InetAddress(9000), "echo")
server.message_callback = on_message
server.set_thread_num(4)
server.start()
loop.loop()
```

Set the callbacks as attributes before calling `start`. The server has these:
`connection_callback`, `message_callback`, `write_complete_callback` and
`thread_init_callback`.

The default message callback throws away everything it receives.
`TcpConnection.send` accepts any of these:

- bytes
- text, which is encoded as UTF-8
- a `Buffer`

It sends nothing unless the connection is established. `shutdown` closes the
writing side once all buffered output has been sent. `force_close` closes the
connection at once.

`TcpServer.close`, `EventLoop.close` and `Acceptor.close` release the
descriptors and threads. Each of these classes also works as a context manager.

## Timers

```python
loop.run_after(1.5, lambda: print("once"))
timer_id = loop.run_every(1.0, lambda: print("tick"))
loop.cancel(timer_id)
```

Timers run on the loop's own thread. They are checked after each poll, and the
poll wait is shortened so that the next timer is not missed.

## Logging

```python
from reactorkit.logger import LogLevel, set_log_level, log_info
from reactorkit.asynclogging import AsyncLogging

set_log_level(LogLevel.INFO)
log_info("listening on port ", 9000)

with AsyncLogging("server", roll_size=500 * 1000 * 1000) as backend:
    backend.append(b"a log line\n")
```

The arguments of a log call are joined with no separator between them. Each
record ends with the source file name and line number. The log level filters
only DEBUG and INFO records. WARN, ERROR and FATAL records are always written.
A FATAL record is written and flushed, and then `FatalError` is raised.

By default, records go to standard output. `set_output` and `set_flush`
replace those targets.

Log files are named from the base name and the UTC time they were opened, for
example `server>20240101-120000.log`.

## What it does not do

- There is no command-line program. The package is a library only.
- There is no outgoing-connection (client) side. Connections come only from a
  listening `TcpServer`.
- It needs Linux. Other systems have no epoll or eventfd.

## Running the tests

```
pip install .[test]
pytest
```