"""One-loop-per-thread TCP networking for Linux: epoll event loops, timers, loop thread pools, buffered connections and rolling log files."""

__version__ = "0.1.0"