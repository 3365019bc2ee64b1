"""An epoll-based poller that maps ready descriptors back to their channels."""

from __future__ import annotations

import select
from enum import IntEnum

from reactorkit.logger import log_debug, log_error, log_fatal
from reactorkit.timestamp import Timestamp

INIT_EVENT_LIST_SIZE = 16

_ADD = "ADD"
_MOD = "MOD"
_DEL = "DEL"


class ChannelState(IntEnum):
    """Where a channel stands with respect to the poller (kept in ``Channel.index``)."""

    NEW = -1
    ADDED = 1
    DELETED = 2


class Poller:
    """Level-triggered epoll poller for one event loop."""

    def __init__(self, loop) -> None:
        self._loop = loop
        self._epoll = select.epoll()
        self._max_events = INIT_EVENT_LIST_SIZE
        self.channels: dict = {}

    def poll(self, timeout_ms: int) -> tuple[Timestamp, list]:
        """Wait up to ``timeout_ms`` (negative waits forever).

        Returns the time the wait ended and the channels that became ready,
        each with its ``revents`` set.
        """
        timeout = -1 if timeout_ms < 0 else timeout_ms / 1000
        try:
            ready = self._epoll.poll(timeout, self._max_events)
        except OSError as exc:
            now = Timestamp.now()
            log_error("EPollPoller::poll() ", str(exc))
            return now, []
        now = Timestamp.now()
        active = []
        if ready:
            for fd, revents in ready:
                channel = self.channels[fd]
                channel.revents = revents
                active.append(channel)
            if len(ready) == self._max_events:
                self._max_events *= 2
        else:
            log_debug("nothing happened")
        return now, active

    def update_channel(self, channel) -> None:
        index = channel.index
        if index in (ChannelState.NEW, ChannelState.DELETED):
            if index == ChannelState.NEW:
                self.channels[channel.fd] = channel
            channel.index = ChannelState.ADDED
            self._update(_ADD, channel)
        elif channel.is_none_event():
            self._update(_DEL, channel)
            channel.index = ChannelState.DELETED
        else:
            self._update(_MOD, channel)

    def remove_channel(self, channel) -> None:
        self.channels.pop(channel.fd, None)
        if channel.index == ChannelState.ADDED:
            self._update(_DEL, channel)
        channel.index = ChannelState.NEW

    def has_channel(self, channel) -> bool:
        return self.channels.get(channel.fd) is channel

    def _update(self, operation: str, channel) -> None:
        fd = channel.fd
        try:
            if operation == _ADD:
                self._epoll.register(fd, channel.events)
            elif operation == _MOD:
                self._epoll.modify(fd, channel.events)
            else:
                self._epoll.unregister(fd)
        except (OSError, ValueError) as exc:
            log_fatal("epoll_ctl op = ", operation, " fd = ", fd, " ", str(exc))

    def close(self) -> None:
        self._epoll.close()

    def __enter__(self) -> Poller:
        return self

    def __exit__(self, *args) -> bool:
        self.close()
        return False


def new_default_poller(loop) -> Poller:
    return Poller(loop)