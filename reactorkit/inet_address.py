"""IPv4/IPv6 socket endpoints and byte-order helpers."""

from __future__ import annotations

import socket
import sys

_ANY4 = "0.0.0.0"
_LOOPBACK4 = "127.0.0.1"
_ANY6 = "::"
_LOOPBACK6 = "::1"


def _to_big_endian(value: int, size: int) -> int:
    mask = (1 << (8 * size)) - 1
    return int.from_bytes((value & mask).to_bytes(size, "big"), sys.byteorder)


def host_to_network16(value: int) -> int:
    return _to_big_endian(value, 2)


def host_to_network32(value: int) -> int:
    return _to_big_endian(value, 4)


def host_to_network64(value: int) -> int:
    return _to_big_endian(value, 8)


def network_to_host16(value: int) -> int:
    return _to_big_endian(value, 2)


def network_to_host32(value: int) -> int:
    return _to_big_endian(value, 4)


def network_to_host64(value: int) -> int:
    return _to_big_endian(value, 8)


def _check_port(port: int) -> int:
    if not 0 <= port <= 0xFFFF:
        raise ValueError(f"port out of range: {port}")
    return port


def _normalize_ip(family: int, ip: str) -> str:
    try:
        return socket.inet_ntop(family, socket.inet_pton(family, ip))
    except OSError as exc:
        raise ValueError(f"invalid address {ip!r}") from exc


class InetAddress:
    """An IPv4 or IPv6 address and port."""

    __slots__ = ("_family", "_ip", "_port", "_scope_id")

    def __init__(self, port: int = 0, loopback_only: bool = False, ipv6: bool = False) -> None:
        self._port = _check_port(port)
        self._scope_id = 0
        if ipv6:
            self._family = socket.AF_INET6
            self._ip = _LOOPBACK6 if loopback_only else _ANY6
        else:
            self._family = socket.AF_INET
            self._ip = _LOOPBACK4 if loopback_only else _ANY4

    @classmethod
    def _make(cls, family: int, ip: str, port: int, scope_id: int = 0) -> InetAddress:
        address = cls.__new__(cls)
        address._family = family
        address._ip = ip
        address._port = _check_port(port)
        address._scope_id = scope_id
        return address

    @classmethod
    def from_sockaddr(cls, family: int, sockaddr: tuple) -> InetAddress:
        """Build from a socket-module address tuple such as ``getsockname()`` returns."""
        if family == socket.AF_INET:
            host, port = sockaddr[0], sockaddr[1]
            return cls._make(family, _normalize_ip(family, host), port)
        if family == socket.AF_INET6:
            host, port = sockaddr[0], sockaddr[1]
            scope_id = sockaddr[3] if len(sockaddr) > 3 else 0
            host = host.split("%", 1)[0]
            return cls._make(family, _normalize_ip(family, host), port, scope_id)
        raise ValueError(f"unsupported address family: {family}")

    @classmethod
    def from_ip_port(cls, ip: str, port: int) -> InetAddress:
        """Build an IPv4 address from dotted-quad text and a port."""
        return cls._make(socket.AF_INET, _normalize_ip(socket.AF_INET, ip), port)

    def family(self) -> int:
        return self._family

    def to_ip(self) -> str:
        return self._ip

    def to_ip_port(self) -> str:
        if self._family == socket.AF_INET6:
            return f"[{self._ip}]:{self._port}"
        return f"{self._ip}:{self._port}"

    def port(self) -> int:
        return self._port

    def port_net_endian(self) -> int:
        return host_to_network16(self._port)

    def sockaddr(self) -> tuple:
        """Return the address tuple accepted by ``socket.bind`` and ``connect``."""
        if self._family == socket.AF_INET6:
            return (self._ip, self._port, 0, self._scope_id)
        return (self._ip, self._port)

    def _key(self) -> tuple:
        return (self._family, self._ip, self._port, self._scope_id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InetAddress):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"InetAddress({self.to_ip_port()!r})"

    def __str__(self) -> str:
        return self.to_ip_port()