from __future__ import annotations

import select
import socket
import struct
from typing import Optional, Tuple

from lsrd.errors import TransportError


class UdpTransport:
    """One UDP socket for unicast, broadcast and (optionally) multicast traffic.

    Construction either yields a fully configured socket or raises
    :class:`TransportError` with the socket already closed.
    """

    def __init__(
        self,
        bind_address: str,
        bind_port: int,
        multicast_group: Optional[str] = None,
        multicast_ttl: int = 1,
        multicast_loop: bool = True,
        recv_buf_size: int = 65535,
    ) -> None:
        self._recv_buf_size = recv_buf_size
        self._multicast_group = multicast_group
        try:
            self._sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as exc:
            raise TransportError(f"cannot create UDP socket: {exc}") from exc
        try:
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            self._sock.bind((bind_address, int(bind_port)))
            if multicast_group:
                membership = struct.pack("4s4s", socket.inet_aton(multicast_group), socket.inet_aton("0.0.0.0"))
                self._sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
                self._sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, int(multicast_ttl))
                self._sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, int(bool(multicast_loop)))
        except OSError as exc:
            self._sock.close()
            raise TransportError(f"cannot set up UDP socket on {bind_address}:{bind_port}: {exc}") from exc

    @property
    def local_address(self) -> Tuple[str, int]:
        host, port = self._sock.getsockname()[:2]
        return str(host), int(port)

    def recv(self, timeout_s: float) -> Optional[Tuple[bytes, Tuple[str, int]]]:
        readable, _, _ = select.select([self._sock], [], [], max(0.0, timeout_s))
        if not readable:
            return None
        data, addr = self._sock.recvfrom(self._recv_buf_size)
        return data, (str(addr[0]), int(addr[1]))

    def send(self, payload: bytes, address: str, port: int) -> None:
        self._sock.sendto(payload, (address, int(port)))

    def close(self) -> None:
        self._sock.close()
