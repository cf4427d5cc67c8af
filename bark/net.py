"""UDP multicast sockets carrying protocol packets."""

from __future__ import annotations

import ipaddress
import logging
import select
import socket
import struct
from dataclasses import dataclass

from .packet import MAX_PACKET_SIZE, Packet

log = logging.getLogger(__name__)

# expedited forwarding: asks switches to prioritise our packets
IPTOS_DSCP_EF = 0xB8

_RECV_SIZE = 65535


class ListenError(OSError):
    """Opening, configuring or binding a socket failed."""


@dataclass(frozen=True, order=True)
class PeerId:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def parse_multicast(text: str) -> tuple[str, int]:
    """Parse an IPv4 'address:port' pair."""
    host, sep, port_text = text.rpartition(":")
    if not sep or not port_text.isdigit() or int(port_text) > 0xFFFF:
        raise ValueError(f"invalid socket address: {text!r}")
    try:
        ip = ipaddress.IPv4Address(host)
    except ValueError:
        raise ValueError(f"invalid socket address: {text!r}") from None
    return str(ip), int(port_text)


def _bind_socket(bind: tuple[str, int]) -> socket.socket:
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    except OSError as err:
        raise ListenError(f"creating socket: {err}") from err
    try:
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        except OSError as err:
            raise ListenError(f"setting SO_REUSEADDR: {err}") from err
        ip_tos = getattr(socket, "IP_TOS", None)
        try:
            if ip_tos is None:
                raise OSError("IP_TOS unsupported")
            sock.setsockopt(socket.IPPROTO_IP, ip_tos, IPTOS_DSCP_EF)
        except OSError as err:
            log.warning("failed to set IPTOS_DSCP_EF: %r", err)
        try:
            sock.bind(bind)
        except OSError as err:
            raise ListenError(f"binding {bind[0]}:{bind[1]}: {err}") from err
    except ListenError:
        sock.close()
        raise
    return sock


def _open_multicast(group: str, bind: tuple[str, int]) -> socket.socket:
    sock = _bind_socket(bind)
    try:
        if ipaddress.IPv4Address(group).is_multicast:
            mreq = struct.pack("4s4s", socket.inet_aton(group), socket.inet_aton("0.0.0.0"))
            try:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
            except OSError as err:
                raise ListenError(f"joining multicast group {group}: {err}") from err
            try:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
            except OSError:
                pass
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        except OSError as err:
            raise ListenError(f"setting SO_BROADCAST: {err}") from err
    except ListenError:
        sock.close()
        raise
    return sock


class Socket:
    """A pair of sockets: tx sends and receives unicast replies, rx receives the group."""

    def __init__(self, multicast: tuple[str, int], tx: socket.socket, rx: socket.socket) -> None:
        self.multicast = multicast
        self._tx = tx
        self._rx = rx

    @classmethod
    def open(cls, multicast: tuple[str, int]) -> Socket:
        group, port = multicast
        tx = _open_multicast(group, ("0.0.0.0", 0))
        try:
            rx = _open_multicast(group, (group, port))
        except ListenError:
            tx.close()
            raise
        return cls((group, port), tx, rx)

    def broadcast(self, msg: bytes) -> None:
        self._tx.sendto(msg, self.multicast)

    def send_to(self, msg: bytes, dest: PeerId) -> None:
        self._tx.sendto(msg, (dest.host, dest.port))

    def recv_from(self) -> tuple[bytes, PeerId]:
        """Block until a datagram arrives on either socket."""
        readable, _, _ = select.select([self._tx, self._rx], [], [])
        sock = self._tx if self._tx in readable else self._rx
        data, addr = sock.recvfrom(_RECV_SIZE)
        return data, PeerId(addr[0], addr[1])

    def close(self) -> None:
        self._tx.close()
        self._rx.close()

    def __enter__(self) -> Socket:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class ProtocolSocket:
    """Sends and receives whole protocol packets."""

    def __init__(self, socket: Socket) -> None:
        self.socket = socket

    def broadcast(self, packet: Packet) -> None:
        self.socket.broadcast(packet.to_bytes())

    def send_to(self, packet: Packet, peer: PeerId) -> None:
        self.socket.send_to(packet.to_bytes(), peer)

    def recv_from(self) -> tuple[Packet, PeerId]:
        """Next datagram long enough to hold a packet header."""
        while True:
            data, peer = self.socket.recv_from()
            packet = Packet.from_bytes(data[:MAX_PACKET_SIZE])
            if packet is not None:
                return packet, peer