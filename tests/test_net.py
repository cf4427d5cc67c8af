import socket

import pytest

from bark.net import ListenError, PeerId, ProtocolSocket, Socket, parse_multicast
from bark.packet import Ping, Pong


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def sock():
    s = Socket.open(("127.0.0.1", _free_port()))
    yield s
    s.close()


def test_parse_multicast():
    assert parse_multicast("224.100.100.100:1530") == ("224.100.100.100", 1530)


@pytest.mark.parametrize("text", ["1.2.3:5", "224.1.1.1", "[::1]:80", "224.1.1.1:99999"])
def test_parse_multicast_invalid(text):
    with pytest.raises(ValueError):
        parse_multicast(text)


def test_peer_id_str():
    assert str(PeerId("10.0.0.1", 1530)) == "10.0.0.1:1530"


def test_broadcast_roundtrip(sock):
    sock.broadcast(b"hello")
    data, peer = sock.recv_from()
    assert data == b"hello"
    assert peer.host == "127.0.0.1"


def test_send_to(sock):
    sock.send_to(b"direct", PeerId(*sock.multicast))
    data, _ = sock.recv_from()
    assert data == b"direct"


def test_protocol_skips_short(sock):
    proto = ProtocolSocket(sock)
    sock.broadcast(b"abc")
    proto.broadcast(Ping.new().packet)
    packet, _ = proto.recv_from()
    assert packet.to_bytes() == Ping.new().packet.to_bytes()
    assert isinstance(packet.parse(), Ping)


def test_protocol_reply(sock):
    proto = ProtocolSocket(sock)
    proto.broadcast(Ping.new().packet)
    _, peer = proto.recv_from()
    assert peer.host == "127.0.0.1"
    proto.send_to(Pong.new().packet, peer)
    packet, _ = proto.recv_from()
    assert packet.to_bytes() == Pong.new().packet.to_bytes()
    assert isinstance(packet.parse(), Pong)


def test_bind_failure():
    with pytest.raises(ListenError):
        Socket.open(("192.0.2.1", _free_port()))