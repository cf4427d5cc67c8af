import io
from datetime import timedelta

import pytest

from bark.config import Format
from bark.devices import DeviceOpt, Output
from bark.metrics import ReceiverMetrics
from bark.net import PeerId
from bark.packet import Audio, Ping, Pong, StatsReply, StatsRequest
from bark.receiver import ReceiveOpt, Receiver, serve
from bark.time import SampleDuration, TimestampMicros, now
from bark.types import AudioPacketFormat, AudioPacketHeader, StatsReplyFlags, StreamStatus

PEER = PeerId("192.0.2.1", 1530)


def make_audio(sid, seq=1, priority=0, at=None):
    t = at if at is not None else now()
    header = AudioPacketHeader(
        sid=sid, seq=seq, pts=t, dts=t, format=AudioPacketFormat.F32LE, priority=priority
    )
    return Audio.new(header, bytes(Audio.MAX_BUFFER_LENGTH))


def make_receiver():
    device = Output(DeviceOpt(buffer=SampleDuration.from_frame_count(4800)), stream=io.BytesIO())
    metrics = ReceiverMetrics()
    return Receiver(device, metrics), metrics


def later(t, ms):
    return TimestampMicros(t.value + ms * 1000)


def test_no_session_initially():
    receiver, _ = make_receiver()
    with receiver:
        assert receiver.current_session() is None
        stats = receiver.stats()
        assert stats.stream() is None
        assert stats.audio_latency() is None


def test_first_packet_starts_session():
    receiver, metrics = make_receiver()
    with receiver:
        t = now()
        receiver.receive_audio(make_audio(100, at=t), now=t)
        assert receiver.current_session() == 100
        assert metrics.packets_received.get() == 1


def test_higher_priority_takes_over():
    receiver, _ = make_receiver()
    with receiver:
        t = now()
        receiver.receive_audio(make_audio(100, at=t), now=t)
        receiver.receive_audio(make_audio(50, priority=1, at=t), now=t)
        assert receiver.current_session() == 50


def test_lower_priority_ignored_while_active():
    receiver, metrics = make_receiver()
    with receiver:
        t = now()
        receiver.receive_audio(make_audio(100, priority=1, at=t), now=t)
        receiver.receive_audio(make_audio(200, priority=0, at=t), now=t)
        assert receiver.current_session() == 100
        assert metrics.packets_received.get() == 1


def test_equal_priority_newer_session_wins():
    receiver, _ = make_receiver()
    with receiver:
        t = now()
        receiver.receive_audio(make_audio(100, at=t), now=t)
        receiver.receive_audio(make_audio(90, at=t), now=t)
        assert receiver.current_session() == 100
        receiver.receive_audio(make_audio(110, at=t), now=t)
        assert receiver.current_session() == 110


def test_inactive_stream_replaced():
    receiver, _ = make_receiver()
    with receiver:
        t = now()
        receiver.receive_audio(make_audio(100, priority=1, at=t), now=t)
        t2 = later(t, 200)
        receiver.receive_audio(make_audio(5, priority=0, at=t2), now=t2)
        assert receiver.current_session() == 5


def test_stats_with_stream():
    receiver, _ = make_receiver()
    with receiver:
        t = now()
        arrival = later(t, 5)
        receiver.receive_audio(make_audio(100, at=t), now=arrival)
        stats = receiver.stats()
        assert stats.stream() in (StreamStatus.SEEK, StreamStatus.SYNC, StreamStatus.SLEW)
        assert stats.network_latency() == pytest.approx(timedelta(milliseconds=5).total_seconds())
        assert stats.output_latency() is not None


class FakeProtocol:
    def __init__(self, packets):
        self._incoming = list(packets)
        self.sent = []

    def recv_from(self):
        if not self._incoming:
            raise ConnectionError("closed")
        return self._incoming.pop(0), PEER

    def send_to(self, packet, peer):
        self.sent.append((packet, peer))


def test_serve_answers_ping_and_stats():
    receiver, _ = make_receiver()
    protocol = FakeProtocol(
        [Ping.new().packet, StatsRequest.new().packet, Pong.new().packet]
    )
    with receiver, pytest.raises(ConnectionError):
        serve(protocol, receiver)

    assert len(protocol.sent) == 2
    pong, peer = protocol.sent[0]
    assert isinstance(pong.parse(), Pong)
    assert peer == PEER
    reply = protocol.sent[1][0].parse()
    assert isinstance(reply, StatsReply)
    assert reply.flags() & StatsReplyFlags.IS_RECEIVER
    assert reply.data().sid == 0


def test_serve_routes_audio():
    receiver, metrics = make_receiver()
    protocol = FakeProtocol([make_audio(321).packet])
    with receiver:
        with pytest.raises(ConnectionError):
            serve(protocol, receiver)
        assert receiver.current_session() == 321
        assert metrics.packets_received.get() == 1
    assert protocol.sent == []


def test_receive_opt_defaults():
    opt = ReceiveOpt(multicast=("224.100.100.100", 1530))
    assert opt.output_format is Format.F32
    assert opt.output_device is None
    assert opt.output_period is None
    assert opt.output_buffer is None