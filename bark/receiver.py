"""Receiving side: follows the best stream on the network and plays it."""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import dataclass
from datetime import timedelta

from . import node as node_info
from .audio import SampleFormat
from .config import Format
from .decode_stream import DecodeStream
from .devices import DEFAULT_BUFFER, DEFAULT_PERIOD, DeviceOpt, Output
from .metrics import DEFAULT_LISTEN, ReceiverMetrics, start_receiver
from .net import ProtocolSocket, Socket
from .output import OutputRef, OwnedOutput
from .packet import Audio, Ping, Pong, StatsReply, StatsRequest
from .queue import AudioPts
from .threads import set_realtime_priority, start
from .time import SampleDuration, Timestamp, TimestampMicros, now
from .types import AudioPacketHeader, ReceiverStats

log = logging.getLogger(__name__)

STREAM_TIMEOUT = timedelta(milliseconds=100)


class _Stream:
    def __init__(
        self,
        header: AudioPacketHeader,
        output: OutputRef,
        metrics: ReceiverMetrics,
        fmt: SampleFormat,
        received: TimestampMicros,
    ) -> None:
        self.sid = header.sid
        self.priority = header.priority
        self.decode = DecodeStream(header, output, metrics, fmt)
        self.received_last_packet = received

    def is_active(self, at: TimestampMicros) -> bool:
        return self.received_last_packet > at.saturating_sub(STREAM_TIMEOUT)

    def receive_packet(self, audio: Audio, at: TimestampMicros) -> None:
        pts = Timestamp.from_micros_lossy(audio.header.pts)
        self.decode.send(AudioPts(pts=pts, audio=audio))
        self.received_last_packet = at


class Receiver:
    """Chooses which stream to play and routes its packets to a decoder."""

    def __init__(
        self,
        output: Output,
        metrics: ReceiverMetrics,
        fmt: SampleFormat | None = None,
    ) -> None:
        self._stream: _Stream | None = None
        self._output = OwnedOutput(output)
        self._fmt = fmt if fmt is not None else output.format
        self.metrics = metrics

    def stats(self) -> ReceiverStats:
        stats = ReceiverStats()
        if self._stream is not None:
            decode = self._stream.decode.stats()
            stats.set_stream(decode.status)
            stats.set_audio_latency(decode.audio_latency)
            stats.set_output_latency(decode.output_latency)

            micros = self.metrics.network_latency.get()
            if micros is not None and micros >= 0:
                stats.set_network_latency(timedelta(microseconds=micros))
        return stats

    def current_session(self) -> int | None:
        return self._stream.sid if self._stream is not None else None

    def _prepare_stream(self, header: AudioPacketHeader, at: TimestampMicros) -> _Stream:
        current = self._stream
        if current is not None and current.is_active(at):
            if header.priority > current.priority:
                new_stream = True
            elif header.priority == current.priority:
                new_stream = header.sid > current.sid
            else:
                new_stream = False
        else:
            new_stream = True

        if new_stream:
            stream = _Stream(header, self._output.steal(), self.metrics, self._fmt, at)
            log.info("new stream beginning: priority=%d sid=%d", header.priority, header.sid)
            if current is not None:
                current.decode.close()
            self._stream = stream

        return self._stream

    def receive_audio(self, packet: Audio, now: TimestampMicros | None = None) -> None:
        """Route an audio packet, switching streams when a better one appears."""
        at = now if now is not None else _wall_now()
        header = packet.header
        stream = self._prepare_stream(header, at)

        if header.sid != stream.sid:
            return

        stream.receive_packet(packet, at)

        self.metrics.network_latency.observe(at.saturating_duration_since(header.dts))
        self.metrics.packets_received.increment()

    def __enter__(self) -> Receiver:
        return self

    def __exit__(self, *exc) -> None:
        if self._stream is not None:
            self._stream.decode.close()
            self._stream = None


_wall_now = now


@dataclass
class ReceiveOpt:
    multicast: tuple[str, int]
    output_device: str | None = None
    output_period: int | None = None
    output_buffer: int | None = None
    output_format: Format = Format.F32


def serve(protocol: ProtocolSocket, receiver: Receiver) -> None:
    """Answer protocol packets until receiving fails."""
    node = node_info.get()

    while True:
        packet, peer = protocol.recv_from()

        match packet.parse():
            case Audio() as audio:
                receiver.receive_audio(audio)
            case StatsRequest():
                sid = receiver.current_session()
                reply = StatsReply.receiver(sid if sid is not None else 0, receiver.stats(), node)
                with suppress(OSError):
                    protocol.send_to(reply.packet, peer)
            case Ping():
                with suppress(OSError):
                    protocol.send_to(Pong.new().packet, peer)
            case _:
                pass


def run(opt: ReceiveOpt, metrics_listen: str = DEFAULT_LISTEN) -> None:
    """Receive and play audio until an error stops the network thread."""
    with Socket.open(opt.multicast) as socket:
        metrics = start_receiver(metrics_listen)
        fmt = SampleFormat(opt.output_format.value)

        device_opt = DeviceOpt(
            device=opt.output_device,
            period=(
                SampleDuration.from_frame_count(opt.output_period)
                if opt.output_period is not None
                else DEFAULT_PERIOD
            ),
            buffer=(
                SampleDuration.from_frame_count(opt.output_buffer)
                if opt.output_buffer is not None
                else DEFAULT_BUFFER
            ),
        )

        with Output(device_opt, metrics, fmt) as output, Receiver(output, metrics) as receiver:

            def network() -> None:
                set_realtime_priority()
                serve(ProtocolSocket(socket), receiver)

            start("bark/network", network).result()