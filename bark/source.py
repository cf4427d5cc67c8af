"""Sending side: captures audio, encodes it and multicasts it as a stream."""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_COMPLETED, wait
from contextlib import suppress
from dataclasses import dataclass
from datetime import timedelta

from . import node as node_info
from .audio import SampleFormat
from .codec import EncodeError, F32LEEncoder, S16LEEncoder
from .config import Codec, Format
from .devices import DEFAULT_BUFFER, DEFAULT_PERIOD, DeviceOpt, Input
from .metrics import DEFAULT_LISTEN, start_source
from .net import ProtocolSocket, Socket
from .packet import Audio, Ping, Pong, StatsReply, StatsRequest
from .threads import set_realtime_priority, start
from .time import FRAMES_PER_PACKET, SampleDuration, now
from .types import AudioPacketHeader

log = logging.getLogger(__name__)


@dataclass
class StreamOpt:
    multicast: tuple[str, int]
    input_device: str | None = None
    input_period: int | None = None
    input_buffer: int | None = None
    input_format: Format = Format.F32
    delay_ms: int = 20
    format: Codec = Codec.F32LE
    priority: int = 0


def generate_session_id() -> int:
    """A session id: the current wall-clock time in microseconds."""
    return time.time_ns() // 1000


def new_encoder(codec: Codec) -> S16LEEncoder | F32LEEncoder:
    """The encoder for a configured codec."""
    match codec:
        case Codec.S16LE:
            return S16LEEncoder()
        case Codec.F32LE:
            return F32LEEncoder()
    raise ValueError(f"unknown codec: {codec!r}")


def audio_loop(source, encoder, delay: SampleDuration, sid: int, priority: int, protocol) -> int:
    """Read, encode and broadcast packets until input or encoding fails.

    Returns the number of packets sent.
    """
    fmt = source.format
    seq = 1
    while True:
        try:
            samples, timestamp = source.read(FRAMES_PER_PACKET)
        except (OSError, EOFError, ValueError) as err:
            log.error("error reading audio input: %s", err)
            break

        try:
            data = encoder.encode_packet(fmt, samples)
        except EncodeError as err:
            log.error("error encoding audio: %s", err)
            break

        header = AudioPacketHeader(
            sid=sid,
            seq=seq,
            pts=timestamp.add(delay).to_micros_lossy(),
            dts=now(),
            format=encoder.header_format(),
            priority=priority,
        )
        audio = Audio.new(header, data)
        protocol.broadcast(audio.packet)
        seq += 1

    return seq - 1


def network_loop(sid: int, protocol) -> None:
    """Answer stats requests and pings until receiving fails."""
    node = node_info.get()

    while True:
        packet, peer = protocol.recv_from()

        match packet.parse():
            case StatsRequest():
                reply = StatsReply.source(sid, node)
                with suppress(OSError):
                    protocol.send_to(reply.packet, peer)
            case Ping():
                with suppress(OSError):
                    protocol.send_to(Pong.new().packet, peer)
            case _:
                pass


def _frames(value: int | None, default: SampleDuration) -> SampleDuration:
    return SampleDuration.from_frame_count(value) if value is not None else default


def run(opt: StreamOpt, metrics_listen: str = DEFAULT_LISTEN) -> None:
    """Stream audio until either the audio or the network thread stops."""
    with Socket.open(opt.multicast) as socket:
        protocol = ProtocolSocket(socket)
        sid = generate_session_id()
        start_source(metrics_listen)

        device_opt = DeviceOpt(
            device=opt.input_device,
            period=_frames(opt.input_period, DEFAULT_PERIOD),
            buffer=_frames(opt.input_buffer, DEFAULT_BUFFER),
        )

        with Input(device_opt, SampleFormat(opt.input_format.value)) as source:
            encoder = new_encoder(opt.format)
            log.info("instantiated encoder: %s", encoder)

            delay = SampleDuration.from_std_duration_lossy(timedelta(milliseconds=opt.delay_ms))

            def audio() -> None:
                set_realtime_priority()
                audio_loop(source, encoder, delay, sid, opt.priority, protocol)

            def network() -> None:
                set_realtime_priority()
                network_loop(sid, protocol)

            futures = [start("bark/audio", audio), start("bark/network", network)]
            done, _ = wait(futures, return_when=FIRST_COMPLETED)
            for future in done:
                future.result()