"""Wire structures of the protocol."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from datetime import timedelta
from enum import IntEnum, IntFlag
from typing import ClassVar

from .time import SampleDuration, TimestampDelta, TimestampMicros

_MAGIC_BASE = 0x00A79AE2
_FIXED_FIELD_LENGTH = 32


def _tag(tag: int) -> int:
    return (tag << 24) | _MAGIC_BASE


def _unpack(layout: struct.Struct, data: bytes, name: str) -> tuple:
    if len(data) != layout.size:
        raise ValueError(f"{name} needs {layout.size} bytes, got {len(data)}")
    return layout.unpack(data)


class Magic(IntEnum):
    """Packet type markers carried in every packet header."""

    AUDIO = _tag(0x00)
    STATS_REQ = _tag(0x02)
    STATS_REPLY = _tag(0x03)
    PING = _tag(0x04)
    PONG = _tag(0x05)


class AudioPacketFormat(IntEnum):
    F32LE = 1
    S16LE = 2
    OPUS = 3


class StatsReplyFlags(IntFlag):
    IS_RECEIVER = 0x01
    IS_STREAM = 0x02


class ReceiverStatsFlags(IntFlag):
    HAS_AUDIO_LATENCY = 0x04
    HAS_NETWORK_LATENCY = 0x10
    HAS_PREDICT_OFFSET = 0x20
    HAS_OUTPUT_LATENCY = 0x40


class StreamStatus(IntEnum):
    SEEK = 1
    SYNC = 2
    SLEW = 3
    MISS = 4


@dataclass
class PacketHeader:
    """Magic and packet-specific flags at the start of every packet."""

    magic: int
    flags: int = 0

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<II")
    SIZE: ClassVar[int] = _LAYOUT.size

    def pack(self) -> bytes:
        return self._LAYOUT.pack(int(self.magic), int(self.flags))

    @classmethod
    def unpack(cls, data: bytes) -> PacketHeader:
        magic, flags = _unpack(cls._LAYOUT, data, "PacketHeader")
        return cls(magic, flags)


@dataclass
class AudioPacketHeader:
    """Header describing one audio packet.

    sid identifies the stream (its start time), seq is gapless and monotonic,
    pts is the presentation time and dts the time the packet was sent.
    """

    sid: int
    seq: int
    pts: TimestampMicros
    dts: TimestampMicros
    format: int
    priority: int = 0
    padding: bytes = bytes(6)

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<qQQQBb6s")
    SIZE: ClassVar[int] = _LAYOUT.size

    def pack(self) -> bytes:
        return self._LAYOUT.pack(
            self.sid,
            self.seq,
            self.pts.value,
            self.dts.value,
            int(self.format),
            self.priority,
            self.padding,
        )

    @classmethod
    def unpack(cls, data: bytes) -> AudioPacketHeader:
        sid, seq, pts, dts, fmt, priority, padding = _unpack(
            cls._LAYOUT, data, "AudioPacketHeader"
        )
        return cls(
            sid=sid,
            seq=seq,
            pts=TimestampMicros(pts),
            dts=TimestampMicros(dts),
            format=fmt,
            priority=priority,
            padding=padding,
        )


@dataclass(frozen=True)
class ReceiverId:
    value: int

    @classmethod
    def broadcast(cls) -> ReceiverId:
        return cls(0)

    def is_broadcast(self) -> bool:
        return self.value == 0

    def matches(self, other: ReceiverId) -> bool:
        return self.is_broadcast() or self.value == other.value


@dataclass
class NodeStats:
    """User and host name, each NUL padded to a fixed width."""

    username: bytes = bytes(_FIXED_FIELD_LENGTH)
    hostname: bytes = bytes(_FIXED_FIELD_LENGTH)

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct(
        f"<{_FIXED_FIELD_LENGTH}s{_FIXED_FIELD_LENGTH}s"
    )
    SIZE: ClassVar[int] = _LAYOUT.size

    def __post_init__(self) -> None:
        for name in ("username", "hostname"):
            if len(getattr(self, name)) > _FIXED_FIELD_LENGTH:
                raise ValueError(f"{name} longer than {_FIXED_FIELD_LENGTH} bytes")

    def pack(self) -> bytes:
        return self._LAYOUT.pack(self.username, self.hostname)

    @classmethod
    def unpack(cls, data: bytes) -> NodeStats:
        username, hostname = _unpack(cls._LAYOUT, data, "NodeStats")
        return cls(username, hostname)


@dataclass
class ReceiverStats:
    """Receiver state reported in stats replies; latencies are in seconds."""

    flags: ReceiverStatsFlags = ReceiverStatsFlags(0)
    stream_status: int = 0
    raw_audio_latency: float = 0.0
    raw_output_latency: float = 0.0
    raw_network_latency: float = 0.0

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<BB6xddd")
    SIZE: ClassVar[int] = _LAYOUT.size

    def stream(self) -> StreamStatus | None:
        try:
            return StreamStatus(self.stream_status)
        except ValueError:
            return None

    def set_stream(self, status: StreamStatus) -> None:
        self.stream_status = int(status)

    def clear(self) -> None:
        self.set_stream(StreamStatus.SEEK)
        self.flags = ReceiverStatsFlags(0)

    def _field(self, flag: ReceiverStatsFlags, value: float) -> float | None:
        return value if self.flags & flag else None

    def audio_latency(self) -> float | None:
        """Offset between real and stream play time."""
        return self._field(ReceiverStatsFlags.HAS_AUDIO_LATENCY, self.raw_audio_latency)

    def output_latency(self) -> float | None:
        """Length of the output buffer, including hardware latency."""
        return self._field(ReceiverStatsFlags.HAS_OUTPUT_LATENCY, self.raw_output_latency)

    def network_latency(self) -> float | None:
        return self._field(ReceiverStatsFlags.HAS_NETWORK_LATENCY, self.raw_network_latency)

    def set_audio_latency(self, delta: TimestampDelta) -> None:
        self.raw_audio_latency = delta.to_seconds()
        self.flags |= ReceiverStatsFlags.HAS_AUDIO_LATENCY

    def set_output_latency(self, latency: SampleDuration) -> None:
        self.raw_output_latency = latency.to_micros_lossy() / 1_000_000.0
        self.flags |= ReceiverStatsFlags.HAS_OUTPUT_LATENCY

    def set_network_latency(self, latency: timedelta) -> None:
        micros = latency // timedelta(microseconds=1)
        self.raw_network_latency = micros / 1_000_000.0
        self.flags |= ReceiverStatsFlags.HAS_NETWORK_LATENCY

    def pack(self) -> bytes:
        return self._LAYOUT.pack(
            int(self.flags),
            self.stream_status,
            self.raw_audio_latency,
            self.raw_output_latency,
            self.raw_network_latency,
        )

    @classmethod
    def unpack(cls, data: bytes) -> ReceiverStats:
        flags, status, audio, output, network = _unpack(cls._LAYOUT, data, "ReceiverStats")
        return cls(ReceiverStatsFlags(flags), status, audio, output, network)


@dataclass
class StatsReplyPacket:
    sid: int
    receiver: ReceiverStats = field(default_factory=ReceiverStats)
    node: NodeStats = field(default_factory=NodeStats)

    _SID: ClassVar[struct.Struct] = struct.Struct("<q")
    SIZE: ClassVar[int] = _SID.size + ReceiverStats.SIZE + NodeStats.SIZE

    def pack(self) -> bytes:
        return self._SID.pack(self.sid) + self.receiver.pack() + self.node.pack()

    @classmethod
    def unpack(cls, data: bytes) -> StatsReplyPacket:
        data = bytes(data)
        if len(data) != cls.SIZE:
            raise ValueError(f"StatsReplyPacket needs {cls.SIZE} bytes, got {len(data)}")
        receiver_end = cls._SID.size + ReceiverStats.SIZE
        (sid,) = cls._SID.unpack(data[: cls._SID.size])
        receiver = ReceiverStats.unpack(data[cls._SID.size : receiver_end])
        node = NodeStats.unpack(data[receiver_end:])
        return cls(sid, receiver, node)