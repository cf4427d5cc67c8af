"""Packet framing: a common header followed by a type-specific payload."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .time import SAMPLES_PER_PACKET
from .types import (
    AudioPacketHeader,
    Magic,
    NodeStats,
    PacketHeader,
    ReceiverStats,
    StatsReplyFlags,
    StatsReplyPacket,
)

_F32_SIZE = struct.calcsize("<f")

MAX_PACKET_SIZE = PacketHeader.SIZE + AudioPacketHeader.SIZE + SAMPLES_PER_PACKET * _F32_SIZE


class Packet:
    """A raw packet: header plus payload bytes."""

    __slots__ = ("_buffer",)

    def __init__(self, buffer: bytearray) -> None:
        if len(buffer) < PacketHeader.SIZE:
            raise ValueError("packet shorter than its header")
        self._buffer = buffer

    @classmethod
    def from_bytes(cls, data: bytes) -> Packet | None:
        """Wrap received bytes, or None when too short for a header."""
        if len(data) < PacketHeader.SIZE:
            return None
        return cls(bytearray(data))

    @classmethod
    def allocate(cls, magic: int, length: int) -> Packet:
        """A zeroed packet with the given magic and payload length."""
        packet = cls(bytearray(PacketHeader.SIZE + length))
        packet.header = PacketHeader(magic)
        return packet

    @classmethod
    def _build(cls, magic: int, payload: bytes, flags: int = 0) -> Packet:
        packet = cls.allocate(magic, len(payload))
        packet.header = PacketHeader(magic, flags)
        packet._buffer[PacketHeader.SIZE :] = payload
        return packet

    @property
    def header(self) -> PacketHeader:
        return PacketHeader.unpack(bytes(self._buffer[: PacketHeader.SIZE]))

    @header.setter
    def header(self, header: PacketHeader) -> None:
        self._buffer[: PacketHeader.SIZE] = header.pack()

    @property
    def payload(self) -> bytes:
        return bytes(self._buffer[PacketHeader.SIZE :])

    def __len__(self) -> int:
        return len(self._buffer) - PacketHeader.SIZE

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)

    def parse(self) -> Audio | StatsRequest | StatsReply | Ping | Pong | None:
        """Interpret the packet by its magic; None when unknown or malformed."""
        try:
            magic = Magic(self.header.magic)
        except ValueError:
            return None

        match magic:
            case Magic.AUDIO:
                return Audio.parse(self)
            case Magic.STATS_REQ:
                return StatsRequest.parse(self)
            case Magic.STATS_REPLY:
                return StatsReply.parse(self)
            case Magic.PING:
                return Ping(self)
            case Magic.PONG:
                return Pong(self)
        return None

    def __repr__(self) -> str:
        return f"Packet(len={len(self._buffer)}, data={self._buffer.hex()})"


@dataclass(frozen=True)
class Audio:
    packet: Packet

    HEADER_LENGTH = AudioPacketHeader.SIZE
    MAX_BUFFER_LENGTH = SAMPLES_PER_PACKET * _F32_SIZE

    @classmethod
    def new(cls, header: AudioPacketHeader, data: bytes) -> Audio:
        return cls(Packet._build(Magic.AUDIO, header.pack() + bytes(data)))

    @classmethod
    def parse(cls, packet: Packet) -> Audio | None:
        if len(packet) <= cls.HEADER_LENGTH:
            return None
        if packet.header.flags != 0:
            return None
        return cls(packet)

    @property
    def header(self) -> AudioPacketHeader:
        return AudioPacketHeader.unpack(self.packet.payload[: self.HEADER_LENGTH])

    def buffer_bytes(self) -> bytes:
        return self.packet.payload[self.HEADER_LENGTH :]


@dataclass(frozen=True)
class StatsRequest:
    packet: Packet

    @classmethod
    def new(cls) -> StatsRequest:
        return cls(Packet.allocate(Magic.STATS_REQ, 0))

    @classmethod
    def parse(cls, packet: Packet) -> StatsRequest | None:
        if len(packet) != 0:
            return None
        if packet.header.flags != 0:
            return None
        return cls(packet)


@dataclass(frozen=True)
class StatsReply:
    packet: Packet

    LENGTH = StatsReplyPacket.SIZE

    @classmethod
    def _new(cls, flags: StatsReplyFlags, data: StatsReplyPacket) -> StatsReply:
        return cls(Packet._build(Magic.STATS_REPLY, data.pack(), int(flags)))

    @classmethod
    def source(cls, sid: int, node: NodeStats) -> StatsReply:
        return cls._new(StatsReplyFlags.IS_STREAM, StatsReplyPacket(sid, ReceiverStats(), node))

    @classmethod
    def receiver(cls, sid: int, receiver: ReceiverStats, node: NodeStats) -> StatsReply:
        return cls._new(StatsReplyFlags.IS_RECEIVER, StatsReplyPacket(sid, receiver, node))

    @classmethod
    def parse(cls, packet: Packet) -> StatsReply | None:
        if len(packet) != cls.LENGTH:
            return None
        return cls(packet)

    def flags(self) -> StatsReplyFlags:
        return StatsReplyFlags(self.packet.header.flags)

    def data(self) -> StatsReplyPacket:
        return StatsReplyPacket.unpack(self.packet.payload)


@dataclass(frozen=True)
class Ping:
    packet: Packet

    @classmethod
    def new(cls) -> Ping:
        return cls(Packet.allocate(Magic.PING, 0))


@dataclass(frozen=True)
class Pong:
    packet: Packet

    @classmethod
    def new(cls) -> Pong:
        return cls(Packet.allocate(Magic.PONG, 0))