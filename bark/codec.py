"""PCM encoders and decoders for audio packet payloads."""

from __future__ import annotations

import struct
from typing import Iterable

from .audio import SampleFormat, f32_to_s16, s16_to_f32, silence
from .packet import Audio
from .time import CHANNELS
from .types import AudioPacketFormat, AudioPacketHeader


class NewDecoderError(Exception):
    """No decoder exists for the format named in an audio header."""

    def __init__(self, format: int) -> None:
        super().__init__(f"unknown format in audio header: {format!r}")
        self.format = format


class DecodeError(Exception):
    """A packet payload does not have the length the decoder needs."""

    def __init__(self, length: int, expected: int) -> None:
        super().__init__(f"wrong byte length: {length}, expected: {expected}")
        self.length = length
        self.expected = expected


class EncodeError(Exception):
    """The output limit is too small for the encoded packet."""

    def __init__(self, need: int) -> None:
        super().__init__(f"output buffer too small, need at least {need} bytes")
        self.need = need


_WIRE_CODES = {SampleFormat.S16: "h", SampleFormat.F32: "f"}


def _convert(samples: Iterable, src: SampleFormat, dst: SampleFormat) -> list:
    if src is dst:
        return list(samples)
    if src is SampleFormat.S16:
        return [s16_to_f32(sample) for sample in samples]
    return [f32_to_s16(sample) for sample in samples]


def _encode_packed(wire: SampleFormat, fmt: SampleFormat, samples: Iterable, limit: int) -> bytes:
    samples = list(samples)
    code = _WIRE_CODES[wire]
    need = len(samples) * struct.calcsize(f"<{code}")
    if limit < need:
        raise EncodeError(need)
    converted = _convert(samples, fmt, wire)
    return struct.pack(f"<{len(converted)}{code}", *converted)


def _decode_packed(wire: SampleFormat, data: bytes | None, fmt: SampleFormat, frames: int) -> list:
    if data is None:
        # PCM has no loss concealment: a missing packet is silence
        return silence(fmt, frames)
    code = _WIRE_CODES[wire]
    count = frames * CHANNELS
    expected = count * struct.calcsize(f"<{code}")
    if len(data) != expected:
        raise DecodeError(len(data), expected)
    return _convert(struct.unpack(f"<{count}{code}", data), wire, fmt)


class S16LEEncoder:
    """Encodes samples as signed 16-bit little-endian PCM."""

    def header_format(self) -> AudioPacketFormat:
        return AudioPacketFormat.S16LE

    def encode_packet(
        self,
        fmt: SampleFormat,
        samples: Iterable,
        limit: int = Audio.MAX_BUFFER_LENGTH,
    ) -> bytes:
        """Encode interleaved samples, raising EncodeError past limit bytes."""
        return _encode_packed(SampleFormat.S16, fmt, samples, limit)

    def __str__(self) -> str:
        return "signed16 (little endian)"


class F32LEEncoder:
    """Encodes samples as 32-bit float little-endian PCM."""

    def header_format(self) -> AudioPacketFormat:
        return AudioPacketFormat.F32LE

    def encode_packet(
        self,
        fmt: SampleFormat,
        samples: Iterable,
        limit: int = Audio.MAX_BUFFER_LENGTH,
    ) -> bytes:
        """Encode interleaved samples, raising EncodeError past limit bytes."""
        return _encode_packed(SampleFormat.F32, fmt, samples, limit)

    def __str__(self) -> str:
        return "float32 (little endian)"


class S16LEDecoder:
    """Decodes signed 16-bit little-endian PCM payloads."""

    def decode_packet(self, data: bytes | None, fmt: SampleFormat, frames: int) -> list:
        """Decode a payload into frames of fmt; None (a lost packet) gives silence."""
        return _decode_packed(SampleFormat.S16, data, fmt, frames)

    def __str__(self) -> str:
        return "signed16 (little endian)"


class F32LEDecoder:
    """Decodes 32-bit float little-endian PCM payloads."""

    def decode_packet(self, data: bytes | None, fmt: SampleFormat, frames: int) -> list:
        """Decode a payload into frames of fmt; None (a lost packet) gives silence."""
        return _decode_packed(SampleFormat.F32, data, fmt, frames)

    def __str__(self) -> str:
        return "float32 (little endian)"


_DECODERS: dict[AudioPacketFormat, type] = {
    AudioPacketFormat.S16LE: S16LEDecoder,
    AudioPacketFormat.F32LE: F32LEDecoder,
}


class Decoder:
    """Decoder chosen by the format of a stream's audio header."""

    def __init__(self, header: AudioPacketHeader) -> None:
        try:
            decoder_class = _DECODERS[AudioPacketFormat(header.format)]
        except (ValueError, KeyError):
            raise NewDecoderError(header.format) from None
        self._decoder = decoder_class()

    def describe(self) -> str:
        return str(self._decoder)

    def decode(self, packet: Audio | None, fmt: SampleFormat, frames: int) -> list:
        data = packet.buffer_bytes() if packet is not None else None
        return self._decoder.decode_packet(data, fmt, frames)