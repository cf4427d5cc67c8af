"""Decode and resample chain for one received stream."""

from __future__ import annotations

import logging

from .audio import DECODE_BUFFER_FRAMES, SampleFormat, silence
from .codec import DecodeError, Decoder, NewDecoderError
from .packet import Audio
from .rate import RateAdjust, Timing
from .resample import Resampler
from .time import FRAMES_PER_PACKET
from .types import AudioPacketHeader

log = logging.getLogger(__name__)


class Pipeline:
    """Turns stream packets into output samples at the adjusted rate."""

    def __init__(self, header: AudioPacketHeader, fmt: SampleFormat = SampleFormat.F32) -> None:
        self._fmt = fmt
        self._decoder: Decoder | None
        try:
            self._decoder = Decoder(header)
        except NewDecoderError as err:
            log.error("error creating decoder for new stream: %s", err)
            self._decoder = None
        else:
            log.info("instantiated decoder for new stream: %s", self._decoder.describe())
        self._resampler = Resampler(fmt)
        self._rate_adjust = RateAdjust()

    def slew(self) -> bool:
        return self._rate_adjust.slew

    def set_timing(self, timing: Timing) -> None:
        rate = self._rate_adjust.sample_rate(timing)
        try:
            self._resampler.set_input_rate(rate)
        except ValueError:
            pass

    def process(self, packet: Audio | None) -> list:
        """Decode one packet (None when lost) and resample it."""
        decoded = silence(self._fmt, FRAMES_PER_PACKET)
        if self._decoder is not None:
            try:
                decoded = self._decoder.decode(packet, self._fmt, FRAMES_PER_PACKET)
            except DecodeError as err:
                log.warning("error in decoder, skipping packet: %s", err)

        result = self._resampler.process(decoded, DECODE_BUFFER_FRAMES)
        if result.input_read != FRAMES_PER_PACKET:
            raise RuntimeError("resampler did not consume a whole packet")
        return result.samples