from bark.audio import SampleFormat, frame_count, s16_to_f32
from bark.codec import S16LEEncoder
from bark.packet import Audio
from bark.pipeline import Pipeline
from bark.rate import Timing
from bark.time import CHANNELS, FRAMES_PER_PACKET, Timestamp, TimestampMicros
from bark.types import AudioPacketFormat, AudioPacketHeader

SAMPLES = [(i * 331) % 2000 - 1000 for i in range(FRAMES_PER_PACKET * CHANNELS)]
BASE = 10**9


def make_header(fmt=AudioPacketFormat.S16LE):
    return AudioPacketHeader(
        sid=3, seq=1, pts=TimestampMicros(0), dts=TimestampMicros(0), format=fmt
    )


def make_audio(payload=None):
    if payload is None:
        payload = S16LEEncoder().encode_packet(SampleFormat.S16, SAMPLES)
    return Audio.new(make_header(), payload)


def test_packet_passes_through_at_nominal_rate():
    pipeline = Pipeline(make_header(), SampleFormat.S16)
    assert pipeline.process(make_audio()) == SAMPLES


def test_output_format_conversion():
    pipeline = Pipeline(make_header(), SampleFormat.F32)
    assert pipeline.process(make_audio()) == [s16_to_f32(s) for s in SAMPLES]


def test_lost_packet_gives_silence():
    pipeline = Pipeline(make_header(), SampleFormat.S16)
    out = pipeline.process(None)
    assert frame_count(out) == FRAMES_PER_PACKET
    assert all(sample == 0 for sample in out)


def test_malformed_packet_gives_silence():
    pipeline = Pipeline(make_header(), SampleFormat.S16)
    out = pipeline.process(make_audio(b"\x01\x02\x03"))
    assert frame_count(out) == FRAMES_PER_PACKET
    assert all(sample == 0 for sample in out)


def test_unsupported_stream_format_gives_silence():
    pipeline = Pipeline(make_header(AudioPacketFormat.OPUS), SampleFormat.S16)
    out = pipeline.process(make_audio())
    assert frame_count(out) == FRAMES_PER_PACKET
    assert all(sample == 0 for sample in out)


def test_timing_in_sync_does_not_slew():
    pipeline = Pipeline(make_header(), SampleFormat.S16)
    pipeline.set_timing(Timing(Timestamp(BASE), Timestamp(BASE)))
    assert pipeline.slew() is False
    assert pipeline.process(make_audio()) == SAMPLES


def test_late_playback_slews_and_shortens_output():
    pipeline = Pipeline(make_header(), SampleFormat.S16)
    pipeline.set_timing(Timing(Timestamp(BASE + 1000), Timestamp(BASE)))
    assert pipeline.slew() is True
    packets = 20
    total = sum(frame_count(pipeline.process(make_audio())) for _ in range(packets))
    assert total < packets * FRAMES_PER_PACKET