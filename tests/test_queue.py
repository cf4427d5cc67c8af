from bark.packet import Audio
from bark.queue import AudioPts, DelayStart, PacketQueue
from bark.time import SampleDuration, Timestamp, TimestampMicros
from bark.types import AudioPacketFormat, AudioPacketHeader

BASE = 1_000_000_000


def make_header(seq, delay_micros=0):
    return AudioPacketHeader(
        sid=7,
        seq=seq,
        pts=TimestampMicros(BASE + delay_micros),
        dts=TimestampMicros(BASE),
        format=AudioPacketFormat.S16LE,
    )


def make_entry(seq, payload=b"\x01\x02\x03\x04", delay_micros=0):
    header = make_header(seq, delay_micros)
    return AudioPts(Timestamp.from_micros_lossy(header.pts), Audio.new(header, payload))


def test_no_delay_is_live_on_first_yield():
    start = DelayStart.from_header(make_header(1))
    assert start.yield_packet() is True
    assert start.live


def test_delay_holds_back_one_call_per_packet_of_delay():
    packet_micros = SampleDuration.ONE_PACKET.to_micros_lossy()
    start = DelayStart.from_header(make_header(1, 3 * packet_micros))
    results = [start.yield_packet() for _ in range(4)]
    assert results == [False, False, False, True]
    assert start.yield_packet() is True


def test_huge_delay_starts_live():
    start = DelayStart.from_header(make_header(1, 10**12))
    assert start.live
    assert start.yield_packet() is True


def test_entry_header_reflects_packet():
    entry = make_entry(42)
    assert entry.header().seq == 42


def test_out_of_order_packets_come_out_in_order():
    queue = PacketQueue(make_header(1))
    for seq in (3, 1, 2):
        queue.insert_packet(make_entry(seq))
    assert len(queue) == 3
    assert [queue.pop_front().header().seq for _ in range(3)] == [1, 2, 3]
    assert queue.pop_front() is None
    assert len(queue) == 0


def test_missing_packet_yields_none_and_advances():
    queue = PacketQueue(make_header(1))
    queue.insert_packet(make_entry(2))
    assert queue.pop_front() is None
    assert queue.head_seq == 2
    assert queue.pop_front().header().seq == 2


def test_duplicate_keeps_first():
    queue = PacketQueue(make_header(1))
    queue.insert_packet(make_entry(1, b"first"))
    queue.insert_packet(make_entry(1, b"second"))
    assert len(queue) == 1
    assert queue.pop_front().audio.buffer_bytes() == b"first"


def test_packet_in_past_dropped():
    queue = PacketQueue(make_header(5))
    queue.insert_packet(make_entry(4))
    assert len(queue) == 0
    assert queue.head_seq == 5


def test_packet_too_far_ahead_resets_queue():
    queue = PacketQueue(make_header(1))
    queue.insert_packet(make_entry(1))
    far = 1 + PacketQueue.CAPACITY
    queue.insert_packet(make_entry(far))
    assert len(queue) == 1
    assert queue.head_seq == far
    assert queue.pop_front().header().seq == far


def test_last_slot_within_capacity_accepted():
    queue = PacketQueue(make_header(1))
    queue.insert_packet(make_entry(PacketQueue.CAPACITY))
    assert len(queue) == PacketQueue.CAPACITY
    assert queue.head_seq == 1


def test_delayed_queue_holds_packets_back():
    packet_micros = SampleDuration.ONE_PACKET.to_micros_lossy()
    queue = PacketQueue(make_header(1, packet_micros))
    queue.insert_packet(make_entry(1, delay_micros=packet_micros))
    assert queue.pop_front() is None
    assert len(queue) == 1
    assert queue.pop_front().header().seq == 1