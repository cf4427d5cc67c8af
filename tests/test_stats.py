import pytest

from bark.net import PeerId
from bark.node import as_fixed
from bark.packet import StatsReply
from bark.stats import KILL_LINE, Entry, StatsTable
from bark.types import NodeStats, ReceiverStats


@pytest.fixture
def node():
    return NodeStats(username=as_fixed("alice"), hostname=as_fixed("host"))


@pytest.fixture
def source_reply(node):
    return StatsReply.source(1, node)


@pytest.fixture
def receiver_reply(node):
    return StatsReply.receiver(1, ReceiverStats(), node)


def test_entry_is_receiver(source_reply, receiver_reply):
    assert Entry(0.0, receiver_reply).is_receiver() is True
    assert Entry(0.0, source_reply).is_receiver() is False


def test_entry_validity_window(source_reply):
    entry = Entry(10.0, source_reply)
    assert entry.valid_at(10.0)
    assert entry.valid_at(10.5)
    assert not entry.valid_at(11.0)


def test_first_update_has_no_cursor_move(source_reply):
    table = StatsTable()
    out = table.update(PeerId("10.0.0.1", 1530), source_reply, now=0.0)
    assert out.startswith(KILL_LINE)
    assert out.count(KILL_LINE) == 1
    assert out.endswith("\n")
    assert "stream source" in out
    assert len(table) == 1


def test_second_update_moves_cursor_up(source_reply, receiver_reply):
    table = StatsTable()
    table.update(PeerId("10.0.0.2", 1530), receiver_reply, now=0.0)
    out = table.update(PeerId("10.0.0.9", 1530), source_reply, now=0.1)
    assert out.startswith("\x1b[1F")
    assert out.count(KILL_LINE) == 2
    assert out.index("stream source") < out.index("Audio:")


def test_same_peer_replaces_entry(source_reply, receiver_reply):
    table = StatsTable()
    peer = PeerId("10.0.0.1", 1530)
    table.update(peer, source_reply, now=0.0)
    out = table.update(peer, receiver_reply, now=0.2)
    assert len(table) == 1
    assert table.peers == [peer]
    assert "Audio:" in out


def test_expired_entries_are_cleared(source_reply):
    table = StatsTable()
    a = PeerId("10.0.0.1", 1)
    b = PeerId("10.0.0.2", 2)
    c = PeerId("10.0.0.3", 3)
    table.update(a, source_reply, now=0.0)
    table.update(b, source_reply, now=0.1)
    out = table.update(c, source_reply, now=5.0)
    assert table.peers == [c]
    assert out.startswith("\x1b[2F")
    assert out.endswith(KILL_LINE + "\n" + "\x1b[1F")


def test_rows_sorted_by_peer(source_reply):
    table = StatsTable()
    high = PeerId("10.0.0.9", 1)
    low = PeerId("10.0.0.1", 1)
    table.update(high, source_reply, now=0.0)
    out = table.update(low, source_reply, now=0.0)
    assert out.index(str(low)) < out.index(str(high))