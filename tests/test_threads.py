import os
import threading

import pytest

from bark.threads import set_name, set_realtime_priority, start


def test_start_returns_result():
    assert start("bark/test", lambda: 5).result(timeout=5) == 5


def test_start_names_thread():
    name = start("bark/named", lambda: threading.current_thread().name).result(timeout=5)
    assert name == "bark/named"


def test_start_propagates_exception():
    def boom():
        raise KeyError("x")

    with pytest.raises(KeyError):
        start("bark/boom", boom).result(timeout=5)


def test_set_name_rejects_nul():
    with pytest.raises(ValueError):
        set_name("a\0b")


def test_realtime_priority_failure(monkeypatch):
    def deny(*args):
        raise PermissionError("denied")

    monkeypatch.setattr(os, "sched_setscheduler", deny, raising=False)
    monkeypatch.setattr(os, "SCHED_FIFO", 1, raising=False)
    monkeypatch.setattr(os, "sched_param", lambda p: p, raising=False)
    assert set_realtime_priority() is False


def test_realtime_priority_success(monkeypatch):
    calls = []
    monkeypatch.setattr(os, "sched_setscheduler", lambda *a: calls.append(a), raising=False)
    monkeypatch.setattr(os, "SCHED_FIFO", 1, raising=False)
    monkeypatch.setattr(os, "sched_param", lambda p: p, raising=False)
    assert set_realtime_priority() is True
    assert calls == [(0, 1, 99)]