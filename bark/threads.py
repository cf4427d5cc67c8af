"""Named worker threads and real-time scheduling."""

from __future__ import annotations

import logging
import os
import sys
import threading
from concurrent.futures import Future
from typing import Callable, TypeVar

log = logging.getLogger(__name__)

T = TypeVar("T")

_warned = False
_warned_lock = threading.Lock()


def set_name(name: str) -> None:
    """Name the current thread."""
    if "\0" in name:
        raise ValueError("thread name must not contain NUL")
    threading.current_thread().name = name


def _warn_once(err: OSError) -> None:
    global _warned
    with _warned_lock:
        if _warned:
            return
        _warned = True
    log.warning("failed to set realtime thread priority: %s", err)
    if isinstance(err, PermissionError):
        path = sys.argv[0] if sys.argv and sys.argv[0] else "path/to/bark"
        log.warning("fix by running: setcap cap_sys_nice=ep %s", path)


def set_realtime_priority() -> bool:
    """Try to switch to FIFO scheduling at top priority; False on failure."""
    setscheduler = getattr(os, "sched_setscheduler", None)
    policy = getattr(os, "SCHED_FIFO", None)
    param = getattr(os, "sched_param", None)
    try:
        if setscheduler is None or policy is None or param is None:
            raise OSError("real-time scheduling unsupported on this platform")
        setscheduler(0, policy, param(99))
    except OSError as err:
        _warn_once(err)
        return False
    return True


def start(name: str, func: Callable[[], T]) -> Future:
    """Run func in a new named thread; the future holds its result."""
    future: Future = Future()

    def run() -> None:
        set_name(name)
        try:
            result = func()
        except BaseException as err:
            future.set_exception(err)
        else:
            future.set_result(result)

    threading.Thread(target=run, name=name, daemon=True).start()
    return future