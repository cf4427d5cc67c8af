"""An audio output that a newer stream can take away from an older one."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator


class _Slot:
    __slots__ = ("lock", "output")

    def __init__(self, output: Any) -> None:
        self.lock = threading.Lock()
        self.output = output


class OwnedOutput:
    """Holds the output; each steal hands it to a fresh reference."""

    def __init__(self, output: Any) -> None:
        self._slot = _Slot(output)

    def steal(self) -> OutputRef:
        """Move the output to a new reference, leaving older ones empty.

        This waits for any write holding the current reference's lock.
        """
        with self._slot.lock:
            output, self._slot.output = self._slot.output, None
        self._slot = _Slot(output)
        return OutputRef(self._slot)


class OutputRef:
    """A handle through which one stream uses the output."""

    def __init__(self, slot: _Slot) -> None:
        self._slot = slot

    @contextmanager
    def lock(self) -> Iterator[Any]:
        """Hold the output for exclusive use; yields None once it was stolen."""
        with self._slot.lock:
            yield self._slot.output