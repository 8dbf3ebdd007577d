"""
Reusable fixed-size byte buffers for relaying response bodies.

Buffers are scratch space only. Callers must bound every copy by the
buffer length and must not rely on leftover contents between borrows.
"""

import threading
from contextlib import contextmanager
from typing import Iterator, List

DEFAULT_BUFFER_SIZE = 1024


class BufferPool:
    """Thread-safe pool of equally sized bytearrays."""

    def __init__(self, buffer_size: int = DEFAULT_BUFFER_SIZE, max_idle: int = 256):
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        self.buffer_size = buffer_size
        self.max_idle = max_idle
        self._idle: List[bytearray] = []
        self._in_use = 0
        self._lock = threading.Lock()

    @property
    def in_use(self) -> int:
        with self._lock:
            return self._in_use

    @property
    def idle(self) -> int:
        with self._lock:
            return len(self._idle)

    def acquire(self) -> bytearray:
        """Return an idle buffer, or a freshly allocated one if none is idle."""
        with self._lock:
            self._in_use += 1
            if self._idle:
                return self._idle.pop()
        return bytearray(self.buffer_size)

    def release(self, buffer: bytearray) -> None:
        """Hand a buffer back. Extra idle buffers beyond max_idle are dropped."""
        if len(buffer) != self.buffer_size:
            raise ValueError(
                f"Buffer of size {len(buffer)} does not belong to a pool of size {self.buffer_size}"
            )
        with self._lock:
            if self._in_use <= 0:
                raise RuntimeError("release() called more times than acquire()")
            if any(b is buffer for b in self._idle):
                raise RuntimeError("Buffer released twice")
            self._in_use -= 1
            if len(self._idle) < self.max_idle:
                self._idle.append(buffer)

    @contextmanager
    def borrow(self) -> Iterator[bytearray]:
        buffer = self.acquire()
        try:
            yield buffer
        finally:
            self.release(buffer)
