"""
Process-wide pool of reusable text buffers.

Buffers are borrowed with :meth:`BufferPool.borrow`, which resets the buffer
on the way in and always returns it to the pool on the way out.
"""

import threading
from contextlib import contextmanager
from io import StringIO
from typing import Iterator, List


class BufferPool:
    """Thread-safe pool of ``io.StringIO`` buffers."""

    def __init__(self, max_size: int = 64):
        self._lock = threading.Lock()
        self._free: List[StringIO] = []
        self.max_size = max_size

    def get(self) -> StringIO:
        with self._lock:
            buf = self._free.pop() if self._free else None
        if buf is None:
            return StringIO()
        buf.seek(0)
        buf.truncate(0)
        return buf

    def put(self, buf: StringIO) -> None:
        with self._lock:
            if len(self._free) < self.max_size:
                self._free.append(buf)

    @contextmanager
    def borrow(self) -> Iterator[StringIO]:
        """
        Borrow an empty buffer for the duration of a ``with`` block.

        Example:
            >>> with bufpool.borrow() as buf:
            ...     buf.write("SELECT 1")
            ...     query = buf.getvalue()
        """
        buf = self.get()
        try:
            yield buf
        finally:
            self.put(buf)

    def __len__(self) -> int:
        with self._lock:
            return len(self._free)


bufpool = BufferPool()
