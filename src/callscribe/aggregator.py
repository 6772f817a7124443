"""Shared audio buffer for all speakers of a session."""

from __future__ import annotations

import threading
from typing import List


class AudioAggregator:
    """Append-only chunk buffer drained by a single atomic flush.

    Decode callbacks may run on the transport's receive thread, so every
    access to the chunk list goes through one lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chunks: List[bytes] = []
        self._size = 0

    def append(self, chunk: bytes) -> None:
        if not chunk:
            return
        data = bytes(chunk)
        with self._lock:
            self._chunks.append(data)
            self._size += len(data)

    def flush_and_reset(self) -> bytes:
        with self._lock:
            chunks, self._chunks = self._chunks, []
            self._size = 0
        return b"".join(chunks)

    def discard(self) -> int:
        with self._lock:
            dropped = self._size
            self._chunks = []
            self._size = 0
        return dropped

    @property
    def size(self) -> int:
        with self._lock:
            return self._size

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)
