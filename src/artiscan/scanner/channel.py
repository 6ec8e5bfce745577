from __future__ import annotations

import queue
import threading
from typing import Generic, Iterator, Optional, TypeVar

from ..errors import ChannelClosedError

T = TypeVar("T")

_CLOSED = object()


class Channel(Generic[T]):
    """
    Unbounded FIFO between two threads with an explicit end-of-stream.

    ``close()`` may be called from either side. Items sent before the close
    are still delivered; after them ``recv()`` raises ``ChannelClosedError``,
    as does ``send()`` on a closed channel.
    """

    def __init__(self) -> None:
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._closed = threading.Event()
        self._lock = threading.Lock()

    def send(self, item: T) -> None:
        with self._lock:
            if self._closed.is_set():
                raise ChannelClosedError("send on a closed channel")
            self._queue.put(item)

    def close(self) -> None:
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()
            self._queue.put(_CLOSED)

    def recv(self, timeout: Optional[float] = None) -> T:
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # leave the marker for any later receiver
            self._queue.put(_CLOSED)
            raise ChannelClosedError("channel closed")
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.recv()
            except ChannelClosedError:
                return
