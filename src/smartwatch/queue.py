"""Closable, blocking FIFO channel used between watch threads."""

import queue
import threading
import time
from collections import deque
from typing import Any, Deque, Iterator, Optional

from .exceptions import ChannelClosedError


class EventChannel:
    """
    Thread-safe FIFO with close semantics.

    Features:
    - Optional capacity; put() blocks while the channel is full
    - close() wakes every waiter; further puts raise ChannelClosedError
    - Items queued before close() are still delivered to readers
    - Iteration yields items until the channel is closed and drained
    """

    def __init__(self, maxsize: int = 0):
        """
        Initialize the channel.

        Args:
            maxsize: Maximum number of buffered items (0 = unbounded)
        """
        if maxsize < 0:
            raise ValueError(f"maxsize must be >= 0: {maxsize}")
        self.maxsize = maxsize
        self._items: Deque[Any] = deque()
        self._closed = False
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)

    def _full(self) -> bool:
        return self.maxsize > 0 and len(self._items) >= self.maxsize

    def put(self, item: Any, timeout: Optional[float] = None) -> None:
        """
        Append an item, blocking while the channel is full.

        Args:
            item: Item to send
            timeout: Seconds to wait for room (None waits forever)

        Raises:
            ChannelClosedError: If the channel is or becomes closed
            queue.Full: If the timeout expires first
        """
        with self._not_full:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._closed and self._full():
                if deadline is None:
                    self._not_full.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise queue.Full
                self._not_full.wait(remaining)

            if self._closed:
                raise ChannelClosedError("Channel is closed")

            self._items.append(item)
            self._not_empty.notify()

    def get(self, timeout: Optional[float] = None) -> Any:
        """
        Remove and return the oldest item, blocking while empty.

        Args:
            timeout: Seconds to wait for an item (None waits forever)

        Returns:
            The next item

        Raises:
            ChannelClosedError: If the channel is closed and drained
            queue.Empty: If the timeout expires first
        """
        with self._not_empty:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._items:
                if self._closed:
                    raise ChannelClosedError("Channel is closed")
                if deadline is None:
                    self._not_empty.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise queue.Empty
                self._not_empty.wait(remaining)

            item = self._items.popleft()
            self._not_full.notify()
            return item

    def close(self) -> None:
        """Close the channel. Safe to call more than once."""
        with self._lock:
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.get()
            except ChannelClosedError:
                return
