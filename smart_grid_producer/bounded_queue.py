"""
Bounded hand-off queue between generation and publishing
"""
import threading
from collections import deque
from typing import Deque, Generic, TypeVar

from .errors import QueueCancelled, QueueClosedError, QueueDrained

T = TypeVar('T')


class BoundedQueue(Generic[T]):
    """
    Fixed-capacity FIFO with explicit close and cancel signals.

    put() blocks while the queue is full and returns False once the queue
    is cancelled. get() blocks while the queue is empty and open; it raises
    QueueDrained once the queue is closed (or cancelled with drain) and
    empty, and QueueCancelled as soon as it is cancelled without drain.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._items: Deque[T] = deque()
        self._lock = threading.RLock()
        self._not_full = threading.Condition(self._lock)
        self._not_empty = threading.Condition(self._lock)
        self._closed = False
        self._cancelled = False
        self._abandoned = False

    def put(self, item: T) -> bool:
        """Enqueue item; False if cancellation prevented it"""
        with self._not_full:
            if self._closed and not self._cancelled:
                raise QueueClosedError("put() called on a closed queue")
            while len(self._items) >= self.capacity and not self._cancelled:
                self._not_full.wait()
            if self._cancelled:
                return False
            self._items.append(item)
            self._not_empty.notify()
            return True

    def get(self) -> T:
        """Dequeue the oldest item"""
        with self._not_empty:
            while True:
                if self._abandoned:
                    raise QueueCancelled()
                if self._items:
                    item = self._items.popleft()
                    self._not_full.notify()
                    return item
                if self._closed:
                    raise QueueDrained()
                self._not_empty.wait()

    def close(self) -> None:
        """Producer side is done; readers drain what is left"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._not_empty.notify_all()

    def cancel(self, drain: bool = True) -> None:
        """
        Stop accepting items. Blocked and future puts return False.
        With drain=False readers stop immediately and buffered items
        are abandoned.
        """
        with self._lock:
            self._cancelled = True
            self._closed = True
            if not drain:
                self._abandoned = True
            self._not_full.notify_all()
            self._not_empty.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def abandoned(self) -> bool:
        return self._abandoned

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
