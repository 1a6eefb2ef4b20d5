"""
Throughput accounting shared by the pipeline threads
"""
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


class AtomicCounter:
    """Integer counter safe to increment from many threads"""

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def add(self, amount: int = 1) -> int:
        """Add amount and return the new value"""
        with self._lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


@dataclass(frozen=True)
class PipelineSummary:
    """Final figures of one pipeline run"""
    published: int
    failed: int
    skipped: int
    enqueued: int
    batches: int
    elapsed: float
    cancelled: bool

    @property
    def throughput(self) -> float:
        return self.published / self.elapsed if self.elapsed > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'published': self.published,
            'failed': self.failed,
            'skipped': self.skipped,
            'enqueued': self.enqueued,
            'batches': self.batches,
            'elapsed': self.elapsed,
            'throughput': self.throughput,
            'cancelled': self.cancelled,
        }


class PipelineStats:
    """Process-wide counters for one pipeline run"""

    def __init__(self):
        self.enqueued = AtomicCounter()
        self.published = AtomicCounter()
        self.failed = AtomicCounter()
        self.skipped = AtomicCounter()
        self.batches = AtomicCounter()
        self.start_time: Optional[float] = None

    def start(self) -> None:
        self.start_time = time.monotonic()

    def elapsed(self) -> float:
        if self.start_time is None:
            return 0.0
        return time.monotonic() - self.start_time

    def rate(self) -> float:
        elapsed = self.elapsed()
        return self.published.value / elapsed if elapsed > 0 else 0.0

    def summary(self, cancelled: bool = False) -> PipelineSummary:
        return PipelineSummary(
            published=self.published.value,
            failed=self.failed.value,
            skipped=self.skipped.value,
            enqueued=self.enqueued.value,
            batches=self.batches.value,
            elapsed=self.elapsed(),
            cancelled=cancelled,
        )
