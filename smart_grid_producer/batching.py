"""
Per-worker batch accumulation
"""
from typing import Generic, List, TypeVar

T = TypeVar('T')


class BatchAccumulator(Generic[T]):
    """Collects records until a fixed-size batch is ready"""

    def __init__(self, batch_size: int):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size
        self._batch: List[T] = []

    def add(self, record: T) -> bool:
        """Append record; True when the batch is full and must be taken"""
        if self.full:
            raise RuntimeError("Batch is full, take() it before adding more records")
        self._batch.append(record)
        return len(self._batch) == self.batch_size

    def take(self) -> List[T]:
        """Hand over the current batch and start a new one"""
        batch, self._batch = self._batch, []
        return batch

    @property
    def full(self) -> bool:
        return len(self._batch) >= self.batch_size

    def __len__(self) -> int:
        return len(self._batch)

