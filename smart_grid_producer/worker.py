"""
Worker threads for parallel generation and publishing
"""
import logging
import threading
from typing import Any, Callable, List, Optional

from .batching import BatchAccumulator
from .bounded_queue import BoundedQueue
from .errors import QueueCancelled, QueueDrained
from .generator import DataGenerator
from .publisher import BatchPublisher
from .stats import AtomicCounter, PipelineStats


def generation_worker(
        generator_id: int,
        generator: DataGenerator,
        queue: BoundedQueue,
        stats: PipelineStats,
        claimed: AtomicCounter,
        total_records: int,
        cancel_event: threading.Event
) -> int:
    """
    Thread that fills the queue with generated readings

    Args:
        generator_id: Unique generator identifier
        generator: Shared reading generator
        queue: Queue feeding the publishing workers
        stats: Shared pipeline counters
        claimed: Readings claimed so far by all generators
        total_records: Readings to produce, <= 0 for no limit
        cancel_event: Set once shutdown starts

    Returns:
        Number of readings this thread enqueued
    """
    logger = logging.getLogger(f"Generator-{generator_id}")
    produced = 0

    try:
        while not cancel_event.is_set():
            if total_records > 0 and claimed.add(1) > total_records:
                break
            if not queue.put(generator.next_record()):
                logger.info("Stopping generation due to cancellation")
                break
            stats.enqueued.add(1)
            produced += 1
    except Exception as e:
        logger.error(f"Generator {generator_id} error: {e}", exc_info=True)
        raise

    logger.info(f"Generator {generator_id} completed, generated {produced:,} readings")
    return produced


def _submit(
        worker_id: int,
        batch: List[Any],
        publisher: BatchPublisher,
        stats: PipelineStats,
        on_published: Callable[[int], None]
) -> int:
    result = publisher.submit(batch, worker_id)
    stats.batches.add(1)
    if result.skipped:
        stats.skipped.add(result.skipped)
    if not result.ok:
        stats.failed.add(result.failed)
        return 0
    if result.published:
        on_published(result.published)
    return result.published


def _fill(accumulator: BatchAccumulator, queue: BoundedQueue) -> bool:
    """Dequeue until the batch is full; False once the queue is finished"""
    while True:
        try:
            record = queue.get()
        except (QueueDrained, QueueCancelled):
            return False
        if accumulator.add(record):
            return True


def publishing_worker(
        worker_id: int,
        queue: BoundedQueue,
        publisher: BatchPublisher,
        batch_size: int,
        stats: PipelineStats,
        on_published: Callable[[int], None],
        fill_lock: Optional[threading.Lock] = None
) -> int:
    """
    Thread that drains the queue into fixed-size broker batches

    Workers sharing a fill_lock take turns filling batches, so only the
    batch in progress when the queue finishes can be partial. Publishing
    happens outside the lock.

    Args:
        worker_id: Unique worker identifier
        queue: Queue shared with the generation threads
        publisher: Adapter submitting batches to the broker
        batch_size: Readings per batch
        stats: Shared pipeline counters
        on_published: Called with the count of every successful batch
        fill_lock: Lock shared by all workers of one pipeline
    """
    logger = logging.getLogger(f"Worker-{worker_id}")
    accumulator = BatchAccumulator(batch_size)
    fill_lock = fill_lock or threading.Lock()
    published = 0
    more = True

    while more:
        with fill_lock:
            more = _fill(accumulator, queue)

        # Readings already dequeued are always submitted
        if accumulator:
            published += _submit(worker_id, accumulator.take(), publisher, stats, on_published)

    if queue.abandoned:
        logger.info(f"Worker {worker_id} cancelled, abandoned buffered readings")
    logger.info(f"Worker {worker_id} completed, published {published:,} readings")
    return published
