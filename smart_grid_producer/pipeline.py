"""
Pipeline coordinator: owns the generation and publishing threads
"""
import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, List, Optional

from .bounded_queue import BoundedQueue
from .config import PipelineConfig
from .generator import DataGenerator
from .publisher import BatchPublisher, BrokerClient, serialize_reading
from .stats import AtomicCounter, PipelineStats, PipelineSummary
from .worker import generation_worker, publishing_worker


class PipelineState(str, Enum):
    """Lifecycle phases of one pipeline run"""

    INITIALIZING = "initializing"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class PipelineCoordinator:
    """
    Runs generation threads and publishing workers around one bounded queue.

    Bounded mode (total_records > 0) publishes exactly that many readings and
    stops; continuous mode runs until cancel() or request_cancel() is called. Cancellation stops
    generation at once and lets the workers drain what is buffered; if that
    takes longer than the grace period the buffer is abandoned and each
    worker only submits the batch it already holds.
    """

    CANCEL_CHECK_SECONDS = 0.2

    def __init__(
            self,
            config: PipelineConfig,
            topic: str,
            broker_factory: Callable[[], BrokerClient],
            generator_factory: Callable[[], DataGenerator],
            serializer: Callable[[Any], bytes] = serialize_reading
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config = config
        self.topic = topic
        self.broker_factory = broker_factory
        self.generator_factory = generator_factory
        self.serializer = serializer

        self.stats = PipelineStats()
        self.queue: Optional[BoundedQueue] = None
        self.generator_threads: List[threading.Thread] = []
        self.worker_threads: List[threading.Thread] = []

        self._state = PipelineState.INITIALIZING
        self._state_lock = threading.RLock()
        self._cancel_requested: Optional[str] = None
        self._cancel_event = threading.Event()
        self._wakeup = threading.Event()
        self._workers_done = threading.Event()
        self._generators_running = AtomicCounter()
        self._workers_running = AtomicCounter()
        self._claimed = AtomicCounter()
        self._fill_lock = threading.Lock()

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _set_state(self, state: PipelineState) -> None:
        with self._state_lock:
            if self._state is state or self._state is PipelineState.STOPPED:
                return
            # DRAINING never goes back to RUNNING
            if state is PipelineState.RUNNING and self._state is PipelineState.DRAINING:
                return
            self.logger.info(f"Pipeline {self._state.value} -> {state.value}")
            self._state = state

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested is not None

    def request_cancel(self, reason: str = "external request") -> None:
        """
        Ask the coordinator loop to cancel the run.

        Only assigns an attribute, so it takes no locks and is safe inside
        signal handlers. The waiting loop in run() picks it up.
        """
        self._cancel_requested = reason

    def cancel(self) -> None:
        """Stop generating and drain; safe to call repeatedly from any thread"""
        if self._cancel_event.is_set():
            return
        self._cancel_event.set()
        self.logger.info("Cancellation requested, draining buffered readings")
        queue = self.queue
        if queue is not None:
            queue.cancel(drain=True)
        self._set_state(PipelineState.DRAINING)
        self._wakeup.set()

    # Progress reporting

    def _on_published(self, count: int) -> None:
        new_total = self.stats.published.add(count)
        if self.config.continuous:
            return
        every = self.config.report_every
        if new_total // every > (new_total - count) // every:
            self.logger.info(
                f"Progress: {new_total:,}/{self.config.total_records:,} readings published "
                f"({self.stats.rate():,.2f} msgs/sec)"
            )

    def _report_progress(self) -> None:
        self.logger.info(
            f"Progress: {self.stats.published.value:,} readings published "
            f"({self.stats.rate():,.2f} msgs/sec, queue depth {len(self.queue):,})"
        )

    # Thread bodies

    def _generation_task(self, generator_id: int, generator: DataGenerator) -> None:
        try:
            generation_worker(
                generator_id,
                generator,
                self.queue,
                self.stats,
                self._claimed,
                self.config.total_records,
                self._cancel_event
            )
        finally:
            if self._generators_running.add(-1) == 0:
                self.queue.close()
                self._set_state(PipelineState.DRAINING)

    def _publishing_task(self, worker_id: int, publisher: BatchPublisher) -> None:
        try:
            publishing_worker(
                worker_id,
                self.queue,
                publisher,
                self.config.batch_size,
                self.stats,
                self._on_published,
                self._fill_lock
            )
        except Exception as e:
            self.logger.error(f"Worker {worker_id} died: {e}", exc_info=True)
            raise
        finally:
            if self._workers_running.add(-1) == 0:
                # Nobody reads the queue any more, release blocked generators
                if not self.queue.closed or len(self.queue):
                    self.queue.cancel(drain=False)
                self._workers_done.set()
                self._wakeup.set()

    def _start_threads(self, generator: DataGenerator, publisher: BatchPublisher) -> None:
        num_generators = self.config.num_generators
        num_workers = self.config.num_workers
        self._generators_running.add(num_generators)
        self._workers_running.add(num_workers)

        if self.config.continuous:
            self.logger.info("Starting continuous reading generation...")
        else:
            self.logger.info(f"Starting to generate {self.config.total_records:,} readings...")
        self.logger.info(
            f"Starting {num_workers} publishing workers "
            f"(batch size {self.config.batch_size:,}, queue capacity {self.config.queue_capacity:,})"
        )

        self.stats.start()
        self._set_state(PipelineState.RUNNING)

        for worker_id in range(num_workers):
            thread = threading.Thread(
                target=self._publishing_task,
                args=(worker_id, publisher),
                name=f"Worker-{worker_id}",
                daemon=True
            )
            thread.start()
            self.worker_threads.append(thread)

        for generator_id in range(num_generators):
            thread = threading.Thread(
                target=self._generation_task,
                args=(generator_id, generator),
                name=f"Generator-{generator_id}",
                daemon=True
            )
            thread.start()
            self.generator_threads.append(thread)

    def _wait_for_completion(self) -> None:
        """Block until the workers exit, reporting progress and enforcing the grace period"""
        interval = self.config.report_interval_seconds if self.config.continuous else None
        next_report = time.monotonic() + interval if interval else None

        # Woken by the last worker exiting or by cancel(); request_cancel() is seen on the next tick
        while True:
            timeout = self.CANCEL_CHECK_SECONDS
            if next_report is not None:
                timeout = max(0.0, min(timeout, next_report - time.monotonic()))
            try:
                if self._wakeup.wait(timeout):
                    break
            except KeyboardInterrupt:
                self.request_cancel("keyboard interrupt")

            if self._cancel_requested is not None:
                self.logger.info(f"Received {self._cancel_requested}, initiating shutdown")
                self.cancel()
                break

            if next_report is not None and time.monotonic() >= next_report:
                self._report_progress()
                next_report += interval

        if not self._workers_done.is_set():
            try:
                drained = self._workers_done.wait(self.config.shutdown_grace_seconds)
            except KeyboardInterrupt:
                drained = False
            if not drained:
                self.logger.warning(
                    f"Drain exceeded {self.config.shutdown_grace_seconds:.1f}s grace period, "
                    f"abandoning {len(self.queue):,} buffered readings"
                )
                self.queue.cancel(drain=False)
                self._workers_done.wait()

        for thread in self.worker_threads + self.generator_threads:
            thread.join()

    def run(self) -> PipelineSummary:
        """Run the pipeline to completion and return the final statistics"""
        broker: Optional[BrokerClient] = None
        try:
            broker = self.broker_factory()
            generator = self.generator_factory()
            publisher = BatchPublisher(broker, self.topic, self.serializer)

            self.queue = BoundedQueue(self.config.queue_capacity)
            if self._cancel_event.is_set():
                self.queue.cancel(drain=True)

            self._start_threads(generator, publisher)
            self._wait_for_completion()
        finally:
            self._set_state(PipelineState.STOPPED)
            if broker is not None:
                broker.close()

        summary = self.stats.summary(cancelled=self.cancelled)
        self.log_summary(summary)
        return summary

    def log_summary(self, summary: PipelineSummary) -> None:
        """Log final summary"""
        self.logger.info("=" * 80)
        self.logger.info("FINAL SUMMARY:")
        self.logger.info(f"Total Readings Published: {summary.published:,}")
        self.logger.info(f"Total Failed: {summary.failed:,}")
        self.logger.info(f"Total Skipped: {summary.skipped:,}")
        self.logger.info(f"Batches Submitted: {summary.batches:,}")
        self.logger.info(f"Total Duration: {summary.elapsed:.2f} seconds")
        self.logger.info(f"Overall Throughput: {summary.throughput:,.0f} messages/second")
        self.logger.info(f"Workers Used: {self.config.num_workers}")
        if summary.cancelled:
            self.logger.info("Run was cancelled before completion")
        self.logger.info("=" * 80)

        target = self.config.target_throughput
        if target is None:
            return
        if summary.throughput >= target:
            self.logger.info(f"Achieved target of {target:,}+ messages/second")
        else:
            self.logger.warning(
                f"Did not reach {target:,} messages/second target. "
                f"Consider tuning batch size, worker count or broker settings."
            )
