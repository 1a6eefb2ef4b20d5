"""
Kafka broker client used by the publishing workers
"""
import logging
import threading
import time
from typing import Sequence

from confluent_kafka import KafkaException, Producer

from .config import ProducerConfig
from .errors import BrokerConnectionError, PublishError


class _DeliveryTally:
    """Delivery callback counting outcomes for one batch"""

    def __init__(self):
        self._lock = threading.Lock()
        self.delivered = 0
        self.failed = 0
        self.last_error = None

    def __call__(self, err, msg):
        with self._lock:
            if err:
                self.failed += 1
                self.last_error = err
            else:
                self.delivered += 1

    @property
    def completed(self) -> int:
        with self._lock:
            return self.delivered + self.failed


class KafkaBroker:
    """Batch-oriented Kafka producer shared by all publishing workers"""

    def __init__(self, config: ProducerConfig):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config = config
        self._closed = False

        try:
            self.producer = Producer(config.to_dict())
            # Producer() connects lazily, a metadata request proves the brokers are reachable
            self.producer.list_topics(timeout=config.connect_timeout)
        except KafkaException as e:
            self.logger.error(f"Failed to connect to {config.bootstrap_servers}: {e}")
            raise BrokerConnectionError(
                f"Cannot reach Kafka brokers at {config.bootstrap_servers}: {e}"
            ) from e

        self.logger.info(f"Producer connected to {config.bootstrap_servers}")

    def _produce(self, topic: str, payload: bytes, tally: _DeliveryTally) -> None:
        while True:
            try:
                self.producer.produce(topic, value=payload, on_delivery=tally)
                self.producer.poll(0)
                return
            except BufferError:
                # Local queue is full - serve delivery reports and retry
                self.logger.warning("Producer queue full, polling...")
                self.producer.poll(1)

    def send_batch(self, topic: str, messages: Sequence[bytes]) -> int:
        """Send all messages and wait for their delivery reports"""
        tally = _DeliveryTally()

        try:
            for payload in messages:
                self._produce(topic, payload, tally)
        except KafkaException as e:
            raise PublishError(f"Failed to enqueue batch for '{topic}': {e}", len(messages), e) from e

        # Poll for this batch only, flush() would wait on every worker's messages
        deadline = time.monotonic() + self.config.flush_timeout
        while tally.completed < len(messages):
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self.logger.warning(
                    f"{len(messages) - tally.completed} messages still pending after "
                    f"{self.config.flush_timeout:.1f}s"
                )
                break
            self.producer.poll(min(remaining, 0.1))

        undelivered = len(messages) - tally.completed
        if tally.failed or undelivered:
            cause = KafkaException(tally.last_error) if tally.last_error else None
            raise PublishError(
                f"{tally.failed:,} failed and {undelivered:,} undelivered "
                f"of {len(messages):,} messages for '{topic}'",
                len(messages),
                cause,
            )
        return tally.delivered

    def close(self) -> None:
        """Flush outstanding messages and release the client"""
        if self._closed:
            return
        self._closed = True
        pending = self.producer.flush(self.config.flush_timeout)
        if pending > 0:
            self.logger.warning(f"{pending} messages still pending at close")
        self.logger.info("Producer closed")
