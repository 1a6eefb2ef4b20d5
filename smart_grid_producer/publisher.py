"""
Publisher adapter between the workers and the broker client
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Sequence

from .errors import PublishError, SerializationError


class BrokerClient(Protocol):
    """Anything able to send a batch of encoded messages to a topic"""

    def send_batch(self, topic: str, messages: Sequence[bytes]) -> int:
        ...

    def close(self) -> None:
        ...


def serialize_reading(record: Any) -> bytes:
    """Encode a reading as a UTF-8 JSON message"""
    try:
        return json.dumps(record.to_dict()).encode('utf-8')
    except (AttributeError, TypeError, ValueError) as e:
        raise SerializationError(f"Cannot serialize {type(record).__name__}: {e}") from e


@dataclass(frozen=True)
class PublishResult:
    """Outcome of one batch submission"""
    published: int
    failed: int = 0
    skipped: int = 0
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchPublisher:
    """Serializes batches and submits them in a single broker call"""

    def __init__(
            self,
            broker: BrokerClient,
            topic: str,
            serializer: Callable[[Any], bytes] = serialize_reading
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.broker = broker
        self.topic = topic
        self.serializer = serializer

    def _encode(self, batch: Sequence[Any], worker_id: int) -> List[bytes]:
        payloads = []
        for record in batch:
            try:
                payloads.append(self.serializer(record))
            except SerializationError as e:
                self.logger.warning(f"Worker {worker_id}: skipping record: {e}")
            except Exception as e:
                self.logger.warning(
                    f"Worker {worker_id}: skipping record, serializer raised "
                    f"{type(e).__name__}: {e}"
                )
        return payloads

    def submit(self, batch: Sequence[Any], worker_id: int = 0) -> PublishResult:
        """Send one batch; never raises for publish or serialization failures"""
        payloads = self._encode(batch, worker_id)
        skipped = len(batch) - len(payloads)
        if not payloads:
            return PublishResult(published=0, skipped=skipped)

        try:
            published = self.broker.send_batch(self.topic, payloads)
        except Exception as e:
            cause = e.cause if isinstance(e, PublishError) and e.cause is not None else e
            self.logger.error(
                f"Worker {worker_id}: failed to publish batch of "
                f"{len(payloads):,} records: {cause}"
            )
            return PublishResult(published=0, failed=len(payloads), skipped=skipped, error=e)

        return PublishResult(published=published, skipped=skipped)
