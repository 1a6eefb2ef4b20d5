import json
import threading
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

import pytest

from smart_grid_producer.config import GeneratorConfig, PipelineConfig
from smart_grid_producer.errors import PublishError
from smart_grid_producer.generator import ReadingGenerator

FIXED_TIME = datetime(2024, 6, 1, 14, 30, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_TIME


class FakeBroker:
    """In-memory broker recording every send_batch attempt"""

    def __init__(
            self,
            fail_when: Optional[Callable[[int], bool]] = None,
            delay: float = 0.0
    ):
        self.fail_when = fail_when
        self.delay = delay
        self.calls: List[Tuple[str, List[bytes]]] = []
        self.delivered: List[bytes] = []
        self.closed = False
        self._lock = threading.Lock()

    def send_batch(self, topic: str, messages: Sequence[bytes]) -> int:
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            index = len(self.calls)
            self.calls.append((topic, list(messages)))
            if self.fail_when is not None and self.fail_when(index):
                raise PublishError("broker unavailable", len(messages), ConnectionError("boom"))
            self.delivered.extend(messages)
        return len(messages)

    def close(self) -> None:
        self.closed = True

    @property
    def batch_sizes(self) -> List[int]:
        with self._lock:
            return [len(messages) for _, messages in self.calls]

    def delivered_ids(self) -> List[str]:
        with self._lock:
            return [json.loads(payload)['id'] for payload in self.delivered]


@pytest.fixture
def broker() -> FakeBroker:
    return FakeBroker()


@pytest.fixture
def generator_config() -> GeneratorConfig:
    return GeneratorConfig(meter_count=50, seed=42)


@pytest.fixture
def generator(generator_config) -> ReadingGenerator:
    return ReadingGenerator(generator_config, clock=fixed_clock)


def make_pipeline_config(**overrides) -> PipelineConfig:
    values = dict(
        batch_size=100,
        num_workers=4,
        queue_capacity=1000,
        total_records=1000,
        report_every=100,
        report_interval_seconds=0.05,
        shutdown_grace_seconds=5.0,
    )
    values.update(overrides)
    return PipelineConfig(**values)
