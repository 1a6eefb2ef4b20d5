"""
Exception types raised by the producer pipeline
"""
from typing import Optional


class ProducerError(Exception):
    """Base class for all producer errors"""


class ConfigError(ProducerError):
    """Invalid or unreadable configuration"""


class BrokerConnectionError(ProducerError):
    """The broker client could not be established"""


class SerializationError(ProducerError):
    """A single reading could not be encoded"""


class PublishError(ProducerError):
    """A whole batch failed to reach the broker"""

    def __init__(self, message: str, record_count: int, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.record_count = record_count
        self.cause = cause


class QueueClosedError(ProducerError):
    """Put called on a queue that was already closed"""


class QueueDrained(Exception):
    """Queue is closed and empty"""


class QueueCancelled(Exception):
    """Queue was cancelled without draining"""
