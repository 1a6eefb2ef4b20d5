"""
Smart-grid reading producer
Synthetic smart-meter load generator publishing to Kafka
"""

__version__ = "1.0.0"

from .config import (
    AppConfig,
    GeneratorConfig,
    LogConfig,
    PipelineConfig,
    ProducerConfig,
    Region,
    TopicConfig,
    load_config
)
from .errors import (
    BrokerConnectionError,
    ConfigError,
    ProducerError,
    PublishError,
    SerializationError
)
from .admin import KafkaTopicManager
from .producer import KafkaBroker
from .generator import ReadingGenerator
from .models import BuildingType, MeterProfile, MeterStatus, Reading
from .pipeline import PipelineCoordinator, PipelineState
from .publisher import BatchPublisher, PublishResult
from .stats import PipelineSummary

__all__ = [
    'AppConfig',
    'GeneratorConfig',
    'LogConfig',
    'PipelineConfig',
    'ProducerConfig',
    'Region',
    'TopicConfig',
    'load_config',
    'BrokerConnectionError',
    'ConfigError',
    'ProducerError',
    'PublishError',
    'SerializationError',
    'KafkaTopicManager',
    'KafkaBroker',
    'ReadingGenerator',
    'BuildingType',
    'MeterProfile',
    'MeterStatus',
    'Reading',
    'PipelineCoordinator',
    'PipelineState',
    'BatchPublisher',
    'PublishResult',
    'PipelineSummary'
]
